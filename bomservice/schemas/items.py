from __future__ import annotations

from pydantic import BaseModel


class MainItemSchema(BaseModel):
    item_no: str
    item_name: str

    model_config = {"from_attributes": True}
