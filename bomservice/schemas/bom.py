from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bomservice.db.models import ItemRelation
from bomservice.schemas.items import MainItemSchema

# Envelope fields are camelCase on the wire; row fields keep the column names.
CamelConfig = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BomChildItem(BaseModel):
    child_item_no: str
    child_item_name: str
    quantity: int
    item_relation: ItemRelation


class BomResponse(BaseModel):
    model_config = CamelConfig

    main_item: MainItemSchema
    child_items: List[BomChildItem]
    total_components: int
    total_quantity: int


# ---------------------------------------------------------------------------
# Report document
# ---------------------------------------------------------------------------

class ReportItem(BaseModel):
    model_config = CamelConfig

    item_no: str
    item_name: str


class ReportComponent(BaseModel):
    model_config = CamelConfig

    item_no: str
    item_name: str
    quantity: int
    relation: ItemRelation


class ReportSummary(BaseModel):
    model_config = CamelConfig

    total_components: int
    total_quantity: int


class BomReport(BaseModel):
    """
    Presentation-oriented BOM document, saved client-side as JSON.
    """
    model_config = CamelConfig

    title: str = "Bill of Materials Report"
    main_item: ReportItem
    components: List[ReportComponent]
    summary: ReportSummary
    generated_at: datetime = Field(
        ...,
        description="When the report was assembled (UTC).",
    )
