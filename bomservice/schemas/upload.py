from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RowErrorItem(BaseModel):
    """
    One spreadsheet row that could not be stored.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    row_number: int = Field(
        ...,
        description="1-based position of the row among the data rows (header excluded).",
    )
    row: Dict[str, Any] = Field(
        ...,
        description="Raw cell values of the row, keyed by column header.",
    )
    error: str = Field(..., description="Why the row was rejected.")


class UploadResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    processed_items: int = Field(..., description="Rows stored successfully.")
    total_rows: int = Field(..., description="Data rows read from the sheet.")
    errors: Optional[List[RowErrorItem]] = Field(
        None,
        description="Rejected rows, or null when every row was stored.",
    )
