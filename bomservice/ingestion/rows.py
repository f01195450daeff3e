# bomservice/ingestion/rows.py

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bomservice.db.models import ItemRelation

DEFAULT_QUANTITY = 1
# Largest value a 32-bit INTEGER column holds on every supported dialect
MAX_QUANTITY = 2**31 - 1
DEFAULT_RELATION = ItemRelation.ITEM


def normalize_item_no(value: Any) -> Any:
    """
    Excel stores numeric-looking part numbers as floats; 1001.0 becomes "1001".
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return value


class BomUploadRow(BaseModel):
    """
    One validated spreadsheet row: a main item, one of its child items and
    the relationship between them.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    main_item_no: str = Field(..., alias="Main Item No", min_length=1, max_length=100)
    main_item_name: str = Field(..., alias="Main Item Name", min_length=1, max_length=255)
    child_item_no: str = Field(..., alias="Child Item No", min_length=1, max_length=100)
    child_item_name: str = Field(..., alias="Child Item Name", min_length=1, max_length=255)
    quantity: int = Field(DEFAULT_QUANTITY, alias="Qty", gt=0, le=MAX_QUANTITY)
    item_relation: ItemRelation = Field(DEFAULT_RELATION, alias="I/R")

    @field_validator("main_item_no", "child_item_no", mode="before")
    @classmethod
    def _item_no_to_str(cls, value: Any) -> Any:
        return normalize_item_no(value)

    @field_validator("main_item_name", "child_item_name", mode="before")
    @classmethod
    def _name_to_str(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return normalize_item_no(value)
        return value

    @field_validator("quantity", mode="before")
    @classmethod
    def _default_quantity(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_QUANTITY
        return value

    @field_validator("item_relation", mode="before")
    @classmethod
    def _default_relation(cls, value: Any) -> Any:
        if value is None:
            return DEFAULT_RELATION
        if isinstance(value, str):
            value = value.strip().upper()
            return value or DEFAULT_RELATION
        return value


def describe_validation_error(exc: ValidationError) -> str:
    """
    Flatten a pydantic ValidationError into one line keyed by column header.
    """
    parts = []
    for err in exc.errors():
        column = ".".join(str(loc) for loc in err.get("loc", ())) or "row"
        if err.get("type") == "missing":
            parts.append(f"Missing required column '{column}'")
        else:
            parts.append(f"'{column}': {err.get('msg')}")
    return "; ".join(parts)
