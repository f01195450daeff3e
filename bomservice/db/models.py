# bomservice/db/models.py

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Enum,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ItemRelation(str, enum.Enum):
    """Classification of a child reference inside a BOM."""

    ITEM = "I"
    REFERENCE = "R"


# =========================================================
# 1. Items
# =========================================================

class MainItem(Base):
    __tablename__ = "main_items"

    item_no: Mapped[str] = mapped_column(String(100), primary_key=True)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)


class ChildItem(Base):
    # Same shape as MainItem, separate item_no namespace
    __tablename__ = "child_items"

    item_no: Mapped[str] = mapped_column(String(100), primary_key=True)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)


# =========================================================
# 2. Main -> child relationships
# =========================================================

class ItemRelationship(Base):
    __tablename__ = "item_relationships"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_item_relationships_quantity_positive"),
    )

    main_item_no: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("main_items.item_no"),
        primary_key=True,
    )
    child_item_no: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("child_items.item_no"),
        primary_key=True,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    item_relation: Mapped[ItemRelation] = mapped_column(
        Enum(
            ItemRelation,
            name="item_relation",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            native_enum=False,
            length=1,
        ),
        nullable=False,
        default=ItemRelation.ITEM,
    )
