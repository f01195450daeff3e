# bomservice/services/bom_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from bomservice.db.models import ChildItem, ItemRelationship, MainItem
from bomservice.schemas.bom import (
    BomChildItem,
    BomReport,
    BomResponse,
    ReportComponent,
    ReportItem,
    ReportSummary,
)
from bomservice.schemas.items import MainItemSchema

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 10


class MainItemNotFoundError(LookupError):
    """Raised when no main item exists for the requested item number."""


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def list_main_items(db: Session) -> List[MainItem]:
    stmt = select(MainItem).order_by(MainItem.item_no)
    return list(db.execute(stmt).scalars().all())


def search_main_items(
    db: Session,
    query: Optional[str],
    *,
    limit: int = DEFAULT_SEARCH_LIMIT,
) -> List[MainItem]:
    """
    Case-insensitive substring match on item_no or item_name.
    A missing or empty query returns an empty list. The query is matched
    as given, surrounding whitespace included.
    """
    if not query:
        return []

    like = _like_pattern(query)
    stmt = (
        select(MainItem)
        .where(
            MainItem.item_no.ilike(like, escape="\\")
            | MainItem.item_name.ilike(like, escape="\\")
        )
        .order_by(MainItem.item_no)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def _load_bom(db: Session, item_no: str) -> Tuple[MainItem, List[BomChildItem]]:
    main_item = db.get(MainItem, item_no)
    if main_item is None:
        raise MainItemNotFoundError(f"Main item not found: {item_no}")

    stmt = (
        select(
            ItemRelationship.child_item_no,
            ChildItem.item_name.label("child_item_name"),
            ItemRelationship.quantity,
            ItemRelationship.item_relation,
        )
        .select_from(ItemRelationship)
        .join(ChildItem, ItemRelationship.child_item_no == ChildItem.item_no)
        .where(ItemRelationship.main_item_no == item_no)
        .order_by(ItemRelationship.child_item_no)
    )
    children = [BomChildItem.model_validate(dict(row._mapping)) for row in db.execute(stmt)]

    logger.debug("BOM for %s has %d child items", item_no, len(children))
    return main_item, children


def get_bom(db: Session, item_no: str) -> BomResponse:
    main_item, children = _load_bom(db, item_no)
    return BomResponse(
        main_item=MainItemSchema.model_validate(main_item),
        child_items=children,
        total_components=len(children),
        total_quantity=sum(child.quantity for child in children),
    )


def get_bom_report(db: Session, item_no: str) -> BomReport:
    """
    Same data as get_bom, reshaped for the downloadable report.
    """
    main_item, children = _load_bom(db, item_no)
    return BomReport(
        main_item=ReportItem(item_no=main_item.item_no, item_name=main_item.item_name),
        components=[
            ReportComponent(
                item_no=child.child_item_no,
                item_name=child.child_item_name,
                quantity=child.quantity,
                relation=child.item_relation,
            )
            for child in children
        ],
        summary=ReportSummary(
            total_components=len(children),
            total_quantity=sum(child.quantity for child in children),
        ),
        generated_at=datetime.now(timezone.utc),
    )
