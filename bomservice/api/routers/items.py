from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bomservice.api.dependencies import get_app_settings
from bomservice.config import Settings
from bomservice.db.session import get_db
from bomservice.schemas.bom import BomResponse
from bomservice.schemas.items import MainItemSchema
from bomservice.services import bom_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["items"])


@router.get(
    "/main-items",
    response_model=List[MainItemSchema],
    summary="List all main items",
)
def list_main_items(db: Session = Depends(get_db)):
    try:
        return bom_service.list_main_items(db)
    except SQLAlchemyError:
        logger.exception("Error fetching main items")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get(
    "/main-items/{item_no}/bom",
    response_model=BomResponse,
    summary="Get the bill of materials for a main item",
)
def get_bom(item_no: str, db: Session = Depends(get_db)):
    try:
        return bom_service.get_bom(db, item_no)
    except bom_service.MainItemNotFoundError:
        raise HTTPException(status_code=404, detail="Main item not found")
    except SQLAlchemyError:
        logger.exception("Error fetching BOM for %s", item_no)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get(
    "/search/main-items",
    response_model=List[MainItemSchema],
    summary="Search main items by partial item number or name",
)
def search_main_items(
    query: str | None = Query(default=None, description="Substring of item_no or item_name"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    try:
        return bom_service.search_main_items(db, query, limit=settings.search_limit)
    except SQLAlchemyError:
        logger.exception("Error searching main items (query=%r)", query)
        raise HTTPException(status_code=500, detail="Internal server error")
