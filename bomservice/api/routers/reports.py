import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bomservice.db.session import get_db
from bomservice.schemas.bom import BomReport
from bomservice.services import bom_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get(
    "/bom/{item_no}",
    response_model=BomReport,
    summary="Generate a BOM report document for download",
)
def get_bom_report(item_no: str, db: Session = Depends(get_db)):
    try:
        return bom_service.get_bom_report(db, item_no)
    except bom_service.MainItemNotFoundError:
        raise HTTPException(status_code=404, detail="Main item not found")
    except SQLAlchemyError:
        logger.exception("Error generating BOM report for %s", item_no)
        raise HTTPException(status_code=500, detail="Internal server error")
