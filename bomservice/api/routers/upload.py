from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from bomservice.db.session import get_db
from bomservice.schemas.upload import RowErrorItem, UploadResponse
from bomservice.services import ingest_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["upload"])


@router.post(
    "/upload-excel",
    response_model=UploadResponse,
    summary="Bulk-load main items, child items and relationships from a spreadsheet",
)
async def upload_excel(
    file: Optional[UploadFile] = File(
        default=None,
        description="Spreadsheet (.xlsx or .csv) with Main Item No, Main Item Name, "
                    "Child Item No, Child Item Name, Qty and I/R columns.",
    ),
    db: Session = Depends(get_db),
) -> UploadResponse:
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    logger.info("Received upload: %r (content_type=%s)", file.filename, file.content_type)

    try:
        content = await file.read()
        # Parsing and row-by-row upserts block; keep them off the event loop
        result = await run_in_threadpool(
            ingest_service.ingest_spreadsheet, db, content, file.filename
        )
    except Exception:
        # Row errors never reach here; anything that does means nothing was stored.
        logger.exception("Error processing Excel file %r", file.filename)
        raise HTTPException(status_code=500, detail="Error processing Excel file")
    finally:
        await file.close()

    errors = [
        RowErrorItem(row_number=e.row_number, row=e.row, error=e.error)
        for e in result.errors
    ]
    return UploadResponse(
        success=True,
        processed_items=result.processed_items,
        total_rows=result.total_rows,
        errors=errors or None,
    )
