# bomservice/services/ingest_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Sequence, Tuple, Type

from pydantic import ValidationError
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session

from bomservice.db.base import Base
from bomservice.db.models import ChildItem, ItemRelationship, MainItem
from bomservice.ingestion.rows import BomUploadRow, describe_validation_error
from bomservice.ingestion.spreadsheet import RawRow, read_spreadsheet_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RowError:
    row_number: int
    row: Dict[str, Any]
    error: str


@dataclass(frozen=True)
class IngestionResult:
    """
    Outcome of one upload batch. Each row folds into a new instance.
    """
    processed_items: int = 0
    total_rows: int = 0
    errors: Tuple[RowError, ...] = ()

    def with_success(self) -> "IngestionResult":
        return replace(
            self,
            processed_items=self.processed_items + 1,
            total_rows=self.total_rows + 1,
        )

    def with_failure(self, error: RowError) -> "IngestionResult":
        return replace(
            self,
            total_rows=self.total_rows + 1,
            errors=self.errors + (error,),
        )


# ---------------------------------------------------------------------------
# Upserts
# ---------------------------------------------------------------------------

def _upsert(
    db: Session,
    model: Type[Base],
    values: Dict[str, Any],
    key_columns: Sequence[str],
    update_columns: Sequence[str],
) -> None:
    """
    Insert `values`, or update `update_columns` when a row with the same
    key already exists. Uses the dialect's native upsert statement.
    """
    dialect = db.get_bind().dialect.name

    if dialect in ("postgresql", "sqlite"):
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = insert(model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(key_columns),
            set_={col: stmt.excluded[col] for col in update_columns},
        )
    elif dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(model).values(**values)
        stmt = stmt.on_duplicate_key_update(
            {col: stmt.inserted[col] for col in update_columns}
        )
    else:
        raise NotImplementedError(f"Upsert is not supported for dialect {dialect!r}")

    db.execute(stmt)


def upsert_main_item(db: Session, item_no: str, item_name: str) -> None:
    _upsert(db, MainItem, {"item_no": item_no, "item_name": item_name}, ["item_no"], ["item_name"])


def upsert_child_item(db: Session, item_no: str, item_name: str) -> None:
    _upsert(db, ChildItem, {"item_no": item_no, "item_name": item_name}, ["item_no"], ["item_name"])


def upsert_relationship(db: Session, record: BomUploadRow) -> None:
    _upsert(
        db,
        ItemRelationship,
        {
            "main_item_no": record.main_item_no,
            "child_item_no": record.child_item_no,
            "quantity": record.quantity,
            "item_relation": record.item_relation,
        },
        ["main_item_no", "child_item_no"],
        ["quantity", "item_relation"],
    )


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def _ingest_row(db: Session, row_number: int, raw: RawRow) -> RowError | None:
    try:
        record = BomUploadRow.model_validate(raw)
    except ValidationError as exc:
        return RowError(row_number=row_number, row=raw, error=describe_validation_error(exc))

    # Endpoint items first: the relationship row references both.
    try:
        with db.begin_nested():
            upsert_main_item(db, record.main_item_no, record.main_item_name)
            upsert_child_item(db, record.child_item_no, record.child_item_name)
            upsert_relationship(db, record)
    except (IntegrityError, DataError) as exc:
        return RowError(row_number=row_number, row=raw, error=str(exc.orig))

    return None


def ingest_rows(db: Session, rows: Iterable[RawRow]) -> IngestionResult:
    """
    Store parsed spreadsheet rows in a single transaction.

    Row-level policy:
    - A row that fails validation, or whose upserts hit an integrity/data
      error, is recorded in `errors`; its savepoint is rolled back and the
      batch continues. Rows that succeeded are committed.

    Batch-level policy:
    - Any other exception (lost connection, missing tables, failed commit)
      rolls back the whole batch and is re-raised.
    """
    result = IngestionResult()

    try:
        for row_number, raw in enumerate(rows, start=1):
            error = _ingest_row(db, row_number, raw)
            if error is None:
                result = result.with_success()
            else:
                logger.warning("Row %d rejected: %s", row_number, error.error)
                result = result.with_failure(error)
        db.commit()
    except Exception:
        logger.error(
            "Rolling back upload batch after %d rows; nothing was stored",
            result.total_rows,
        )
        db.rollback()
        raise

    logger.info(
        "Upload batch committed: %d/%d rows stored, %d rejected",
        result.processed_items,
        result.total_rows,
        len(result.errors),
    )
    return result


def ingest_spreadsheet(db: Session, content: bytes, filename: str | None = None) -> IngestionResult:
    """
    Parse an uploaded spreadsheet and store its rows. Parse failures raise
    SpreadsheetParseError before any database work starts.
    """
    rows = read_spreadsheet_rows(content, filename)
    return ingest_rows(db, rows)
