from __future__ import annotations

import io
import os
import tempfile
from typing import Any, Iterable, Sequence

# Settings are read at import time by the API module.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "bomservice-test-logs"))

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from bomservice.api.main import create_app
from bomservice.config import Settings
from bomservice.db.session import Database

HEADERS = ["Main Item No", "Main Item Name", "Child Item No", "Child Item Name", "Qty", "I/R"]


def make_xlsx(rows: Iterable[Sequence[Any]], headers: Sequence[str] = HEADERS) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(list(headers))
    for row in rows:
        sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def bom_row(main_no, child_no, qty=None, relation=None, main_name=None, child_name=None) -> dict:
    row = {
        "Main Item No": main_no,
        "Main Item Name": main_name or f"Assembly {main_no}",
        "Child Item No": child_no,
        "Child Item Name": child_name or f"Part {child_no}",
    }
    if qty is not None:
        row["Qty"] = qty
    if relation is not None:
        row["I/R"] = relation
    return row


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def db_session(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(database):
    settings = Settings(DATABASE_URL="sqlite://", CREATE_SCHEMA_ON_STARTUP=True)
    app = create_app(settings=settings, database=database)
    with TestClient(app) as test_client:
        yield test_client
