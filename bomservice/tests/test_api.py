from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from bomservice.api.main import create_app
from bomservice.config import Settings
from bomservice.db.session import Database
from bomservice.services import ingest_service
from conftest import HEADERS, bom_row, make_xlsx

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _upload(client, content: bytes, filename: str = "bom.xlsx"):
    return client.post("/api/upload-excel", files={"file": (filename, content, XLSX_MIME)})


@pytest.fixture
def loaded_client(client, database):
    with database.session() as db:
        ingest_service.ingest_rows(
            db,
            [
                bom_row("ASM-100", "P-2", qty=3, relation="R", main_name="Pump Unit", child_name="Manual"),
                bom_row("ASM-100", "P-1", qty=2, main_name="Pump Unit", child_name="Housing"),
                bom_row("ASM-200", "P-1", main_name="Gear Box", child_name="Housing"),
            ],
        )
    return client


def test_health(client):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "OK"
    assert body["timestamp"]


def test_list_main_items(loaded_client):
    resp = loaded_client.get("/api/main-items")

    assert resp.status_code == 200
    assert resp.json() == [
        {"item_no": "ASM-100", "item_name": "Pump Unit"},
        {"item_no": "ASM-200", "item_name": "Gear Box"},
    ]


def test_get_bom(loaded_client):
    resp = loaded_client.get("/api/main-items/ASM-100/bom")

    assert resp.status_code == 200
    assert resp.json() == {
        "mainItem": {"item_no": "ASM-100", "item_name": "Pump Unit"},
        "childItems": [
            {"child_item_no": "P-1", "child_item_name": "Housing", "quantity": 2, "item_relation": "I"},
            {"child_item_no": "P-2", "child_item_name": "Manual", "quantity": 3, "item_relation": "R"},
        ],
        "totalComponents": 2,
        "totalQuantity": 5,
    }


def test_get_bom_unknown_item_is_404(loaded_client):
    resp = loaded_client.get("/api/main-items/NOPE/bom")

    assert resp.status_code == 404
    assert resp.json() == {"detail": "Main item not found"}


def test_search(loaded_client):
    resp = loaded_client.get("/api/search/main-items", params={"query": "pump"})

    assert resp.status_code == 200
    assert [i["item_no"] for i in resp.json()] == ["ASM-100"]


def test_search_uses_the_app_search_limit(database):
    with database.session() as db:
        ingest_service.ingest_rows(db, [bom_row(f"K-{n}", "P-1", main_name="Kit") for n in range(1, 8)])
    settings = Settings(DATABASE_URL="sqlite://", SEARCH_LIMIT=3)

    with TestClient(create_app(settings=settings, database=database)) as client:
        resp = client.get("/api/search/main-items", params={"query": "kit"})

    assert resp.status_code == 200
    assert [i["item_no"] for i in resp.json()] == ["K-1", "K-2", "K-3"]


@pytest.mark.parametrize("url", ["/api/search/main-items", "/api/search/main-items?query="])
def test_blank_search_returns_empty_list(loaded_client, url):
    resp = loaded_client.get(url)

    assert resp.status_code == 200
    assert resp.json() == []


def test_report(loaded_client):
    resp = loaded_client.get("/api/reports/bom/ASM-100")

    assert resp.status_code == 200
    body = resp.json()
    assert body["title"] == "Bill of Materials Report"
    assert body["mainItem"] == {"itemNo": "ASM-100", "itemName": "Pump Unit"}
    assert body["components"] == [
        {"itemNo": "P-1", "itemName": "Housing", "quantity": 2, "relation": "I"},
        {"itemNo": "P-2", "itemName": "Manual", "quantity": 3, "relation": "R"},
    ]
    assert body["summary"] == {"totalComponents": 2, "totalQuantity": 5}
    assert body["generatedAt"]


def test_report_unknown_item_is_404(loaded_client):
    resp = loaded_client.get("/api/reports/bom/NOPE")

    assert resp.status_code == 404


def test_upload_without_file_is_400(client):
    resp = client.post("/api/upload-excel")

    assert resp.status_code == 400
    assert resp.json() == {"detail": "No file uploaded"}


def test_upload_then_lookup(client):
    content = make_xlsx([
        ["ASM-1", "Frame", "B-1", "Bolt", 8, "I"],
        ["ASM-1", "Frame", "D-1", "Drawing", None, None],
    ])

    resp = _upload(client, content)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "processedItems": 2, "totalRows": 2, "errors": None}

    bom = client.get("/api/main-items/ASM-1/bom").json()
    assert [(c["child_item_no"], c["quantity"], c["item_relation"]) for c in bom["childItems"]] == [
        ("B-1", 8, "I"),
        ("D-1", 1, "I"),
    ]


def test_upload_with_bad_row_reports_it_and_commits_the_rest(client):
    content = make_xlsx([
        ["ASM-1", "Frame", "C-1", "Part 1", 1, "I"],
        ["ASM-1", "Frame", "C-2", "Part 2", 1, "I"],
        ["ASM-1", None, "C-3", "Part 3", 1, "I"],
        ["ASM-1", "Frame", "C-4", "Part 4", 1, "I"],
        ["ASM-1", "Frame", "C-5", "Part 5", 1, "I"],
    ])

    resp = _upload(client, content)

    assert resp.status_code == 200
    body = resp.json()
    assert body["processedItems"] == 4
    assert body["totalRows"] == 5
    assert len(body["errors"]) == 1
    assert body["errors"][0]["rowNumber"] == 3
    assert body["errors"][0]["row"]["Child Item No"] == "C-3"
    assert "Main Item Name" in body["errors"][0]["error"]

    bom = client.get("/api/main-items/ASM-1/bom").json()
    assert [c["child_item_no"] for c in bom["childItems"]] == ["C-1", "C-2", "C-4", "C-5"]


def test_uploading_same_file_twice_does_not_duplicate(client):
    content = make_xlsx([
        ["ASM-1", "Frame", "C-1", "Part 1", 2, "I"],
        ["ASM-1", "Frame", "C-2", "Part 2", 3, "R"],
    ])

    first = _upload(client, content)
    second = _upload(client, content)

    assert first.json() == second.json()
    bom = client.get("/api/main-items/ASM-1/bom").json()
    assert bom["totalComponents"] == 2
    assert bom["totalQuantity"] == 5


def test_upload_ingests_off_the_event_loop(client):
    seen = {}
    original = ingest_service.ingest_spreadsheet

    def recording_ingest(db, content, filename):
        try:
            asyncio.get_running_loop()
            seen["on_loop"] = True
        except RuntimeError:
            seen["on_loop"] = False
        return original(db, content, filename)

    content = make_xlsx([["ASM-1", "Frame", "C-1", "Part 1", 1, "I"]])
    with patch.object(ingest_service, "ingest_spreadsheet", side_effect=recording_ingest):
        resp = _upload(client, content)

    assert resp.status_code == 200
    assert resp.json()["processedItems"] == 1
    assert seen == {"on_loop": False}


def test_unreadable_upload_is_500(client):
    resp = _upload(client, b"definitely not a spreadsheet")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Error processing Excel file"}
    assert client.get("/api/main-items").json() == []


def test_systemic_failure_during_upload_stores_nothing(client):
    content = make_xlsx([["ASM-1", "Frame", f"C-{i}", "Part", 1, "I"] for i in range(1, 4)])
    lost = OperationalError("INSERT INTO item_relationships", {}, Exception("connection lost"))

    with patch.object(ingest_service, "upsert_relationship", side_effect=[None, lost]):
        resp = _upload(client, content)

    assert resp.status_code == 500
    assert client.get("/api/main-items").json() == []


def test_store_failure_on_read_is_500(client):
    with patch(
        "bomservice.services.bom_service.list_main_items",
        side_effect=OperationalError("SELECT", {}, Exception("connection lost")),
    ):
        resp = client.get("/api/main-items")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error"}


def test_csv_upload(client):
    content = (",".join(HEADERS) + "\nASM-9,Stand,L-1,Leg,4,I\n").encode("utf-8")

    resp = _upload(client, content, filename="bom.csv")

    assert resp.json()["processedItems"] == 1
    assert client.get("/api/main-items/ASM-9/bom").json()["totalQuantity"] == 4


def test_startup_fails_when_store_is_unreachable(tmp_path):
    missing_dir = tmp_path / "does-not-exist"
    url = f"sqlite:///{missing_dir}/bom.db"
    app = create_app(settings=Settings(DATABASE_URL=url), database=Database(url))

    with pytest.raises(Exception):
        with TestClient(app):
            pass
