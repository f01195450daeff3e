# bomservice/cli/ingest_cli.py

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from bomservice.config import Settings, get_settings
from bomservice.db.session import Database
from bomservice.logging_config import configure_logging
from bomservice.services.ingest_service import ingest_spreadsheet


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="BOM bulk loader: store main items, child items and relationships from a spreadsheet."
    )
    parser.add_argument(
        "spreadsheet",
        type=str,
        help="Path to the .xlsx or .csv file.",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Optional override for the database URL. "
             "Defaults to DATABASE_URL from settings.",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing item tables before loading.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    settings = (
        Settings(DATABASE_URL=args.database_url)
        if args.database_url
        else get_settings()
    )

    configure_logging(settings)
    logger = logging.getLogger(__name__)

    spreadsheet = Path(args.spreadsheet).expanduser().resolve()
    if not spreadsheet.is_file():
        logger.error("Spreadsheet does not exist: %s", spreadsheet)
        return 2

    database = Database(settings.database_url)

    logger.info("Starting BOM bulk load")
    logger.info("Source spreadsheet: %s", spreadsheet)

    try:
        database.check_connection()
        if args.create_schema:
            database.create_schema()

        with database.session() as db:
            result = ingest_spreadsheet(db, spreadsheet.read_bytes(), spreadsheet.name)
    except Exception:
        logger.exception("Bulk load failed; no rows were stored")
        return 1
    finally:
        database.dispose()

    print("Bulk load complete:")
    print(f"  processed_items: {result.processed_items}")
    print(f"  total_rows:      {result.total_rows}")
    for error in result.errors:
        print(f"  row {error.row_number}: {error.error}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
