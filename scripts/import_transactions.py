"""
Import a transactions CSV file from the command line.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from app.cache import TTLCache
from app.config import get_csv_ingestion_settings
from app.domain.transactions import ImportProgress
from app.repositories.transaction_repository import TransactionRepository
from app.services.transaction_import_service import CSVImportError, TransactionImportService
from db.repositories.errors import StorageError
from db.session import get_session_factory

logger = logging.getLogger("import_transactions")


def _log_progress(progress: ImportProgress) -> None:
    logger.info(
        "Processed %d/%d rows imported=%d errors=%d",
        progress.processed,
        progress.total,
        progress.imported,
        progress.errors,
    )


def main() -> int:
    parser = argparse.ArgumentParser(description="Import sales transactions from a CSV file.")
    parser.add_argument("path", help="Path to the CSV file.")
    parser.add_argument(
        "--batch-size",
        dest="batch_size",
        type=int,
        default=None,
        help="Rows per insert batch (defaults to CSV_INGEST_BATCH_SIZE).",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    settings = get_csv_ingestion_settings()
    service = TransactionImportService(
        TransactionRepository(get_session_factory()),
        TTLCache(),
        batch_size=args.batch_size or settings.batch_size,
        log_dropped_rows=settings.log_dropped_rows,
    )

    try:
        summary = service.import_from_path(args.path, progress_callback=_log_progress)
    except (CSVImportError, StorageError) as exc:
        logger.error("Import failed: %s", exc)
        print(json.dumps({"success": False, "error": str(exc)}, indent=2), file=sys.stderr)
        return 1

    print(json.dumps(dict(summary.as_dict()), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
