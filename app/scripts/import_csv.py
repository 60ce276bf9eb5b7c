"""
Import profiles from a CSV file on disk, same rules as the upload endpoint.
The source file is kept.
Usage: python -m app.scripts.import_csv profiles.csv [--status draft]
"""
import argparse
import sys
from dataclasses import replace
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from app.database import SessionLocal, init_db
from app.logging_config import setup_logging
from app.models.profile import PROFILE_STATUSES
from app.services.csv_importer import CsvParseError, ImportDefaults, import_csv_file


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Bulk import profiles from a CSV file.")
    parser.add_argument("csv_file", help="Path to a CSV file with a header row")
    parser.add_argument(
        "--status",
        choices=PROFILE_STATUSES,
        help="Status for rows that leave the status column empty",
    )
    args = parser.parse_args(argv)

    path = Path(args.csv_file)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 1

    setup_logging()
    init_db()
    defaults = ImportDefaults.from_settings()
    if args.status:
        defaults = replace(defaults, status=args.status)

    db = SessionLocal()
    try:
        summary = import_csv_file(db, path, defaults=defaults, delete_file=False)
    except CsvParseError as e:
        print(f"Error parsing CSV file: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f"CSV processed: {summary.success_count} profiles created, {summary.error_count} errors")
    for err in summary.errors:
        print(f"  row {err.row}: {err.error}")
    return 0 if summary.error_count == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
