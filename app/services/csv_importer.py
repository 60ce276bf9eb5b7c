"""
Bulk profile import from CSV.

The file is parsed completely before anything is written, then rows are
imported one at a time. Each row runs in its own transaction: a failing row is
rolled back and reported, and the rest of the batch continues.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import pandas as pd
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.profile import PROFILE_STATUSES, Profile
from app.models.social_link import SOCIAL_PLATFORMS
from app.repos import category_repo, profile_repo, tag_repo

logger = logging.getLogger(__name__)

OPTIONAL_TEXT_COLUMNS = ("image_url", "insight", "notes", "notes_url", "location")
MISSING_REQUIRED_ERROR = "Missing required fields (name, category)"
# Reported row numbers are 1-based and count the header line.
HEADER_ROW_OFFSET = 2


class CsvParseError(ValueError):
    """The uploaded file could not be read as CSV."""


@dataclass(frozen=True)
class ImportDefaults:
    language: str = "English"
    status: str = "published"
    tag_type: str = "contextual"

    @classmethod
    def from_settings(cls) -> "ImportDefaults":
        return cls(
            language=settings.import_default_language,
            status=settings.import_default_status,
            tag_type=settings.import_default_tag_type,
        )


@dataclass
class RowError:
    row: int
    error: str


@dataclass
class ImportSummary:
    success_count: int = 0
    error_count: int = 0
    errors: list[RowError] = field(default_factory=list)

    def add_error(self, row: int, message: str) -> None:
        self.errors.append(RowError(row=row, error=message))
        self.error_count += 1

    def to_response(self) -> dict:
        data: dict[str, Any] = {
            "successCount": self.success_count,
            "errorCount": self.error_count,
        }
        if self.errors:
            data["errors"] = [{"row": e.row, "error": e.error} for e in self.errors]
        return data


def read_rows(path: str | Path) -> list[dict[str, str]]:
    """
    Parse a CSV file with a header row into row mappings.
    Every cell is read as text; empty cells become "". Header names are trimmed and lower-cased.
    Raises CsvParseError when the file is empty, malformed or not valid UTF-8.
    """
    try:
        df = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
            skip_blank_lines=True,
            # cells are matched to headers by position; surplus trailing cells are dropped
            index_col=False,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise CsvParseError(str(e)) from e
    df.columns = [str(c).strip().lower() for c in df.columns]
    return df.to_dict(orient="records")


def split_tags(raw: str | None) -> list[str]:
    """
    Split a comma-separated tag list. Names are trimmed, empties dropped and
    case-insensitive duplicates collapsed to their first spelling.
    E.g. " Music, music ,Pop" -> ["Music", "Pop"]
    """
    if not raw:
        return []
    seen: set[str] = set()
    names = []
    for part in raw.split(","):
        name = part.strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        names.append(name)
    return names


def _normalize_row(row: dict[str, Any]) -> dict[str, str]:
    out = {}
    for key, value in row.items():
        if value is None or (isinstance(value, float) and pd.isna(value)):
            value = ""
        out[str(key).strip().lower()] = str(value).strip()
    return out


def _error_message(exc: Exception) -> str:
    # DB errors carry the driver message on .orig; the wrapper adds SQL and params.
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig).strip()
    return str(exc) or exc.__class__.__name__


def import_row(db: Session, row: dict[str, str], defaults: ImportDefaults) -> Profile:
    """
    Write one validated row: resolve category/subcategory, insert the profile,
    its social links and tag links. Flushes but does not commit.
    """
    status = row.get("status") or defaults.status
    if status not in PROFILE_STATUSES:
        raise ValueError(f"Invalid status {status!r}; expected one of {', '.join(PROFILE_STATUSES)}")

    category, created = category_repo.get_or_create(db, row["category"])
    if created:
        logger.info("Created category %r during CSV import", category.name)

    subcategory_id = None
    if row.get("subcategory"):
        subcategory, created = category_repo.get_or_create(db, row["subcategory"], parent_id=category.id)
        if created:
            logger.info("Created subcategory %r under %r during CSV import", subcategory.name, category.name)
        subcategory_id = subcategory.id

    optional = {col: row.get(col) or None for col in OPTIONAL_TEXT_COLUMNS}
    profile = profile_repo.create(
        db,
        commit=False,
        name=row["name"],
        category_id=category.id,
        subcategory_id=subcategory_id,
        language=row.get("language") or defaults.language,
        status=status,
        **optional,
    )

    for platform in SOCIAL_PLATFORMS:
        url = row.get(platform)
        if url:
            profile_repo.add_social_link(db, profile.id, platform, url)

    for tag_name in split_tags(row.get("tags")):
        tag, _ = tag_repo.get_or_create(db, tag_name, tag_type=defaults.tag_type)
        tag_repo.link_profile_tag(db, profile.id, tag.id)

    return profile


def import_rows(
    db: Session,
    rows: Iterable[dict[str, Any]],
    defaults: ImportDefaults | None = None,
) -> ImportSummary:
    """Import parsed rows sequentially, one transaction per row."""
    defaults = defaults or ImportDefaults.from_settings()
    summary = ImportSummary()
    for index, raw in enumerate(rows):
        row_number = index + HEADER_ROW_OFFSET
        row = _normalize_row(raw)
        if not row.get("name") or not row.get("category"):
            summary.add_error(row_number, MISSING_REQUIRED_ERROR)
            continue
        try:
            import_row(db, row, defaults)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.exception("Error processing CSV row %d: %s", row_number, e)
            summary.add_error(row_number, _error_message(e))
            continue
        summary.success_count += 1
    return summary


def import_csv_file(
    db: Session,
    path: str | Path,
    defaults: ImportDefaults | None = None,
    delete_file: bool = True,
) -> ImportSummary:
    """
    Parse then import a CSV file. With delete_file the file is removed once
    parsing ends, whether it succeeded or not. Raises CsvParseError on a malformed file.
    """
    try:
        rows = read_rows(path)
    finally:
        if delete_file:
            Path(path).unlink(missing_ok=True)
    logger.info("Parsed %d CSV rows from %s", len(rows), Path(path).name)
    summary = import_rows(db, rows, defaults)
    logger.info(
        "CSV import finished: %d profiles created, %d errors",
        summary.success_count,
        summary.error_count,
    )
    return summary
