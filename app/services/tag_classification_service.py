import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.models.tag import TAG_TYPES, Tag
from app.repos import tag_repo

logger = logging.getLogger(__name__)


def suggest_type(category_spread: int, min_categories: int | None = None) -> str:
    """Tags that show up across several top-level categories are universal."""
    threshold = min_categories or settings.tag_universal_min_categories
    return "universal" if category_spread >= threshold else "contextual"


def _validate_type(tag_type: str) -> None:
    if tag_type not in TAG_TYPES:
        raise ValueError('Invalid type. Must be "universal" or "contextual"')


def analyze_and_suggest(db: Session) -> dict:
    """
    Compute a suggested type for every tag and store it where it differs from the current type.
    Tags whose current type already matches get their stale suggestion cleared.
    """
    spread = tag_repo.get_category_spread(db)
    suggestions = []
    tags = tag_repo.get_all(db)
    for tag in tags:
        categories = spread.get(tag.id, 0)
        suggested = suggest_type(categories)
        if suggested != tag.type:
            tag.suggested_type = suggested
            suggestions.append(
                {
                    "id": tag.id,
                    "name": tag.name,
                    "current_type": tag.type,
                    "suggested_type": suggested,
                    "category_count": categories,
                }
            )
        else:
            tag.suggested_type = None
    db.commit()
    logger.info("Tag analysis: %d suggestions across %d tags", len(suggestions), len(tags))
    return {
        "total_tags": len(tags),
        "suggestion_count": len(suggestions),
        "suggestions": suggestions,
    }


def approve_classification(db: Session, tag_id: int, tag_type: str) -> Tag:
    _validate_type(tag_type)
    tag = tag_repo.update_classification(db, tag_id, tag_type=tag_type, clear_suggestion=True)
    if not tag:
        raise LookupError("Tag not found")
    logger.info("Tag %r approved as %s", tag.name, tag_type)
    return tag


def reject_classification(db: Session, tag_id: int) -> Tag:
    tag = tag_repo.update_classification(db, tag_id, clear_suggestion=True)
    if not tag:
        raise LookupError("Tag not found")
    logger.info("Tag %r suggestion rejected", tag.name)
    return tag


def force_classification(db: Session, tag_id: int, tag_type: str) -> Tag:
    """Manual override, applied whether or not a suggestion is pending."""
    _validate_type(tag_type)
    tag = tag_repo.update_classification(db, tag_id, tag_type=tag_type, clear_suggestion=True)
    if not tag:
        raise LookupError("Tag not found")
    logger.info("Tag %r manually classified as %s", tag.name, tag_type)
    return tag
