import logging

from sqlalchemy import distinct, func, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.profile import Profile
from app.models.tag import Tag, ProfileTag

logger = logging.getLogger(__name__)


def get_by_id(db: Session, tag_id: int) -> Tag | None:
    return db.query(Tag).filter(Tag.id == tag_id).first()


def get_by_name(db: Session, name: str) -> Tag | None:
    return db.query(Tag).filter(func.lower(Tag.name) == name.strip().lower()).first()


def get_or_create(db: Session, name: str, tag_type: str = "contextual") -> tuple[Tag, bool]:
    """
    Resolve a tag by case-insensitive name, creating it with tag_type when absent.
    Returns (tag, created). Does not commit.
    """
    existing = get_by_name(db, name)
    if existing:
        return existing, False
    tag = Tag(name=name.strip(), type=tag_type)
    try:
        with db.begin_nested():
            db.add(tag)
            db.flush()
    except IntegrityError:
        existing = get_by_name(db, name)
        if existing is None:
            raise
        logger.info("Tag %r created concurrently; reusing id=%s", name, existing.id)
        return existing, False
    return tag, True


def link_profile_tag(db: Session, profile_id: int, tag_id: int) -> bool:
    """
    Link a tag to a profile with ON CONFLICT DO NOTHING.
    Returns True if a new link row was inserted. Does not commit.
    """
    result = db.execute(
        text(
            """
            INSERT INTO profile_tags (profile_id, tag_id)
            VALUES (:profile_id, :tag_id)
            ON CONFLICT DO NOTHING
            """
        ),
        {"profile_id": profile_id, "tag_id": tag_id},
    )
    return bool(result.rowcount and result.rowcount > 0)


def unlink_all_for_profile(db: Session, profile_id: int) -> int:
    return db.query(ProfileTag).filter(ProfileTag.profile_id == profile_id).delete(synchronize_session=False)


def set_profile_tags(db: Session, profile_id: int, names: list[str], tag_type: str = "contextual") -> list[Tag]:
    """Replace the profile's tags with the given names, creating missing tags. Does not commit."""
    unlink_all_for_profile(db, profile_id)
    tags = []
    seen: set[str] = set()
    for name in names:
        key = name.strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        tag, _ = get_or_create(db, name, tag_type=tag_type)
        link_profile_tag(db, profile_id, tag.id)
        tags.append(tag)
    return tags


def get_all_with_counts(db: Session, tag_type: str | None = None) -> list[tuple[Tag, int]]:
    """Tags as (tag, profile_count), ordered by name."""
    q = (
        db.query(Tag, func.count(ProfileTag.profile_id))
        .outerjoin(ProfileTag, ProfileTag.tag_id == Tag.id)
        .group_by(Tag.id)
        .order_by(Tag.name.asc())
    )
    if tag_type:
        q = q.filter(Tag.type == tag_type)
    return q.all()


def get_category_spread(db: Session) -> dict[int, int]:
    """Map tag id -> number of distinct top-level categories among its profiles."""
    rows = (
        db.query(ProfileTag.tag_id, func.count(distinct(Profile.category_id)))
        .join(Profile, Profile.id == ProfileTag.profile_id)
        .group_by(ProfileTag.tag_id)
        .all()
    )
    return {tag_id: spread for tag_id, spread in rows}


def get_all(db: Session) -> list[Tag]:
    return db.query(Tag).order_by(Tag.name.asc()).all()


def update_classification(
    db: Session,
    tag_id: int,
    *,
    tag_type: str | None = None,
    suggested_type: str | None = None,
    clear_suggestion: bool = False,
) -> Tag | None:
    tag = get_by_id(db, tag_id)
    if not tag:
        return None
    if tag_type is not None:
        tag.type = tag_type
    if clear_suggestion:
        tag.suggested_type = None
    elif suggested_type is not None:
        tag.suggested_type = suggested_type
    db.commit()
    db.refresh(tag)
    return tag
