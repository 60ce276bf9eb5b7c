from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from app.models.profile import Profile
from app.models.social_link import SocialLink
from app.models.tag import ProfileTag

# Columns an admin may set directly on a profile
PROFILE_FIELDS = (
    "name",
    "category_id",
    "subcategory_id",
    "image_url",
    "insight",
    "notes",
    "notes_url",
    "location",
    "language",
    "status",
)


def get_by_id(db: Session, profile_id: int) -> Profile | None:
    return (
        db.query(Profile)
        .options(selectinload(Profile.social_links), selectinload(Profile.tags))
        .filter(Profile.id == profile_id)
        .first()
    )


def get_all_paginated(
    db: Session,
    search: str | None = None,
    category_id: int | None = None,
    status: str | None = None,
    limit: int = 12,
    offset: int = 0,
) -> tuple[list[Profile], int]:
    """List profiles newest first with optional name search, category and status filters. Returns (items, total)."""
    q = db.query(Profile)
    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.filter(Profile.name.ilike(term))
    if category_id is not None:
        q = q.filter(or_(Profile.category_id == category_id, Profile.subcategory_id == category_id))
    if status:
        q = q.filter(Profile.status == status)
    total = q.count()
    items = (
        q.options(
            selectinload(Profile.category),
            selectinload(Profile.subcategory),
            selectinload(Profile.social_links),
            selectinload(Profile.tags),
        )
        .order_by(Profile.created_at.desc(), Profile.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return items, total


def create(db: Session, *, commit: bool = True, **fields) -> Profile:
    """
    Insert a profile. With commit=False the row is only flushed so its id is
    available inside the caller's transaction.
    """
    profile = Profile(**{k: v for k, v in fields.items() if k in PROFILE_FIELDS})
    db.add(profile)
    if commit:
        db.commit()
        db.refresh(profile)
    else:
        db.flush()
    return profile


def add_social_link(db: Session, profile_id: int, platform: str, url: str) -> SocialLink:
    """Add one social link. Does not commit."""
    link = SocialLink(profile_id=profile_id, platform=platform, url=url.strip())
    db.add(link)
    db.flush()
    return link


def replace_social_links(db: Session, profile_id: int, links: list[tuple[str, str]]) -> None:
    """Drop every social link of the profile and insert (platform, url) pairs. Does not commit."""
    db.query(SocialLink).filter(SocialLink.profile_id == profile_id).delete(synchronize_session=False)
    for platform, url in links:
        add_social_link(db, profile_id, platform, url)


def update(db: Session, profile_id: int, *, commit: bool = True, **fields) -> Profile | None:
    """Set the given fields. Keys that are absent are left untouched; explicit None clears optional columns."""
    profile = db.query(Profile).filter(Profile.id == profile_id).first()
    if not profile:
        return None
    for key, value in fields.items():
        if key in PROFILE_FIELDS:
            setattr(profile, key, value)
    if commit:
        db.commit()
        db.refresh(profile)
    else:
        db.flush()
    return profile


def delete(db: Session, profile_id: int) -> bool:
    """Delete a profile together with its social links and tag links. Returns True if deleted."""
    profile = (
        db.query(Profile)
        .options(selectinload(Profile.social_links))
        .filter(Profile.id == profile_id)
        .first()
    )
    if not profile:
        return False
    # Loaded social links go through the ORM cascade; tag links are removed explicitly
    # so this also holds where FK cascades are not enforced (SQLite).
    db.query(ProfileTag).filter(ProfileTag.profile_id == profile_id).delete(synchronize_session=False)
    db.delete(profile)
    db.commit()
    return True


def get_missing_images(db: Session, limit: int | None = None) -> list[Profile]:
    """Profiles without an image, oldest first."""
    q = (
        db.query(Profile)
        .options(selectinload(Profile.social_links))
        .filter(or_(Profile.image_url.is_(None), Profile.image_url == ""))
        .order_by(Profile.id.asc())
    )
    if limit:
        q = q.limit(limit)
    return q.all()
