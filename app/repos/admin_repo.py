"""Admin-specific repository functions for dashboard stats."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.category import Category
from app.models.profile import Profile
from app.models.tag import Tag


def _count(db: Session, column, *criteria) -> int:
    q = db.query(func.count(column))
    for c in criteria:
        q = q.filter(c)
    return q.scalar() or 0


def get_stats(db: Session) -> dict:
    """Return admin dashboard stats."""
    recent_categories = (
        db.query(Category)
        .filter(Category.parent_id.is_(None))
        .order_by(Category.created_at.desc(), Category.id.desc())
        .limit(5)
        .all()
    )
    top_categories = (
        db.query(Category.id, Category.name, func.count(Profile.id).label("profile_count"))
        .outerjoin(Profile, Profile.category_id == Category.id)
        .filter(Category.parent_id.is_(None))
        .group_by(Category.id, Category.name)
        .order_by(func.count(Profile.id).desc(), Category.name.asc())
        .limit(5)
        .all()
    )
    recent_profiles = (
        db.query(Profile.id, Profile.name, Profile.image_url, Profile.created_at, Category.name.label("category_name"))
        .outerjoin(Category, Profile.category_id == Category.id)
        .order_by(Profile.created_at.desc(), Profile.id.desc())
        .limit(10)
        .all()
    )
    return {
        "published_profiles": _count(db, Profile.id, Profile.status == "published"),
        "pending_profiles": _count(db, Profile.id, Profile.status == "pending"),
        "draft_profiles": _count(db, Profile.id, Profile.status == "draft"),
        "total_categories": _count(db, Category.id, Category.parent_id.is_(None)),
        "total_subcategories": _count(db, Category.id, Category.parent_id.isnot(None)),
        "total_tags": _count(db, Tag.id),
        "universal_tags": _count(db, Tag.id, Tag.type == "universal"),
        "contextual_tags": _count(db, Tag.id, Tag.type == "contextual"),
        "pending_tag_suggestions": _count(db, Tag.id, Tag.suggested_type.isnot(None)),
        "recent_categories": [
            {"id": c.id, "name": c.name, "created_at": c.created_at.isoformat() if c.created_at else None}
            for c in recent_categories
        ],
        "top_categories": [
            {"id": row.id, "name": row.name, "profile_count": row.profile_count}
            for row in top_categories
        ],
        "recent_profiles": [
            {
                "id": row.id,
                "name": row.name,
                "image_url": row.image_url,
                "category_name": row.category_name,
                "created_at": row.created_at.isoformat() if row.created_at else None,
            }
            for row in recent_profiles
        ],
    }
