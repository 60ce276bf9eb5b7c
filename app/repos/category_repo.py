import logging

from sqlalchemy import distinct, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from app.models.category import Category
from app.models.profile import Profile

logger = logging.getLogger(__name__)


def get_by_id(db: Session, category_id: int) -> Category | None:
    return db.query(Category).filter(Category.id == category_id).first()


def get_by_name(db: Session, name: str, parent_id: int | None = None) -> Category | None:
    """
    Case-insensitive lookup within a parent scope.
    parent_id=None searches top-level categories only.
    """
    q = db.query(Category).filter(func.lower(Category.name) == name.strip().lower())
    if parent_id is None:
        q = q.filter(Category.parent_id.is_(None))
    else:
        q = q.filter(Category.parent_id == parent_id)
    return q.first()


def get_or_create(
    db: Session,
    name: str,
    parent_id: int | None = None,
    slug: str | None = None,
) -> tuple[Category, bool]:
    """
    Resolve a category by name within its parent scope, creating it when absent.
    Returns (category, created). Does not commit; the caller owns the transaction.
    A concurrent insert of the same name trips the unique index and the existing row is re-fetched.
    """
    existing = get_by_name(db, name, parent_id)
    if existing:
        return existing, False
    category = Category(name=name.strip(), parent_id=parent_id, slug=slug)
    try:
        with db.begin_nested():
            db.add(category)
            db.flush()
    except IntegrityError:
        existing = get_by_name(db, name, parent_id)
        if existing is None:
            raise
        logger.info("Category %r created concurrently; reusing id=%s", name, existing.id)
        return existing, False
    return category, True


def create(db: Session, name: str, slug: str | None = None, parent_id: int | None = None) -> Category:
    category = Category(name=name.strip(), slug=slug, parent_id=parent_id)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update(
    db: Session,
    category_id: int,
    *,
    name: str | None = None,
    slug: str | None = None,
    parent_id: int | None = None,
) -> Category | None:
    category = get_by_id(db, category_id)
    if not category:
        return None
    if name is not None:
        category.name = name.strip()
    if slug is not None:
        category.slug = slug
    if parent_id is not None:
        category.parent_id = parent_id
    db.commit()
    db.refresh(category)
    return category


def get_all_with_counts(db: Session) -> list[tuple[Category, int, int]]:
    """Top-level categories as (category, subcategory_count, profile_count), ordered by name."""
    child = aliased(Category)
    return (
        db.query(
            Category,
            func.count(distinct(child.id)),
            func.count(distinct(Profile.id)),
        )
        .outerjoin(child, child.parent_id == Category.id)
        .outerjoin(Profile, Profile.category_id == Category.id)
        .filter(Category.parent_id.is_(None))
        .group_by(Category.id)
        .order_by(Category.name.asc())
        .all()
    )


def get_subcategories_with_counts(
    db: Session,
    category_id: int | None = None,
) -> list[tuple[Category, str, int]]:
    """Subcategories as (subcategory, parent_name, profile_count), ordered by parent then name."""
    parent = aliased(Category)
    q = (
        db.query(Category, parent.name, func.count(distinct(Profile.id)))
        .join(parent, Category.parent_id == parent.id)
        .outerjoin(Profile, Profile.subcategory_id == Category.id)
    )
    if category_id is not None:
        q = q.filter(Category.parent_id == category_id)
    return q.group_by(Category.id, parent.name).order_by(parent.name.asc(), Category.name.asc()).all()


def count_profiles(db: Session, category_id: int) -> int:
    """Profiles referencing the category either as category or as subcategory."""
    return (
        db.query(func.count(Profile.id))
        .filter((Profile.category_id == category_id) | (Profile.subcategory_id == category_id))
        .scalar()
        or 0
    )


def delete(db: Session, category_id: int) -> bool:
    """Delete a category and its subcategories. Returns True if deleted."""
    category = get_by_id(db, category_id)
    if not category:
        return False
    db.query(Category).filter(Category.parent_id == category_id).delete(synchronize_session=False)
    db.delete(category)
    db.commit()
    return True
