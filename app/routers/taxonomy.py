"""Admin endpoints for categories, subcategories and tags."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.slugs import create_slug
from app.database import get_db
from app.dependencies import get_current_admin
from app.models.admin_user import AdminUser
from app.models.category import Category
from app.models.tag import TAG_TYPES, Tag
from app.repos import category_repo
from app.repos.tag_repo import get_all_with_counts as get_tags_with_counts
from app.schemas.category import CategoryCreate, CategoryUpdate, SubcategoryCreate, SubcategoryUpdate
from app.schemas.tag import TagClassification
from app.services import tag_classification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin-taxonomy"])


def _category_to_response(c: Category) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "slug": c.slug,
        "parent_id": c.parent_id,
        "created_at": c.created_at.isoformat() if c.created_at else None,
    }


def _tag_to_response(t: Tag) -> dict:
    return {"id": t.id, "name": t.name, "type": t.type, "suggested_type": t.suggested_type}


def _get_top_level_or_404(db: Session, category_id: int) -> Category:
    category = category_repo.get_by_id(db, category_id)
    if not category or category.parent_id is not None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


def _get_subcategory_or_404(db: Session, subcategory_id: int) -> Category:
    subcategory = category_repo.get_by_id(db, subcategory_id)
    if not subcategory or subcategory.parent_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subcategory not found")
    return subcategory


def _ensure_name_free(db: Session, name: str, parent_id: int | None, exclude_id: int | None = None) -> None:
    existing = category_repo.get_by_name(db, name, parent_id)
    if existing and existing.id != exclude_id:
        kind = "Subcategory" if parent_id else "Category"
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"{kind} {name!r} already exists")


# ---- Categories CRUD ----
@router.get("/categories")
def list_categories(
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """List top-level categories with subcategory and profile counts. Admin only."""
    rows = category_repo.get_all_with_counts(db)
    return {
        "success": True,
        "data": [
            {**_category_to_response(c), "subcategory_count": subs, "profile_count": profiles}
            for c, subs, profiles in rows
        ],
    }


@router.post("/categories")
def create_category(
    body: CategoryCreate,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Create a category; the slug is derived from the name when not given. Admin only."""
    _ensure_name_free(db, body.name, None)
    try:
        category = category_repo.create(db, body.name, slug=body.slug or create_slug(body.name))
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Category {body.name!r} already exists") from e
    logger.info("Admin %s created category %r", admin.username, category.name)
    return {"success": True, "message": "Category created successfully", "data": _category_to_response(category)}


@router.put("/categories/{category_id}")
def update_category(
    category_id: int,
    body: CategoryUpdate,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Rename a category. Admin only."""
    _get_top_level_or_404(db, category_id)
    _ensure_name_free(db, body.name, None, exclude_id=category_id)
    try:
        category = category_repo.update(db, category_id, name=body.name, slug=body.slug or create_slug(body.name))
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Category {body.name!r} already exists") from e
    return {"success": True, "message": "Category updated successfully", "data": _category_to_response(category)}


@router.delete("/categories/{category_id}")
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Delete a category and its subcategories. Refused while profiles use it. Admin only."""
    _get_top_level_or_404(db, category_id)
    if category_repo.count_profiles(db, category_id) > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete category with associated profiles",
        )
    if not category_repo.delete(db, category_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    logger.info("Admin %s deleted category id=%s", admin.username, category_id)
    return {"success": True, "message": "Category deleted successfully"}


# ---- Subcategories CRUD ----
@router.get("/subcategories")
def list_subcategories(
    category_id: int | None = None,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """List subcategories, optionally for one category. Admin only."""
    rows = category_repo.get_subcategories_with_counts(db, category_id=category_id)
    return {
        "success": True,
        "data": [
            {
                **_category_to_response(s),
                "category_id": s.parent_id,
                "category_name": parent_name,
                "profile_count": profiles,
            }
            for s, parent_name, profiles in rows
        ],
    }


@router.post("/subcategories")
def create_subcategory(
    body: SubcategoryCreate,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Create a subcategory under a top-level category. Admin only."""
    parent = category_repo.get_by_id(db, body.category_id)
    if not parent or parent.parent_id is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category_id")
    _ensure_name_free(db, body.name, parent.id)
    try:
        subcategory = category_repo.create(
            db,
            body.name,
            slug=body.slug or create_slug(body.name),
            parent_id=parent.id,
        )
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Subcategory {body.name!r} already exists") from e
    return {"success": True, "message": "Subcategory created successfully", "data": _category_to_response(subcategory)}


@router.put("/subcategories/{subcategory_id}")
def update_subcategory(
    subcategory_id: int,
    body: SubcategoryUpdate,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Rename or move a subcategory. Admin only."""
    subcategory = _get_subcategory_or_404(db, subcategory_id)
    parent_id = body.category_id or subcategory.parent_id
    if parent_id != subcategory.parent_id:
        parent = category_repo.get_by_id(db, parent_id)
        if not parent or parent.parent_id is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category_id")
        if category_repo.count_profiles(db, subcategory_id) > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot move a subcategory with associated profiles",
            )
    _ensure_name_free(db, body.name, parent_id, exclude_id=subcategory_id)
    try:
        updated = category_repo.update(
            db,
            subcategory_id,
            name=body.name,
            slug=body.slug or create_slug(body.name),
            parent_id=parent_id,
        )
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Subcategory {body.name!r} already exists") from e
    return {"success": True, "message": "Subcategory updated successfully", "data": _category_to_response(updated)}


@router.delete("/subcategories/{subcategory_id}")
def delete_subcategory(
    subcategory_id: int,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Delete a subcategory. Refused while profiles use it. Admin only."""
    _get_subcategory_or_404(db, subcategory_id)
    if category_repo.count_profiles(db, subcategory_id) > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete subcategory with associated profiles",
        )
    category_repo.delete(db, subcategory_id)
    return {"success": True, "message": "Subcategory deleted successfully"}


# ---- Tags ----
@router.get("/tags")
def list_tags(
    tag_type: str | None = Query(None, alias="type"),
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """List tags with profile counts, optionally filtered by type. Admin only."""
    if tag_type and tag_type not in TAG_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid type. Must be "universal" or "contextual"')
    rows = get_tags_with_counts(db, tag_type=tag_type)
    return {
        "success": True,
        "data": [{**_tag_to_response(t), "profile_count": count} for t, count in rows],
    }


@router.get("/tags/analyze")
def analyze_tags(
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Compute and store universal/contextual suggestions for all tags. Admin only."""
    try:
        return {"success": True, "data": tag_classification_service.analyze_and_suggest(db)}
    except Exception as e:
        logger.exception("Tag analysis failed: %s", e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error analyzing tags") from e


@router.put("/tags/{tag_id}/approve")
def approve_tag_classification(
    tag_id: int,
    body: TagClassification,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    try:
        tag = tag_classification_service.approve_classification(db, tag_id, body.type)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found") from e
    return {"success": True, "data": _tag_to_response(tag), "message": f'Tag "{tag.name}" approved as {body.type}'}


@router.put("/tags/{tag_id}/reject")
def reject_tag_classification(
    tag_id: int,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    try:
        tag = tag_classification_service.reject_classification(db, tag_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found") from e
    return {
        "success": True,
        "data": _tag_to_response(tag),
        "message": f'Tag classification suggestion rejected for "{tag.name}"',
    }


@router.put("/tags/{tag_id}/force")
def force_tag_classification(
    tag_id: int,
    body: TagClassification,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    try:
        tag = tag_classification_service.force_classification(db, tag_id, body.type)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tag not found") from e
    return {"success": True, "data": _tag_to_response(tag), "message": f'Tag "{tag.name}" manually classified as {body.type}'}
