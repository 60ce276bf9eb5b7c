import logging
import math
import os
import shutil
import tempfile
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.dependencies import get_current_admin
from app.models.admin_user import AdminUser
from app.models.profile import PROFILE_STATUSES, Profile
from app.repos.admin_repo import get_stats
from app.repos.category_repo import get_by_id as get_category_by_id
from app.repos.profile_repo import (
    add_social_link,
    create as create_profile,
    delete as delete_profile,
    get_all_paginated as get_profiles_paginated,
    get_by_id as get_profile_by_id,
    replace_social_links,
    update as update_profile,
)
from app.repos.tag_repo import set_profile_tags
from app.schemas.profile import ProfileCreate, ProfileUpdate
from app.services.csv_importer import CsvParseError, import_csv_file
from app.services.image_extraction_service import extract_image, extract_missing_images
from app.services.image_storage import (
    ALLOWED_IMAGE_TYPES,
    ImageStorageError,
    normalize_content_type,
    upload_image_bytes,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

# Profile columns that an update leaves untouched when sent as null
NON_NULLABLE_UPDATE_FIELDS = ("name", "category_id", "language", "status")


def _profile_to_response(p: Profile) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "category_id": p.category_id,
        "category_name": p.category.name if p.category else None,
        "subcategory_id": p.subcategory_id,
        "subcategory_name": p.subcategory.name if p.subcategory else None,
        "image_url": p.image_url,
        "insight": p.insight,
        "notes": p.notes,
        "notes_url": p.notes_url,
        "location": p.location,
        "language": p.language,
        "status": p.status,
        "social_links": [{"platform": link.platform, "url": link.url} for link in p.social_links],
        "tags": [{"id": t.id, "name": t.name, "type": t.type} for t in p.tags],
        "created_at": p.created_at.isoformat() if p.created_at else None,
        "updated_at": p.updated_at.isoformat() if p.updated_at else None,
    }


def _validate_category_refs(db: Session, category_id: int, subcategory_id: int | None) -> None:
    category = get_category_by_id(db, category_id)
    if not category or category.parent_id is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category_id")
    if subcategory_id is None:
        return
    subcategory = get_category_by_id(db, subcategory_id)
    if not subcategory or subcategory.parent_id != category_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Subcategory does not belong to the selected category",
        )


@router.get("/stats")
def get_admin_stats(
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Return dashboard stats. Admin only."""
    try:
        return {"success": True, "data": get_stats(db)}
    except Exception as e:
        logger.exception("Admin stats failed for admin=%s: %s", admin.username, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load admin stats") from e


# ---- Profiles CRUD ----
@router.get("/profiles")
def list_profiles(
    page: int = 1,
    limit: int = 12,
    search: str | None = None,
    category_id: int | None = None,
    status_filter: str | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """List profiles with name search, category and status filters, pagination. Admin only."""
    page = max(1, page)
    limit = min(max(1, limit), 100)
    if status_filter and status_filter not in PROFILE_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status filter")
    offset = (page - 1) * limit
    profiles, total = get_profiles_paginated(
        db,
        search=search,
        category_id=category_id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    return {
        "success": True,
        "data": {"profiles": [_profile_to_response(p) for p in profiles]},
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }


@router.get("/profiles/{profile_id}")
def get_profile(
    profile_id: int,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Get one profile. Admin only."""
    profile = get_profile_by_id(db, profile_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return {"success": True, "data": _profile_to_response(profile)}


@router.post("/profiles")
def create_profile_admin(
    body: ProfileCreate,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Create a profile with its social links and tags. Admin only."""
    _validate_category_refs(db, body.category_id, body.subcategory_id)
    fields = body.model_dump(exclude={"social_links", "tags"})
    fields["language"] = fields.get("language") or settings.import_default_language
    try:
        profile = create_profile(db, commit=False, **fields)
        for link in body.social_links:
            add_social_link(db, profile.id, link.platform, link.url)
        set_profile_tags(db, profile.id, body.tags, tag_type=settings.import_default_tag_type)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Create profile failed for admin=%s: %s", admin.username, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error creating profile") from e
    logger.info("Admin %s created profile id=%s", admin.username, profile.id)
    return {
        "success": True,
        "message": "Profile created successfully",
        "data": _profile_to_response(get_profile_by_id(db, profile.id)),
    }


@router.put("/profiles/{profile_id}")
def update_profile_admin(
    profile_id: int,
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Update a profile. Admin only. Given social_links / tags replace the existing ones."""
    profile = get_profile_by_id(db, profile_id)
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    fields = body.model_dump(exclude_unset=True)
    social_links = fields.pop("social_links", None)
    tags = fields.pop("tags", None)
    for key in NON_NULLABLE_UPDATE_FIELDS:
        if key in fields and fields[key] is None:
            fields.pop(key)

    if "category_id" in fields or "subcategory_id" in fields:
        category_id = fields.get("category_id", profile.category_id)
        subcategory_id = fields.get("subcategory_id", profile.subcategory_id)
        if "subcategory_id" not in fields and category_id != profile.category_id:
            # Moving to another category drops a subcategory that belonged to the old one.
            subcategory_id = None
            fields["subcategory_id"] = None
        _validate_category_refs(db, category_id, subcategory_id)

    try:
        update_profile(db, profile_id, commit=False, **fields)
        if social_links is not None:
            replace_social_links(db, profile_id, [(link["platform"], link["url"]) for link in social_links])
        if tags is not None:
            set_profile_tags(db, profile_id, tags, tag_type=settings.import_default_tag_type)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Update profile id=%s failed: %s", profile_id, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error updating profile") from e
    db.expire_all()
    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": _profile_to_response(get_profile_by_id(db, profile_id)),
    }


@router.delete("/profiles/{profile_id}")
def delete_profile_admin(
    profile_id: int,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Delete a profile with its social links and tag links. Admin only."""
    if not delete_profile(db, profile_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    logger.info("Admin %s deleted profile id=%s", admin.username, profile_id)
    return {"success": True, "message": "Profile deleted successfully"}


# ---- CSV import ----
@router.post("/upload-csv")
def upload_csv(
    file: UploadFile | None = File(None, description="CSV file with a header row"),
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Bulk-create profiles from a CSV upload. Row failures are reported, not fatal. Admin only."""
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No CSV file uploaded")

    logger.info("Admin %s uploading CSV %s", admin.username, file.filename)
    max_bytes = settings.max_csv_upload_mb * 1024 * 1024
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(delete=False, suffix=".csv") as tmp:
            tmp_path = tmp.name
            shutil.copyfileobj(file.file, tmp)
        if os.path.getsize(tmp_path) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Max allowed is {settings.max_csv_upload_mb}MB.",
            )
        summary = import_csv_file(db, tmp_path)
    except HTTPException:
        raise
    except CsvParseError as e:
        logger.warning("CSV parsing error for %s: %s", file.filename, e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Error parsing CSV file", "error": str(e)},
        )
    except Exception as e:
        logger.exception("Error processing CSV %s: %s", file.filename, e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Error processing CSV file", "error": str(e)},
        )
    finally:
        if tmp_path:
            Path(tmp_path).unlink(missing_ok=True)

    return {
        "success": True,
        "message": f"CSV processed: {summary.success_count} profiles created, {summary.error_count} errors",
        "data": summary.to_response(),
    }


# ---- Images ----
@router.post("/upload-image")
def upload_image(
    image: UploadFile | None = File(None, description="Profile image (jpeg, png, gif, webp)"),
    admin: AdminUser = Depends(get_current_admin),
):
    """Store an image and return its public URL. Admin only."""
    if image is None or not image.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No image file provided")
    content_type = normalize_content_type(image.content_type)
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be a jpeg, png, gif or webp image")
    max_bytes = settings.max_image_upload_mb * 1024 * 1024
    data = image.file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Max allowed is {settings.max_image_upload_mb}MB.",
        )
    try:
        url = upload_image_bytes(data, content_type, prefix="profile")
    except ImageStorageError as e:
        logger.warning("Image upload failed for admin=%s: %s", admin.username, e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Failed to upload image", "error": str(e)},
        )
    return {"success": True, "url": url}


@router.post("/profiles/extract-all-images")
def extract_all_profile_images(
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Extract images for every profile that has none. Admin only."""
    try:
        return extract_missing_images(db)
    except Exception as e:
        logger.exception("Bulk image extraction failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error extracting all profile images",
        ) from e


@router.post("/profiles/{profile_id}/extract-image")
def extract_profile_image(
    profile_id: int,
    db: Session = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin),
):
    """Extract and store the image of one profile from its linked pages. Admin only."""
    if profile_id <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid profile ID")
    try:
        return extract_image(db, profile_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found") from e
    except ImageStorageError as e:
        logger.warning("Image extraction storage failed for profile=%s: %s", profile_id, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Image storage failed: {e}") from e
    except Exception as e:
        logger.exception("Image extraction failed for profile=%s: %s", profile_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error extracting profile image",
        ) from e
