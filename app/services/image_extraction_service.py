import logging
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from sqlalchemy.orm import Session

from app.config import settings
from app.repos import profile_repo
from app.services.image_storage import (
    ALLOWED_IMAGE_TYPES,
    ImageStorageError,
    normalize_content_type,
    upload_image_bytes,
)

logger = logging.getLogger(__name__)

# Pages tried in this order; personal websites tend to carry the best portrait.
PLATFORM_ORDER = ("website", "youtube", "instagram", "twitter", "linkedin", "tiktok", "facebook")
USER_AGENT = "Mozilla/5.0 (compatible; ProfileDirectoryBot/1.0)"
IMAGE_META_ATTRS = (
    {"property": "og:image"},
    {"property": "og:image:url"},
    {"name": "twitter:image"},
    {"name": "twitter:image:src"},
)


class ImageExtractionError(RuntimeError):
    pass


def find_image_url(html: str, base_url: str) -> str | None:
    """Return the absolute URL of a page's preview image (og:image, twitter:image or image_src link)."""
    soup = BeautifulSoup(html, "html.parser")
    for attrs in IMAGE_META_ATTRS:
        tag = soup.find("meta", attrs=attrs)
        content = (tag.get("content") or "").strip() if tag else ""
        if content:
            return urljoin(base_url, content)
    link = soup.find("link", rel="image_src")
    href = (link.get("href") or "").strip() if link else ""
    if href:
        return urljoin(base_url, href)
    return None


def candidate_pages(profile) -> list[str]:
    links = {link.platform: link.url for link in profile.social_links if link.url}
    return [links[p] for p in PLATFORM_ORDER if p in links]


def _http_client() -> httpx.Client:
    return httpx.Client(
        timeout=settings.image_fetch_timeout_seconds,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml,image/*;q=0.9,*/*;q=0.8"},
    )


def download_image(client: httpx.Client, url: str) -> tuple[bytes, str]:
    """Stream an image, giving up as soon as it is known to exceed IMAGE_MAX_MB."""
    max_bytes = settings.image_max_mb * 1024 * 1024
    too_large = ImageExtractionError(f"Image larger than {settings.image_max_mb}MB")
    with client.stream("GET", url) as resp:
        resp.raise_for_status()
        content_type = normalize_content_type(resp.headers.get("content-type"))
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ImageExtractionError(f"Not an image: {content_type or 'unknown content type'}")
        declared = resp.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > max_bytes:
            raise too_large
        body = bytearray()
        for chunk in resp.iter_bytes():
            body.extend(chunk)
            if len(body) > max_bytes:
                raise too_large
    return bytes(body), content_type


def extract_image(db: Session, profile_id: int) -> dict:
    """
    Find a preview image on the profile's linked pages, store it and set profile.image_url.
    Raises LookupError for an unknown profile and ImageStorageError when storing fails.
    """
    profile = profile_repo.get_by_id(db, profile_id)
    if not profile:
        raise LookupError("Profile not found")

    pages = candidate_pages(profile)
    if not pages:
        return {
            "success": False,
            "message": "Profile has no social links to extract an image from",
            "data": {"profile_id": profile_id},
        }

    with _http_client() as client:
        for page in pages:
            try:
                resp = client.get(page)
                resp.raise_for_status()
                image_url = find_image_url(resp.text, str(resp.url))
                if not image_url:
                    logger.debug("No preview image on %s", page)
                    continue
                data, content_type = download_image(client, image_url)
            except (httpx.HTTPError, ImageExtractionError) as e:
                logger.info("Image extraction skipped %s for profile=%s: %s", page, profile_id, e)
                continue

            stored_url = upload_image_bytes(data, content_type, prefix=f"profile_{profile_id}")
            profile_repo.update(db, profile_id, image_url=stored_url)
            logger.info("Extracted image for profile=%s from %s", profile_id, page)
            return {
                "success": True,
                "message": f"Image extracted for {profile.name}",
                "data": {"profile_id": profile_id, "image_url": stored_url, "source": page},
            }

    return {
        "success": False,
        "message": "No image found on the profile's linked pages",
        "data": {"profile_id": profile_id},
    }


def extract_missing_images(db: Session, limit: int | None = None) -> dict:
    """Run extract_image for every profile without an image. One failure does not stop the rest."""
    profiles = profile_repo.get_missing_images(db, limit=limit)
    results = []
    extracted = 0
    for profile in profiles:
        try:
            result = extract_image(db, profile.id)
        except (LookupError, ImageStorageError) as e:
            logger.warning("Image extraction failed for profile=%s: %s", profile.id, e)
            result = {"success": False, "message": str(e), "data": {"profile_id": profile.id}}
        if result["success"]:
            extracted += 1
        results.append(result)
    logger.info("Bulk image extraction: %d/%d profiles updated", extracted, len(profiles))
    return {
        "success": True,
        "message": f"Extracted {extracted} of {len(profiles)} missing images",
        "data": {
            "processed": len(profiles),
            "extracted": extracted,
            "failed": len(profiles) - extracted,
            "results": results,
        },
    }
