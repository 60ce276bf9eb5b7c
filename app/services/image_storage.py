import logging
import time

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class ImageStorageError(RuntimeError):
    pass


def _get_client():
    return boto3.client("s3", region_name=settings.aws_region)


def public_url(key: str) -> str:
    base = (settings.s3_public_base_url or "").rstrip("/")
    if not base:
        base = f"https://{settings.s3_bucket}.s3.{settings.aws_region}.amazonaws.com"
    return f"{base}/{key}"


def normalize_content_type(content_type: str | None) -> str:
    """Drop parameters and lower-case, e.g. "image/JPEG; charset=binary" -> "image/jpeg"."""
    return (content_type or "").split(";")[0].strip().lower()


def build_key(prefix: str, content_type: str) -> str:
    """Object key like "profiles/profile_1712345678901.png"."""
    ext = ALLOWED_IMAGE_TYPES.get(content_type, "")
    return f"profiles/{prefix}_{int(time.time() * 1000)}{ext}"


def upload_image_bytes(data: bytes, content_type: str, prefix: str = "profile") -> str:
    """Store image bytes in the configured bucket and return the public URL."""
    content_type = normalize_content_type(content_type)
    if not settings.s3_bucket:
        raise ImageStorageError("Image storage is not configured (S3_BUCKET is empty)")
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ImageStorageError(f"Unsupported image type: {content_type or 'unknown'}")
    if not data:
        raise ImageStorageError("Image is empty")
    key = build_key(prefix, content_type)
    try:
        _get_client().put_object(
            Bucket=settings.s3_bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            CacheControl="public, max-age=31536000",
        )
    except (BotoCoreError, ClientError) as e:
        logger.warning("S3 upload failed for key=%s: %s", key, e)
        raise ImageStorageError(f"Upload failed: {e}") from e
    url = public_url(key)
    logger.info("Stored image %s (%d bytes)", key, len(data))
    return url
