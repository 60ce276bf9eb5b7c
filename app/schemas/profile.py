from typing import Literal

from pydantic import BaseModel, Field, field_validator

from app.models.social_link import SOCIAL_PLATFORMS

ProfileStatus = Literal["published", "pending", "draft"]


def _require_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name is required")
    return v


class SocialLinkIn(BaseModel):
    platform: str
    url: str = Field(min_length=1, max_length=2000)

    @field_validator("platform")
    @classmethod
    def known_platform(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in SOCIAL_PLATFORMS:
            raise ValueError(f"Unknown platform. Must be one of: {', '.join(SOCIAL_PLATFORMS)}")
        return v


class ProfileCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category_id: int
    subcategory_id: int | None = None
    image_url: str | None = None
    insight: str | None = None
    notes: str | None = None
    notes_url: str | None = None
    location: str | None = None
    language: str | None = None
    status: ProfileStatus = "draft"
    social_links: list[SocialLinkIn] = []
    tags: list[str] = []

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _require_name(v)


class ProfileUpdate(BaseModel):
    """Partial update. Omitted fields are unchanged; social_links / tags, when given, replace the current set."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    category_id: int | None = None
    subcategory_id: int | None = None
    image_url: str | None = None
    insight: str | None = None
    notes: str | None = None
    notes_url: str | None = None
    location: str | None = None
    language: str | None = None
    status: ProfileStatus | None = None
    social_links: list[SocialLinkIn] | None = None
    tags: list[str] | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return None if v is None else _require_name(v)
