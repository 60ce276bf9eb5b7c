from pydantic import BaseModel, Field, field_validator


class _Named(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str | None = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class CategoryCreate(_Named):
    pass


class CategoryUpdate(_Named):
    pass


class SubcategoryCreate(_Named):
    category_id: int


class SubcategoryUpdate(_Named):
    category_id: int | None = None
