from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, func

from app.database import Base

TAG_TYPES = ("universal", "contextual")


class Tag(Base):
    """Profile tag. Universal tags apply across categories, contextual ones within a category."""

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(20), nullable=False, default="contextual")
    suggested_type = Column(String(20), nullable=True)  # pending classification suggestion
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class ProfileTag(Base):
    __tablename__ = "profile_tags"

    profile_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True)


Index("uq_tags_name", func.lower(Tag.name), unique=True)
