from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base

PROFILE_STATUSES = ("published", "pending", "draft")


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    subcategory_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    image_url = Column(String(2000))
    insight = Column(Text)
    notes = Column(Text)
    notes_url = Column(String(2000))
    location = Column(String(255))
    language = Column(String(100), default="English")
    status = Column(String(20), default="published", index=True)  # published | pending | draft
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("Category", foreign_keys=[category_id])
    subcategory = relationship("Category", foreign_keys=[subcategory_id])
    social_links = relationship(
        "SocialLink",
        back_populates="profile",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SocialLink.id",
    )
    # Links are written through tag_repo.link_profile_tag, never through this collection.
    tags = relationship("Tag", secondary="profile_tags", viewonly=True, order_by="Tag.name")
