from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base

# Fixed set of platforms; CSV imports read one column per platform.
SOCIAL_PLATFORMS = ("youtube", "twitter", "linkedin", "instagram", "website", "tiktok", "facebook")


class SocialLink(Base):
    __tablename__ = "social_links"

    id = Column(Integer, primary_key=True, index=True)
    profile_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String(50), nullable=False)
    url = Column(String(2000), nullable=False)

    profile = relationship("Profile", back_populates="social_links")
