from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import relationship

from app.database import Base


class Category(Base):
    """Directory category. Rows with a parent_id are subcategories of that parent."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), index=True)
    parent_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent", order_by="Category.name")

    @property
    def is_subcategory(self) -> bool:
        return self.parent_id is not None


# Names are unique case-insensitively within a parent scope. NULL parent_id never
# collides in a plain unique index, so top-level names get their own partial index.
Index(
    "uq_categories_root_name",
    func.lower(Category.name),
    unique=True,
    postgresql_where=Category.parent_id.is_(None),
    sqlite_where=Category.parent_id.is_(None),
)
Index(
    "uq_categories_child_name",
    Category.parent_id,
    func.lower(Category.name),
    unique=True,
    postgresql_where=Category.parent_id.isnot(None),
    sqlite_where=Category.parent_id.isnot(None),
)
