from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from datetime import datetime
from models.base import Base


class Category(Base):
    """
    Category named in the whitelist. Created on first encounter, never deleted.
    """
    __tablename__ = "category"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Category(id={self.id}, name={self.name})>"


class PackageCategory(Base):
    """
    Association of one package to one category.

    Rows for a package are replaced wholesale on every run, so the set for a
    whitelisted package always equals the categories named for it.
    """
    __tablename__ = "package_category"

    package_id = Column(
        String,
        ForeignKey("npm_package.package_name", ondelete="CASCADE"),
        primary_key=True
    )
    category_id = Column(
        Integer,
        ForeignKey("category.id", ondelete="CASCADE"),
        primary_key=True
    )

    __table_args__ = (
        Index("idx_package_category_category", "category_id"),
    )
