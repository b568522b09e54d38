from sqlalchemy import Column, String, Date, DateTime, Boolean, text
from datetime import datetime
from models.base import Base


class NpmPackage(Base):
    """
    One row per npm package published by the tracked identity.

    Design:
    - package_name is the sole key
    - creation_date is written once, on first insert
    - last_publish_date is refreshed on every run the package is fetched
    - is_active is a soft-delete flag; rows are never removed
    """
    __tablename__ = "npm_package"

    package_name = Column(String, primary_key=True)

    creation_date = Column(Date, nullable=False)
    last_publish_date = Column(Date, nullable=False)

    is_active = Column(Boolean, nullable=False, default=True, server_default=text("true"))

    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<NpmPackage(name={self.package_name}, active={self.is_active})>"
