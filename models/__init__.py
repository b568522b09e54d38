"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class
    npm_package: Packages published by the tracked identity
    category: Whitelist categories and package/category associations

Database Schema:
    Tables are declared without a schema. In production they live in the
    ``npm_count`` schema, selected at engine level through
    ``schema_translate_map`` (see core.database).

Usage:
    from models import NpmPackage, Category, PackageCategory

Relationships:
    - NpmPackage → PackageCategory (one-to-many, replaced every run)
    - Category → PackageCategory (one-to-many)
"""

from models.base import Base
from models.npm_package import NpmPackage
from models.category import Category, PackageCategory

__all__ = [
    "Base",
    "NpmPackage",
    "Category",
    "PackageCategory",
]
