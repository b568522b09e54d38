"""
Materialize whitelist categories and overwrite package/category associations
"""

from datetime import date, datetime
from typing import Dict, List
from sqlalchemy import select, delete, insert
from sqlalchemy.exc import SQLAlchemyError
from models.npm_package import NpmPackage
from models.category import Category, PackageCategory
from schemas.package_config import PackageConfig
from ingestion.session_channel import SerializedSession
from core.exceptions import PersistenceError, MissingCategoryError
import logging

logger = logging.getLogger(__name__)


class CategoryResolver:
    """
    Apply the whitelist mapping to the database.

    Steps:
    1. Invert the mapping into package -> categories
    2. Insert any whitelisted package that has no row yet (today's date as
       both creation and publish date)
    3. Upsert every referenced category by name
    4. Replace each whitelisted package's associations with exactly the
       resolved set (delete all, then insert)
    """

    def __init__(self, db: SerializedSession):
        self.db = db

    async def resolve(self, config: PackageConfig) -> Dict[str, List[str]]:
        """
        Returns:
            The applied package -> categories mapping
        """
        logger.info("Processing whitelist and categories...")

        package_categories = config.package_categories()
        if not package_categories:
            logger.warning("Whitelist names no packages")

        await self.ensure_packages(list(package_categories.keys()))
        category_ids = await self.ensure_categories(config.categories)

        for package_name, categories in package_categories.items():
            ids = []
            for category in categories:
                if category not in category_ids:
                    raise MissingCategoryError(
                        f"Category {category!r} has no identifier",
                        context={"category": category, "package_name": package_name}
                    )
                ids.append(category_ids[category])

            await self.replace_package_categories(package_name, ids)
            logger.info(f"Updated {package_name} with categories: {', '.join(categories)}")

        return package_categories

    async def ensure_packages(self, package_names: List[str]) -> None:
        """Insert whitelisted packages that are not in npm_package yet"""
        if not package_names:
            return

        today = date.today()
        now = datetime.utcnow()
        stmt = self.db.insert(NpmPackage.__table__).values([
            {
                "package_name": name,
                "creation_date": today,
                "last_publish_date": today,
                "is_active": True,
                "updated_at": now,
            }
            for name in package_names
        ]).on_conflict_do_nothing(index_elements=["package_name"])

        await self._execute(stmt, "INSERT", NpmPackage.__tablename__)

    async def ensure_categories(self, category_names: List[str]) -> Dict[str, int]:
        """
        Upsert categories by name and return ``{name: id}`` for those names.
        """
        if not category_names:
            return {}

        now = datetime.utcnow()
        for name in category_names:
            stmt = self.db.insert(Category.__table__).values(name=name, updated_at=now)
            stmt = stmt.on_conflict_do_update(
                index_elements=["name"],
                set_={"updated_at": stmt.excluded.updated_at}
            )
            await self._execute(stmt, "UPSERT", Category.__tablename__)

        result = await self._execute(
            select(Category.name, Category.id).where(Category.name.in_(category_names)),
            "SELECT",
            Category.__tablename__
        )
        return {name: category_id for name, category_id in result.all()}

    async def replace_package_categories(self, package_name: str, category_ids: List[int]) -> None:
        await self._execute(
            delete(PackageCategory.__table__).where(PackageCategory.package_id == package_name),
            "DELETE",
            PackageCategory.__tablename__
        )

        if category_ids:
            await self._execute(
                insert(PackageCategory.__table__).values([
                    {"package_id": package_name, "category_id": category_id}
                    for category_id in category_ids
                ]),
                "INSERT",
                PackageCategory.__tablename__
            )

    async def _execute(self, statement, operation: str, table_name: str):
        try:
            return await self.db.execute(statement)
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"{operation} on {table_name} failed",
                context={"operation": operation, "table_name": table_name},
                original_exception=e
            )
