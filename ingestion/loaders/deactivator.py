"""
Soft-delete packages that fall off the whitelist or match the blacklist
"""

from datetime import datetime
from typing import List
from sqlalchemy import func, select, update, or_
from sqlalchemy.exc import SQLAlchemyError
from models.npm_package import NpmPackage
from schemas.package_config import PackageConfig
from ingestion.session_channel import SerializedSession
from core.exceptions import PersistenceError
import logging

logger = logging.getLogger(__name__)


class Deactivator:
    """
    Two idempotent passes that only ever set ``is_active = false``.

    Both passes report every matching name, whether it was active before
    or not.
    """

    def __init__(self, db: SerializedSession):
        self.db = db

    async def deactivate_unlisted(self, config: PackageConfig) -> List[str]:
        """Deactivate every package whose name is not whitelisted"""
        condition = NpmPackage.package_name.not_in(config.whitelisted_packages)
        names = await self._deactivate(condition)

        if names:
            logger.info("Deactivated non-whitelisted packages:")
            for name in names:
                logger.info(f"- {name}")
        return names

    async def deactivate_blacklisted(self, config: PackageConfig) -> List[str]:
        """
        Deactivate packages under a blacklisted namespace or with a
        blacklisted name, whitelisted or not.
        """
        logger.info("Processing blacklist...")

        blacklist = config.blacklist
        # Case-sensitive prefix match on every backend
        clauses = [
            func.substr(NpmPackage.package_name, 1, len(prefix)) == prefix
            for prefix in blacklist.namespaces
        ]
        if blacklist.packages:
            clauses.append(NpmPackage.package_name.in_(blacklist.packages))

        if not clauses:
            return []

        names = await self._deactivate(or_(*clauses))

        if names:
            logger.info("Deactivated blacklisted packages:")
            for name in names:
                logger.info(f"- {name}")
        return names

    async def run(self, config: PackageConfig) -> dict:
        unlisted = await self.deactivate_unlisted(config)
        blacklisted = await self.deactivate_blacklisted(config)
        return {"whitelist": unlisted, "blacklist": blacklisted}

    async def _deactivate(self, condition) -> List[str]:
        try:
            result = await self.db.execute(select(NpmPackage.package_name).where(condition))
            # Collation-independent order
            names = sorted(result.scalars().all())
            if not names:
                return []

            await self.db.execute(
                update(NpmPackage)
                .where(condition)
                .values(is_active=False, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(
                "Failed to deactivate packages",
                context={"operation": "UPDATE", "table_name": NpmPackage.__tablename__},
                original_exception=e
            )
        return names
