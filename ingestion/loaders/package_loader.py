"""
Upsert fetched packages into npm_package (idempotent)
"""

from datetime import date, datetime
from typing import Union
from sqlalchemy.exc import SQLAlchemyError
from models.npm_package import NpmPackage
from ingestion.session_channel import SerializedSession
from core.exceptions import UpsertError
import logging

logger = logging.getLogger(__name__)


def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


class PackageIngester:
    """
    Insert or refresh one npm_package row per fetched package.

    Ensures:
    - creation_date is written on first insert only
    - last_publish_date and updated_at are refreshed on every call
    - is_active is left alone (only the deactivator changes it)
    """

    def __init__(self, db: SerializedSession):
        self.db = db

    async def upsert(
        self,
        package_name: str,
        creation_date: Union[date, datetime],
        publish_date: Union[date, datetime]
    ) -> None:
        """
        INSERT ... ON CONFLICT (package_name) DO UPDATE last_publish_date.

        Safe to call from concurrent fetch tasks: the statement is issued
        through the serialized session.
        """
        now = datetime.utcnow()
        stmt = self.db.insert(NpmPackage.__table__).values(
            package_name=package_name,
            creation_date=_as_date(creation_date),
            last_publish_date=_as_date(publish_date),
            is_active=True,
            updated_at=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["package_name"],
            set_={
                "last_publish_date": stmt.excluded.last_publish_date,
                "updated_at": stmt.excluded.updated_at,
            }
        )

        try:
            await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise UpsertError(
                f"Failed to upsert package {package_name}",
                context={
                    "package_name": package_name,
                    "operation": "UPSERT",
                    "table_name": NpmPackage.__tablename__
                },
                original_exception=e
            )

        logger.debug(f"Upserted {package_name}")
