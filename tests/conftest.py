"""
Pytest configuration and fixtures
"""

import os
import pytest
import pytest_asyncio
from datetime import datetime
from typing import AsyncGenerator, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool
from core.database import build_session_maker
from models.base import Base
from models.npm_package import NpmPackage
from models.category import Category, PackageCategory
from schemas.package_config import PackageConfig
from schemas.registry import PackageDescriptor
from ingestion.session_channel import SerializedSession
from core.exceptions import MetadataFetchError

# Test database URL; in-memory SQLite unless a PostgreSQL URL is supplied
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine"""
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared connection so the in-memory database survives between sessions
        engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine"""
    return build_session_maker(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def db(db_session) -> SerializedSession:
    """Serialized wrapper around the test session"""
    return SerializedSession(db_session)


def make_descriptor(name: str, date: str = "2024-03-01T12:00:00.000Z", **extra) -> PackageDescriptor:
    return PackageDescriptor.model_validate({"name": name, "version": "1.0.0", "date": date, **extra})


async def fetch_packages(session: AsyncSession) -> Dict[str, dict]:
    """Package rows keyed by name (column select, never stale ORM state)"""
    result = await session.execute(
        select(
            NpmPackage.package_name,
            NpmPackage.creation_date,
            NpmPackage.last_publish_date,
            NpmPackage.is_active,
        )
    )
    return {row.package_name: dict(row._mapping) for row in result.all()}


async def fetch_package_categories(session: AsyncSession) -> Dict[str, set]:
    """Package name -> set of category names"""
    result = await session.execute(
        select(PackageCategory.package_id, Category.name)
        .join(Category, Category.id == PackageCategory.category_id)
    )
    associations: Dict[str, set] = {}
    for package_id, category_name in result.all():
        associations.setdefault(package_id, set()).add(category_name)
    return associations


class FakeRegistry:
    """
    In-memory stand-in for NPMRegistryClient.

    Args:
        search_results: search_type -> descriptors
        creation_dates: package name -> creation timestamp
        failing: names whose creation_date lookup raises MetadataFetchError
        search_error: exception raised by every search call
    """

    def __init__(
        self,
        search_results: Dict[str, List[PackageDescriptor]],
        creation_dates: Optional[Dict[str, datetime]] = None,
        failing: Optional[set] = None,
        search_error: Optional[Exception] = None
    ):
        self.search_results = search_results
        self.creation_dates = creation_dates or {}
        self.failing = failing or set()
        self.search_error = search_error
        self.searches: List[tuple] = []
        self.lookups: List[str] = []

    async def search(self, search_type: str, identity: str) -> List[PackageDescriptor]:
        self.searches.append((search_type, identity))
        if self.search_error is not None:
            raise self.search_error
        return list(self.search_results.get(search_type, []))

    async def creation_date(self, package_name: str) -> datetime:
        self.lookups.append(package_name)
        if package_name in self.failing:
            raise MetadataFetchError(
                f"Registry returned HTTP 404 for /{package_name}",
                context={"package_name": package_name, "status_code": 404}
            )
        return self.creation_dates.get(package_name, datetime(2020, 1, 1, 9, 30))


@pytest.fixture
def package_config() -> PackageConfig:
    """Whitelist/blacklist used by the end-to-end scenario"""
    return PackageConfig.model_validate({
        "whitelist": {"core": ["pkg-a"]},
        "blacklist": {"namespaces": ["@spam/"], "packages": ["pkg-b"]}
    })
