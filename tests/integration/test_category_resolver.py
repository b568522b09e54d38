"""
Integration tests for whitelist categories
"""

import pytest
from datetime import date
from unittest.mock import AsyncMock, patch
from sqlalchemy import select
from ingestion.loaders.category_resolver import CategoryResolver
from ingestion.loaders.package_loader import PackageIngester
from models.category import Category
from schemas.package_config import PackageConfig
from core.exceptions import MissingCategoryError
from conftest import fetch_packages, fetch_package_categories


def whitelist(mapping):
    return PackageConfig.model_validate({"whitelist": mapping})


@pytest.mark.asyncio
async def test_associations_match_whitelist(db, db_session):
    """Test that each package gets exactly its whitelisted categories"""
    resolver = CategoryResolver(db)

    applied = await resolver.resolve(whitelist({"A": ["p1", "p2"], "B": ["p2"]}))

    assert applied == {"p1": ["A"], "p2": ["A", "B"]}
    assert await fetch_package_categories(db_session) == {"p1": {"A"}, "p2": {"A", "B"}}


@pytest.mark.asyncio
async def test_stale_associations_removed(db, db_session):
    """Test that a category dropped from the whitelist is removed, not merged"""
    resolver = CategoryResolver(db)

    await resolver.resolve(whitelist({"C": ["p2"]}))
    await resolver.resolve(whitelist({"A": ["p1", "p2"], "B": ["p2"]}))

    associations = await fetch_package_categories(db_session)
    assert associations["p2"] == {"A", "B"}
    # The category row itself is kept
    names = (await db_session.execute(select(Category.name))).scalars().all()
    assert set(names) == {"A", "B", "C"}


@pytest.mark.asyncio
async def test_category_ids_stable_across_runs(db, db_session):
    """Test that re-running upserts categories instead of duplicating them"""
    resolver = CategoryResolver(db)

    first = await resolver.ensure_categories(["A", "B"])
    second = await resolver.ensure_categories(["B", "A"])

    assert first == second
    count = len((await db_session.execute(select(Category.id))).all())
    assert count == 2


@pytest.mark.asyncio
async def test_missing_whitelisted_packages_inserted_with_today(db, db_session):
    """Test that whitelisted packages without a row get today's date"""
    await PackageIngester(db).upsert("p1", date(2018, 1, 1), date(2024, 1, 1))

    await CategoryResolver(db).resolve(whitelist({"A": ["p1", "p2"]}))

    rows = await fetch_packages(db_session)
    assert rows["p1"]["creation_date"] == date(2018, 1, 1)
    assert rows["p1"]["last_publish_date"] == date(2024, 1, 1)
    assert rows["p2"]["creation_date"] == date.today()
    assert rows["p2"]["last_publish_date"] == date.today()
    assert rows["p2"]["is_active"] is True


@pytest.mark.asyncio
async def test_unresolvable_category_is_fatal(db):
    """Test that a category without an id raises a configuration error"""
    resolver = CategoryResolver(db)

    with patch.object(CategoryResolver, "ensure_categories", AsyncMock(return_value={"A": 1})):
        with pytest.raises(MissingCategoryError) as exc_info:
            await resolver.resolve(whitelist({"A": ["p1"], "B": ["p2"]}))

    assert exc_info.value.context["category"] == "B"
    assert exc_info.value.context["package_name"] == "p2"


@pytest.mark.asyncio
async def test_empty_whitelist(db, db_session):
    assert await CategoryResolver(db).resolve(PackageConfig()) == {}
    assert await fetch_packages(db_session) == {}
