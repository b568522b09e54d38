"""
Unit tests for search aggregation
"""

import pytest
from unittest.mock import AsyncMock
from ingestion.search_aggregator import SearchAggregator
from core.exceptions import SearchQueryError
from conftest import make_descriptor


def registry_returning(results):
    registry = AsyncMock()

    async def search(search_type, identity):
        return results.get(search_type, [])

    registry.search.side_effect = search
    return registry


class TestSearchAggregator:
    """Test deduplication across author/maintainer/publisher queries"""

    @pytest.mark.asyncio
    async def test_issues_three_queries(self):
        """Test that every search type is queried for the identity"""
        registry = registry_returning({})

        await SearchAggregator(registry).aggregate("pyramation")

        called = sorted(call.args for call in registry.search.call_args_list)
        assert called == [
            ("author", "pyramation"),
            ("maintainer", "pyramation"),
            ("publisher", "pyramation"),
        ]

    @pytest.mark.asyncio
    async def test_later_query_wins(self):
        """Test that publisher overrides maintainer overrides author"""
        registry = registry_returning({
            "author": [make_descriptor("shared", version="1.0.0"), make_descriptor("only-author")],
            "maintainer": [make_descriptor("shared", version="2.0.0"), make_descriptor("only-maintainer")],
            "publisher": [make_descriptor("shared", version="3.0.0")],
        })

        packages = await SearchAggregator(registry).aggregate("pyramation")

        by_name = {p.name: p for p in packages}
        assert len(packages) == 3
        assert by_name["shared"].version == "3.0.0"

    @pytest.mark.asyncio
    async def test_maintainer_overrides_author(self):
        """Test precedence when the publisher query does not return the name"""
        registry = registry_returning({
            "author": [make_descriptor("pkg", date="2023-01-01T00:00:00Z")],
            "maintainer": [make_descriptor("pkg", date="2024-06-01T00:00:00Z")],
        })

        packages = await SearchAggregator(registry).aggregate("pyramation")

        assert len(packages) == 1
        assert packages[0].date.year == 2024

    @pytest.mark.asyncio
    async def test_output_order_is_deterministic(self):
        """Test first-seen order is kept across overrides"""
        registry = registry_returning({
            "author": [make_descriptor("a"), make_descriptor("b")],
            "maintainer": [make_descriptor("c"), make_descriptor("a")],
            "publisher": [make_descriptor("d")],
        })

        packages = await SearchAggregator(registry).aggregate("pyramation")

        assert [p.name for p in packages] == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    async def test_query_failure_propagates(self):
        """Test that any failing query aborts aggregation"""
        registry = AsyncMock()

        async def search(search_type, identity):
            if search_type == "maintainer":
                raise SearchQueryError("Registry returned HTTP 500", context={"search_type": search_type})
            return [make_descriptor("a")]

        registry.search.side_effect = search

        with pytest.raises(SearchQueryError):
            await SearchAggregator(registry).aggregate("pyramation")
