"""
Identity-scoped search aggregation
"""

import asyncio
from typing import Dict, List
from ingestion.extractors.npm_registry import NPMRegistryClient, SEARCH_TYPES
from schemas.registry import PackageDescriptor
import logging

logger = logging.getLogger(__name__)


class SearchAggregator:
    """
    Run the author, maintainer and publisher searches for one identity and
    merge them into a single list of unique packages.

    When a name appears in more than one result set, the descriptor from
    the later query (author, then maintainer, then publisher) wins. The
    output keeps first-seen order.
    """

    def __init__(self, registry: NPMRegistryClient):
        self.registry = registry

    async def aggregate(self, identity: str) -> List[PackageDescriptor]:
        logger.info(f"Fetching all packages from npm registry for {identity}")

        results = await asyncio.gather(
            *(self.registry.search(search_type, identity) for search_type in SEARCH_TYPES),
            return_exceptions=True
        )

        # Every query has settled; surface the first failure in query order
        for result in results:
            if isinstance(result, BaseException):
                raise result

        unique: Dict[str, PackageDescriptor] = {}
        for search_type, descriptors in zip(SEARCH_TYPES, results):
            logger.info(f"{search_type} query returned {len(descriptors)} packages")
            for descriptor in descriptors:
                unique[descriptor.name] = descriptor

        packages = list(unique.values())
        logger.info(f"Found {len(packages)} unique packages")
        return packages
