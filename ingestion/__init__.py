"""
Pipeline components for syncing npm packages into PostgreSQL.

Modules:
    search_aggregator: author / maintainer / publisher searches, deduplicated
    batch_fetcher: Batched, staggered creation-date fetches
    session_channel: Serialized access to the run's transactional session
    runner: Transaction coordinator driving one run

Subpackages:
    extractors: npm registry client
    loaders: Package upserts, whitelist categories and deactivation passes

Architecture:
    One run is one database transaction:

    1. Search - collect every package published by the identity
    2. Fetch - look up creation dates in staggered concurrent batches,
       upserting each package as its fetch completes
    3. Categorize - apply the whitelist's categories
    4. Deactivate - soft-delete unlisted and blacklisted packages

    Any failure in any phase rolls the whole run back.

Usage:
    from ingestion.extractors.npm_registry import NPMRegistryClient
    from ingestion.runner import TransactionCoordinator

Example:
    async with NPMRegistryClient() as registry:
        coordinator = TransactionCoordinator(
            session_factory=session_maker,
            registry=registry,
            package_config=load_package_config("data/package_config.json"),
            identity="pyramation"
        )
        result = await coordinator.run()

    print(f"Ingested {result['packages_ingested']} packages")

Error Handling:
    All components raise exceptions from core.exceptions with structured
    context. Nothing is retried.
"""

from ingestion.extractors.npm_registry import NPMRegistryClient
from ingestion.loaders.package_loader import PackageIngester
from ingestion.loaders.category_resolver import CategoryResolver
from ingestion.loaders.deactivator import Deactivator
from ingestion.search_aggregator import SearchAggregator
from ingestion.batch_fetcher import BatchFetcher, FailurePolicy
from ingestion.session_channel import SerializedSession
from ingestion.runner import TransactionCoordinator, RunState

__all__ = [
    "SearchAggregator",
    "BatchFetcher",
    "FailurePolicy",
    "SerializedSession",
    "TransactionCoordinator",
    "RunState",
    "NPMRegistryClient",
    "PackageIngester",
    "CategoryResolver",
    "Deactivator",
]
