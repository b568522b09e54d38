"""
Bounded-concurrency, rate-staggered metadata fetching.

Packages are processed in fixed-size batches. Inside a batch every package
gets its own task; task ``i`` sleeps ``i * rate_limit_delay`` before its
request so start times are spread out. The batch is a barrier: the next
batch starts only after every task of the current one has settled.

Failure policy is applied once the whole batch has settled, so no task is
still writing when the error reaches the transaction coordinator:

- ``abort_on_first``: re-raise the earliest failure in time
- ``collect_all``: raise ``BatchFetchError`` listing every failure
"""

import asyncio
import enum
import time
from typing import List, Optional, Tuple
from ingestion.extractors.npm_registry import NPMRegistryClient
from ingestion.loaders.package_loader import PackageIngester
from schemas.registry import PackageDescriptor
from core.exceptions import BatchFetchError
import logging

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100
DEFAULT_RATE_LIMIT_DELAY = 0.05  # seconds


class FailurePolicy(str, enum.Enum):
    """What a batch does once any of its tasks failed"""
    ABORT_ON_FIRST = "abort_on_first"
    COLLECT_ALL = "collect_all"


class BatchFetcher:
    """
    Fetch creation dates for every package and hand each result to the
    ingester.

    Attributes:
        batch_size: Number of concurrent tasks per batch (default: 100)
        rate_limit_delay: Stagger unit in seconds (default: 0.05)
        failure_policy: FailurePolicy applied after a batch settles
    """

    def __init__(
        self,
        registry: NPMRegistryClient,
        ingester: PackageIngester,
        batch_size: int = DEFAULT_BATCH_SIZE,
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY,
        failure_policy: FailurePolicy = FailurePolicy.ABORT_ON_FIRST
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if rate_limit_delay < 0:
            raise ValueError("rate_limit_delay cannot be negative")

        self.registry = registry
        self.ingester = ingester
        self.batch_size = batch_size
        self.rate_limit_delay = rate_limit_delay
        self.failure_policy = FailurePolicy(failure_policy)

    async def fetch_all(
        self,
        packages: List[PackageDescriptor],
        total: Optional[int] = None
    ) -> int:
        """
        Process every package, batch by batch.

        Returns:
            Number of packages ingested
        """
        total = len(packages) if total is None else total
        logger.info(
            f"Processing {total} packages in batches of {self.batch_size} "
            f"({self.rate_limit_delay * 1000:.0f}ms stagger)"
        )

        ingested = 0
        for start in range(0, len(packages), self.batch_size):
            batch = packages[start:start + self.batch_size]
            ingested += await self.process_batch(batch, start, total)

        return ingested

    async def process_batch(
        self,
        batch: List[PackageDescriptor],
        start_index: int,
        total: int
    ) -> int:
        """
        Run one task per package and wait for all of them to settle.

        Raises:
            Exception: The earliest failure in time (abort_on_first)
            BatchFetchError: Every failure (collect_all)
        """
        batch_number = start_index // self.batch_size + 1
        batch_start = time.monotonic()
        # Failures in the order they happened
        failure_order: List[BaseException] = []

        tasks = [
            self._staggered(package, index, start_index + index + 1, total, failure_order)
            for index, package in enumerate(batch)
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        failures: List[Tuple[str, BaseException]] = []
        for package, result in zip(batch, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    # Cancellation and interpreter exits are not task failures
                    raise result
                failures.append((package.name, result))

        duration = time.monotonic() - batch_start
        if failures:
            logger.error(
                f"Batch {batch_number}: {len(failures)}/{len(batch)} packages failed "
                f"({duration:.2f}s)"
            )
            if self.failure_policy == FailurePolicy.COLLECT_ALL:
                raise BatchFetchError(
                    f"{len(failures)} of {len(batch)} packages failed in batch {batch_number}",
                    failures=failures,
                    context={"batch_number": batch_number, "batch_size": len(batch)}
                )
            raise failure_order[0]

        logger.info(f"Batch {batch_number}: {len(batch)} packages ({duration:.2f}s)")
        return len(batch)

    async def _staggered(
        self,
        package: PackageDescriptor,
        index: int,
        current: int,
        total: int,
        failure_order: List[BaseException]
    ):
        await asyncio.sleep(index * self.rate_limit_delay)
        try:
            await self.process_package(package, current, total)
        except Exception as e:
            failure_order.append(e)
            raise

    async def process_package(self, package: PackageDescriptor, current: int, total: int) -> None:
        """Fetch one creation date and upsert the package, logging elapsed time"""
        start_time = time.monotonic()
        try:
            creation_date = await self.registry.creation_date(package.name)
            await self.ingester.upsert(package.name, creation_date, package.date)
        except Exception as e:
            duration = time.monotonic() - start_time
            message = getattr(e, "message", str(e))
            logger.error(f"[{current}/{total}] failed {package.name} ({duration:.2f}s): {message}")
            raise

        duration = time.monotonic() - start_time
        logger.info(f"[{current}/{total}] ok {package.name} ({duration:.2f}s)")
