# ============================================================================
# File: ingestion/runner.py
# Description: Runs one package sync as a single database transaction
# ============================================================================
"""
Transaction coordinator - runs aggregate → fetch → ingest → categorize →
deactivate inside one unit of work.

All writes of a run share one AsyncSession, wrapped in a SerializedSession.
The transaction commits only after the deactivation passes finish; any
exception from any phase rolls everything back, so no package, category or
association change from a failed run is visible afterwards.
"""

import enum
import time
from typing import Dict, Any, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
import logging

from ingestion.batch_fetcher import BatchFetcher, FailurePolicy, DEFAULT_BATCH_SIZE, DEFAULT_RATE_LIMIT_DELAY
from ingestion.extractors.npm_registry import NPMRegistryClient
from ingestion.loaders.category_resolver import CategoryResolver
from ingestion.loaders.deactivator import Deactivator
from ingestion.loaders.package_loader import PackageIngester
from ingestion.search_aggregator import SearchAggregator
from ingestion.session_channel import SerializedSession
from schemas.package_config import PackageConfig
from core.exceptions import IngestionError

logger = logging.getLogger(__name__)


class RunState(str, enum.Enum):
    """Transaction coordinator states"""
    IDLE = "idle"
    FETCHING = "fetching"
    INGESTING = "ingesting"
    CATEGORIZING = "categorizing"
    DEACTIVATING = "deactivating"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class TransactionCoordinator:
    """
    Orchestrate one run of the package sync.

    Responsibilities:
    - Open one transaction for the whole run
    - Drive the components in order
    - Commit only after every phase succeeded, roll back otherwise
    - Record the state machine and a run summary
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        registry: NPMRegistryClient,
        package_config: PackageConfig,
        identity: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        rate_limit_delay: float = DEFAULT_RATE_LIMIT_DELAY,
        failure_policy: FailurePolicy = FailurePolicy.ABORT_ON_FIRST
    ):
        self.session_factory = session_factory
        self.registry = registry
        self.package_config = package_config
        self.identity = identity
        self.batch_size = batch_size
        self.rate_limit_delay = rate_limit_delay
        self.failure_policy = failure_policy
        self.state = RunState.IDLE
        self.error: Optional[BaseException] = None

    def _transition(self, state: RunState):
        logger.debug(f"Run state: {self.state.value} -> {state.value}")
        self.state = state

    async def run(self) -> Dict[str, Any]:
        """
        Run the full pipeline.

        Returns:
            Dictionary with run statistics:
            - status: "success"
            - packages_found: Unique packages returned by the searches
            - packages_ingested: Packages fetched and upserted
            - categorized: Package -> categories applied from the whitelist
            - deactivated_whitelist: Names matched by the whitelist pass
            - deactivated_blacklist: Names matched by the blacklist pass
            - duration_seconds: Wall time of the run

        Raises:
            Exception: Whatever aborted the run, after the rollback
        """
        if self.state != RunState.IDLE:
            raise RuntimeError(f"TransactionCoordinator already ran (state={self.state.value})")

        start_time = time.monotonic()
        summary: Dict[str, Any] = {}

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    db = SerializedSession(session)

                    # --------------------------------------------------
                    # PHASE 1: SEARCH
                    # --------------------------------------------------
                    self._transition(RunState.FETCHING)
                    packages = await SearchAggregator(self.registry).aggregate(self.identity)
                    summary["packages_found"] = len(packages)

                    # --------------------------------------------------
                    # PHASE 2: FETCH + INGEST
                    # --------------------------------------------------
                    self._transition(RunState.INGESTING)
                    fetcher = BatchFetcher(
                        self.registry,
                        PackageIngester(db),
                        batch_size=self.batch_size,
                        rate_limit_delay=self.rate_limit_delay,
                        failure_policy=self.failure_policy
                    )
                    summary["packages_ingested"] = await fetcher.fetch_all(packages, len(packages))

                    # --------------------------------------------------
                    # PHASE 3: CATEGORIES
                    # --------------------------------------------------
                    self._transition(RunState.CATEGORIZING)
                    summary["categorized"] = await CategoryResolver(db).resolve(self.package_config)

                    # --------------------------------------------------
                    # PHASE 4: DEACTIVATION
                    # --------------------------------------------------
                    self._transition(RunState.DEACTIVATING)
                    deactivated = await Deactivator(db).run(self.package_config)
                    summary["deactivated_whitelist"] = deactivated["whitelist"]
                    summary["deactivated_blacklist"] = deactivated["blacklist"]

                    logger.debug(f"Committing after {db.statements_executed} statements")
                # Leaving session.begin() commits

        except BaseException as e:
            self.error = e
            self._transition(RunState.ROLLED_BACK)
            duration = time.monotonic() - start_time

            if isinstance(e, IngestionError):
                logger.error(
                    f"Transaction failed after {duration:.2f} seconds: {e}",
                    extra={"error_context": e.to_dict()}
                )
            elif not isinstance(e, Exception):
                logger.warning(
                    f"Transaction rolled back after {duration:.2f} seconds: {type(e).__name__}"
                )
            else:
                logger.exception(f"Transaction failed after {duration:.2f} seconds")
            raise

        self._transition(RunState.COMMITTED)
        duration = time.monotonic() - start_time
        logger.info(f"All operations completed successfully in {duration:.2f} seconds!")

        return {
            "status": "success",
            **summary,
            "duration_seconds": round(duration, 2),
        }
