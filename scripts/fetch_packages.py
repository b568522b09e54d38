"""
Script to sync the npm packages published by the configured identity
"""

import asyncio
import sys
import os
import time
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_default_engine, build_session_maker
from core.logging import setup_logging
from ingestion.batch_fetcher import FailurePolicy
from ingestion.extractors.npm_registry import NPMRegistryClient
from ingestion.runner import TransactionCoordinator
from schemas.package_config import load_package_config

logger = logging.getLogger(__name__)


async def fetch_packages():
    """Run one sync; raises on any failure"""
    package_config = load_package_config(settings.PACKAGE_CONFIG_PATH)

    engine = create_default_engine()
    session_maker = build_session_maker(engine)

    try:
        async with NPMRegistryClient() as registry:
            coordinator = TransactionCoordinator(
                session_factory=session_maker,
                registry=registry,
                package_config=package_config,
                identity=settings.NPM_IDENTITY,
                batch_size=settings.FETCH_BATCH_SIZE,
                rate_limit_delay=settings.RATE_LIMIT_DELAY_MS / 1000,
                failure_policy=FailurePolicy(settings.FETCH_FAILURE_POLICY)
            )
            result = await coordinator.run()

        logger.info(
            f"Sync completed: found={result['packages_found']}, "
            f"ingested={result['packages_ingested']}, "
            f"categorized={len(result['categorized'])}, "
            f"deactivated={len(set(result['deactivated_whitelist']) | set(result['deactivated_blacklist']))}"
        )
        return result
    finally:
        await engine.dispose()


def main() -> int:
    setup_logging()
    start_time = time.monotonic()

    try:
        asyncio.run(fetch_packages())
    except Exception as e:
        duration = time.monotonic() - start_time
        logger.error(f"Script failed after {duration:.2f} seconds: {e}")
        return 1

    logger.info("Script completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
