"""Startup warmup so the first request does not pay for cold storage.

Loads the durable cache mirror and runs the remote schema capability probe
before the facade starts serving.  Failures are logged; the affected component
retries lazily on first use.
"""

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import SQLAlchemyError

from glasscast.services.dependencies import AppContainer

logger = logging.getLogger(__name__)


async def warmup_cache(container: AppContainer) -> None:
    """Mirror the durable cache rows in memory."""

    start = time.time()
    entries = await container.cache.warm()
    elapsed = (time.time() - start) * 1000
    logger.info(f"Cache store loaded ({entries} entries, {elapsed:.0f}ms)")


async def warmup_remote(container: AppContainer) -> None:
    """Probe the remote schema once so favorite toggles know whether they persist."""

    if container.persistence is None:
        logger.info("Remote warmup skipped (DATABASE_URL not configured)")
        return

    try:
        start = time.time()
        ready = await container.persistence.favorite_column_ready()
        elapsed = (time.time() - start) * 1000
        logger.info(f"Remote schema probed ({elapsed:.0f}ms, favorites column: {ready})")
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Remote warmup failed: {e}")


async def warmup_all(container: AppContainer) -> None:
    logger.info("Starting warmup...")
    start = time.time()

    await warmup_cache(container)
    await warmup_remote(container)

    elapsed = (time.time() - start) * 1000
    logger.info(f"Warmup complete ({elapsed:.0f}ms)")


__all__ = ["warmup_all", "warmup_cache", "warmup_remote"]
