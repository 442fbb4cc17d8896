"""Query timing for the remote saved-city backend.

Remote calls sit on the critical path of every list reload and favorite
toggle, so statements slower than the configured threshold are logged.
"""

import logging
import time
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


def setup_query_monitoring(
    engine: AsyncEngine,
    slow_query_threshold: float = 0.1,
) -> None:
    """Log a warning for every statement slower than ``slow_query_threshold`` seconds.

    Args:
        engine: Async engine whose ``sync_engine`` receives the cursor events
        slow_query_threshold: Threshold in seconds (default: 0.1s = 100ms)
    """
    if not hasattr(engine, "sync_engine"):
        logger.warning("Engine does not have sync_engine attribute, skipping query monitoring")
        return

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def receive_before_cursor_execute(
        conn: Any,
        cursor: Any,
        statement: str,
        parameters: Any,
        context: Any,
        executemany: bool,
    ) -> None:
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine.sync_engine, "after_cursor_execute")
    def receive_after_cursor_execute(
        conn: Any,
        cursor: Any,
        statement: str,
        parameters: Any,
        context: Any,
        executemany: bool,
    ) -> None:
        started = conn.info.get("query_start_time")
        if not started:
            return
        total = time.perf_counter() - started.pop()

        if total > slow_query_threshold:
            truncated_statement = statement[:500]
            if len(statement) > 500:
                truncated_statement += "..."

            logger.warning(
                f"Slow query detected ({total:.3f}s): {truncated_statement}",
                extra={
                    "duration_seconds": total,
                    "query": statement,
                    "threshold_seconds": slow_query_threshold,
                },
            )

    logger.info(f"Query monitoring enabled (slow query threshold: {slow_query_threshold}s)")


__all__ = ["setup_query_monitoring"]
