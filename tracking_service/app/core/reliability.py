"""
Reliability utilities.

Every engine operation that crosses the store or catalog boundary runs
under a deadline. Expired operations fail fast and are never retried here;
retry policy belongs to the caller.
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from tracking_service.app.core.config import settings
from tracking_service.app.core.exceptions import DeadlineExceededError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def resolve_deadline(deadline: Optional[float]) -> float:
    """Return the caller's deadline in seconds, or the configured default."""
    if deadline is None:
        return settings.operation_timeout_seconds
    return deadline


async def with_deadline(awaitable: Awaitable[T], deadline: Optional[float], operation: str) -> T:
    """
    Await an operation, failing with DeadlineExceededError once the deadline passes.

    Args:
        awaitable: Coroutine performing the store/catalog work
        deadline: Seconds allowed (None uses settings.operation_timeout_seconds)
        operation: Name used in the error and log record

    Raises:
        DeadlineExceededError: If the operation did not finish in time
    """
    timeout = resolve_deadline(deadline)
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except DeadlineExceededError:
        # Inner deadline already reported
        raise
    except asyncio.TimeoutError:
        logger.warning("Deadline exceeded", extra={"operation": operation, "timeout_seconds": timeout})
        raise DeadlineExceededError(operation, timeout) from None
