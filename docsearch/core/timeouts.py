"""Timeout wrapper for collaborator calls."""

import asyncio
import logging
from typing import Awaitable, TypeVar

from .exceptions import DocSearchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_with_timeout(
    awaitable: Awaitable[T],
    timeout: float,
    error_cls: type[DocSearchError],
    operation: str,
) -> T:
    """Await a collaborator call, converting expiry and failures to a typed error.

    Args:
        awaitable: Collaborator coroutine.
        timeout: Seconds before the call is abandoned.
        error_cls: Error type raised on timeout or failure.
        operation: Human-readable name used in the error message.

    Returns:
        The collaborator result.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"{operation} timed out after {timeout:.1f}s")
        raise error_cls(f"{operation} timed out after {timeout:.1f}s") from e
    except DocSearchError:
        raise
    except Exception as e:
        raise error_cls(f"{operation} failed: {e}") from e
