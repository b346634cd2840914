"""
Helpers for side effects that must never fail the operation that triggered them
(notifications, audit log rows, remote storage deletes).
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def run_best_effort(
    description: str,
    func: Callable[..., Awaitable[Any]],
    *args,
    session: Optional[AsyncSession] = None,
    **kwargs,
) -> Optional[Any]:
    """
    Await ``func(*args, **kwargs)`` and log instead of raising on failure.

    When ``session`` is given the call runs inside a SAVEPOINT and is also
    passed the session as its first argument, so a failed insert is rolled
    back without touching the caller's transaction.

    Returns:
        The function's result, or None if it failed
    """
    try:
        if session is None:
            return await func(*args, **kwargs)
        async with session.begin_nested():
            return await func(session, *args, **kwargs)
    except Exception as e:
        logger.warning(f"Failed to {description}: {e}")
        return None
