"""Concurrency control for quote consumption.

Provides per-quote locking so that attempts presenting the same quote are
validated and settled one at a time within a process. Cross-process safety
comes from the consumption store's set-if-absent write.

A registry entry lives only while some caller holds or waits for it.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

logger = logging.getLogger(__name__)

# Global lock registry: consumption key -> asyncio.Lock
_quote_locks: dict[str, asyncio.Lock] = {}
# Holders plus waiters per key
_lock_users: dict[str, int] = {}
_registry_lock = asyncio.Lock()


async def get_quote_lock(key: str) -> asyncio.Lock:
    """Get or create the lock for a quote's consumption key."""
    async with _registry_lock:
        if key not in _quote_locks:
            _quote_locks[key] = asyncio.Lock()
        return _quote_locks[key]


async def _check_out(key: str) -> asyncio.Lock:
    async with _registry_lock:
        if key not in _quote_locks:
            _quote_locks[key] = asyncio.Lock()
        _lock_users[key] = _lock_users.get(key, 0) + 1
        return _quote_locks[key]


def _check_in(key: str) -> None:
    remaining = _lock_users.get(key, 0) - 1
    if remaining > 0:
        _lock_users[key] = remaining
        return
    _lock_users.pop(key, None)
    _quote_locks.pop(key, None)


def active_quote_locks() -> int:
    """Number of quotes with a registered lock."""
    return len(_quote_locks)


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


@asynccontextmanager
async def quote_lock(
    key: str,
    timeout: Optional[float] = 30.0,
    operation: str = "consume",
):
    """Hold the exclusive lock for one quote.

    Args:
        key: Consumption key of the quote
        timeout: Maximum time to wait for the lock (None = wait forever)
        operation: Description for logging

    Example:
        async with quote_lock(quote.consumption_key):
            # verify, settle and record consumption
            pass
    """
    lock = await _check_out(key)
    try:
        try:
            if timeout:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            else:
                await lock.acquire()
        except asyncio.TimeoutError:
            logger.warning(f"Lock timeout for quote {key[:18]}...: {operation}")
            raise LockTimeoutError(f"Could not acquire lock for quote within {timeout}s")

        logger.debug(f"Lock acquired for quote {key[:18]}...: {operation}")
        try:
            yield
        finally:
            lock.release()
            logger.debug(f"Lock released for quote {key[:18]}...: {operation}")
    finally:
        _check_in(key)


def clear_quote_locks() -> None:
    """Clear all quote locks (useful for testing)."""
    _quote_locks.clear()
    _lock_users.clear()
