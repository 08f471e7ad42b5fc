"""Utility modules for SmartFX."""

from smartfx.utils.locks import LockTimeoutError, active_quote_locks, get_quote_lock, quote_lock

__all__ = ["LockTimeoutError", "active_quote_locks", "get_quote_lock", "quote_lock"]
