"""
Shared Utility Functions

Common helper functions used across multiple modules.
"""

import logging
from datetime import datetime
from typing import Awaitable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def or_default(call: Awaitable[T], fallback: T, label: str = "lookup") -> T:
    """
    Await a best-effort call, returning `fallback` if it raises.

    Used for sub-fetches whose failure must degrade the result instead of
    failing the whole pass (permalinks, channel map, channel info, probes).

    Args:
        call: Awaitable to run
        fallback: Value returned on failure
        label: Name used in the warning log

    Returns:
        The call's result, or `fallback`
    """
    try:
        return await call
    except Exception as e:
        logger.warning(f"{label} failed, using fallback: {e}")
        return fallback


def datetime_to_slack_ts(value: Optional[datetime]) -> Optional[str]:
    """Format a datetime as a Slack epoch-seconds timestamp string."""
    if value is None:
        return None
    return f"{value.timestamp():.6f}"


def later_ts(a: Optional[str], b: Optional[str]) -> Optional[str]:
    """The numerically greater of two Slack timestamps (None-safe)."""
    if a is None:
        return b
    if b is None:
        return a
    return a if float(a) >= float(b) else b
