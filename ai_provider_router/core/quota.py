"""
Rolling free-tier quota tracking.

The window is relative to the last reset (24 hours of wall-clock time), not
aligned to calendar days. State is an immutable value; callers replace it.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta

QUOTA_WINDOW = timedelta(hours=24)
DEFAULT_DAILY_LIMIT = 1500


@dataclass(frozen=True)
class QuotaState:
    """Requests consumed in the current window and when the window began."""
    count: int
    window_start: datetime

    def __post_init__(self):
        """Validate counter is non-negative."""
        if self.count < 0:
            raise ValueError("count cannot be negative")

    @property
    def next_reset(self) -> datetime:
        return self.window_start + QUOTA_WINDOW


def new_quota_state(now: datetime) -> QuotaState:
    """Start an empty window at ``now``."""
    return QuotaState(count=0, window_start=now)


def refresh(state: QuotaState, now: datetime) -> QuotaState:
    """Reset the counter if a full window has elapsed since the last reset.

    Returns the same state when the window is still open.
    """
    if now - state.window_start >= QUOTA_WINDOW:
        return QuotaState(count=0, window_start=now)
    return state


def has_capacity(state: QuotaState, daily_limit: int) -> bool:
    """Check the (already refreshed) state against the daily limit."""
    return state.count < daily_limit


def consume(state: QuotaState) -> QuotaState:
    """Record one successful request against the window."""
    return replace(state, count=state.count + 1)


def remaining(state: QuotaState, daily_limit: int) -> int:
    """Free requests left in the window, never negative."""
    return max(0, daily_limit - state.count)
