"""
Timezone-aware datetime helpers.
Store and compute in UTC.
"""
from datetime import datetime, timezone

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for decision_at, cancelled_at, audit timestamps."""
    return datetime.now(UTC)

