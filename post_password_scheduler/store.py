"""Per-item rotation metadata kept alongside each post in the content store."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

INTERVAL_KEY = "interval_days"
NEXT_DUE_KEY = "next_due_at"

# Used whenever an item has no stored interval but a due date must be computed.
DEFAULT_INTERVAL_DAYS = 1

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def coerce_int(raw: Any) -> int:
    """Integer value of ``raw`` the way form input is read: leading digits, else 0."""

    if raw is None or isinstance(raw, bool):
        return int(bool(raw))
    if isinstance(raw, (int, float)):
        return int(raw)
    match = _LEADING_INT.match(str(raw))
    return int(match.group(1)) if match else 0


class SiteClock:
    """Wall clock in the site's configured timezone."""

    def __init__(self, timezone_name: str = "UTC") -> None:
        self.tz = ZoneInfo(timezone_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def format(self, moment: datetime) -> str:
        return moment.astimezone(self.tz).strftime(TIMESTAMP_FORMAT)

    def parse(self, raw: Optional[str]) -> Optional[datetime]:
        if not raw:
            return None
        value = str(raw).strip()
        if not value:
            return None
        try:
            parsed = datetime.strptime(value, TIMESTAMP_FORMAT)
        except ValueError:
            return None
        return parsed.replace(tzinfo=self.tz)


class IntervalStore:
    """Reads and writes ``interval_days`` / ``next_due_at`` through the content store."""

    def __init__(self, content_store, clock: SiteClock) -> None:
        self._content = content_store
        self._clock = clock

    def get_interval(self, item_id: int) -> int:
        days = coerce_int(self._content.get_meta(item_id, INTERVAL_KEY))
        return days if days > 0 else DEFAULT_INTERVAL_DAYS

    def has_interval(self, item_id: int) -> bool:
        return coerce_int(self._content.get_meta(item_id, INTERVAL_KEY)) > 0

    def set_interval(self, item_id: int, days: Any) -> None:
        self._content.set_meta(item_id, INTERVAL_KEY, str(coerce_int(days)))

    def get_next_due(self, item_id: int) -> Optional[datetime]:
        return self._clock.parse(self._content.get_meta(item_id, NEXT_DUE_KEY))

    def set_next_due(self, item_id: int, timestamp: datetime) -> None:
        self._content.set_meta(item_id, NEXT_DUE_KEY, self._clock.format(timestamp))

    def arm(self, item_id: int, now: datetime) -> datetime:
        """Store ``now`` plus the item's interval as its next due time and return it."""

        # Whole 86400-second days, independent of DST shifts in the site timezone.
        elapsed = timedelta(days=self.get_interval(item_id))
        due_at = (now.astimezone(timezone.utc) + elapsed).astimezone(self._clock.tz)
        self.set_next_due(item_id, due_at)
        return due_at

    def clear(self, item_id: int) -> None:
        self._content.delete_meta(item_id, NEXT_DUE_KEY)
        self._content.delete_meta(item_id, INTERVAL_KEY)
