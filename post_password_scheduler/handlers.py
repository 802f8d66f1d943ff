"""Keeps rotation metadata in step with the post edit form."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .store import IntervalStore, SiteClock, coerce_int

LOGGER = logging.getLogger("post_password_scheduler.handlers")

INTERVAL_FIELD = "post_password_interval"

SKIPPED = "skipped"
CLEARED = "cleared"
IGNORED = "ignored"
UNCHANGED = "unchanged"
ARMED = "armed"


def _is_empty(value: Any) -> bool:
    return value is None or value is False or value == "" or value == "0" or value == 0


class IntervalUpdateHandler:
    """Runs when a post is saved and stores the submitted rotation interval."""

    def __init__(self, content_store, intervals: IntervalStore, clock: SiteClock) -> None:
        self._content = content_store
        self._intervals = intervals
        self._clock = clock

    def on_item_saved(self, item_id: int, fields: Mapping[str, Any]) -> str:
        item = self._content.get_item(item_id)
        if not item.get("password"):
            return SKIPPED
        if INTERVAL_FIELD not in fields:
            return SKIPPED

        submitted = fields[INTERVAL_FIELD]
        if _is_empty(submitted):
            self._intervals.clear(item_id)
            LOGGER.info("Rotation disabled for item %s", item_id)
            return CLEARED

        days = coerce_int(submitted)
        if days <= 0:
            return IGNORED

        was_configured = self._intervals.has_interval(item_id)
        previous = self._intervals.get_interval(item_id)
        self._intervals.set_interval(item_id, days)

        if days != previous or not was_configured or self._intervals.get_next_due(item_id) is None:
            due_at = self._intervals.arm(item_id, self._clock.now())
            LOGGER.info("Item %s rotates every %s day(s), next at %s", item_id, days, self._clock.format(due_at))
            return ARMED
        return UNCHANGED
