"""Core password rotation logic: picking due posts and rotating them."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .client import ContentStoreError
from .config import RotationPolicy
from .notification import NotificationOutbox, RotationNotice
from .passwords import generate_password
from .store import NEXT_DUE_KEY, IntervalStore, SiteClock

LOGGER = logging.getLogger("post_password_scheduler.scheduler")

ROTATED = "rotated"
FAILED = "failed"


@dataclass(frozen=True)
class ProtectedItem:
    """What the scheduler needs to know about a post."""

    id: int
    title: str
    password: str
    post_type: str
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_password_protected(self) -> bool:
        return bool(self.password)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "ProtectedItem":
        title = payload.get("title")
        if isinstance(title, dict):
            title = title.get("raw") or title.get("rendered")
        meta = payload.get("meta")
        return cls(
            id=int(payload["id"]),
            title=str(title or f"#{payload['id']}"),
            password=str(payload.get("password") or ""),
            post_type=str(payload.get("type_route") or payload.get("type") or "posts"),
            meta=dict(meta) if isinstance(meta, dict) else {},
        )


@dataclass(frozen=True)
class RotationOutcome:
    """What happened to one item during a rotation batch."""

    item_id: int
    title: str
    status: str
    next_due_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def rotated(self) -> bool:
        return self.status == ROTATED


class DueItemSelector:
    """Finds protected posts, optionally only those past their due time.

    With ``require_interval`` the unattended pass also skips posts that have a
    due date but no stored interval.
    """

    def __init__(
        self, content_store, intervals: IntervalStore, clock: SiteClock, require_interval: bool = False
    ) -> None:
        self._content = content_store
        self._intervals = intervals
        self._clock = clock
        self._require_interval = require_interval

    def select(self, unattended: bool) -> List[ProtectedItem]:
        # One unpaged pass; a ContentStoreError here aborts the batch.
        items = [ProtectedItem.from_api(payload) for payload in self._content.query(has_password=True)]
        items = [item for item in items if item.is_password_protected]
        if not unattended:
            return items

        now = self._clock.now().astimezone(timezone.utc)
        due: List[ProtectedItem] = []
        for item in items:
            if self._require_interval and not self._intervals.has_interval(item.id):
                continue
            due_at = self._intervals.get_next_due(item.id)
            if due_at is None:
                raw = self._content.get_meta(item.id, NEXT_DUE_KEY)
                if raw:
                    LOGGER.warning("Item %s has unreadable %s %r", item.id, NEXT_DUE_KEY, raw)
                continue
            if due_at.astimezone(timezone.utc) < now:
                due.append(item)
        return due


class PasswordRotationEngine:
    """Rotates the passwords of selected posts and queues admin notices."""

    def __init__(
        self,
        content_store,
        policy: RotationPolicy,
        clock: Optional[SiteClock] = None,
        outbox: Optional[NotificationOutbox] = None,
        password_factory: Optional[Callable[[Optional[str]], str]] = None,
    ) -> None:
        self._content = content_store
        self._policy = policy
        self._clock = clock or SiteClock(policy.site_timezone)
        self.intervals = IntervalStore(content_store, self._clock)
        self.selector = DueItemSelector(
            content_store, self.intervals, self._clock, require_interval=not policy.arm_unconfigured_items
        )
        self.outbox = outbox or NotificationOutbox()
        self._password_factory = password_factory or self._default_password
        self._lock = threading.Lock()

    def rotate_due(self, unattended: bool) -> List[RotationOutcome]:
        """Rotate every selected item once. Overlapping calls wait for each other."""

        with self._lock:
            candidates = self.selector.select(unattended)
            LOGGER.info(
                "Rotation batch starting (unattended=%s, candidates=%s)", unattended, len(candidates)
            )
            outcomes: List[RotationOutcome] = []
            seen = set()
            for item in candidates:
                if item.id in seen:
                    continue
                seen.add(item.id)
                outcomes.append(self._rotate_item(item))
            rotated = sum(1 for outcome in outcomes if outcome.rotated)
            LOGGER.info("Rotation batch finished: %s rotated, %s failed", rotated, len(outcomes) - rotated)
            return outcomes

    # ---- helpers ----------------------------------------------------------------
    def _default_password(self, previous: Optional[str]) -> str:
        return generate_password(
            length=self._policy.password_length,
            special_chars=self._policy.special_chars,
            previous=previous,
        )

    def _rotate_item(self, item: ProtectedItem) -> RotationOutcome:
        password = self._password_factory(item.password)
        try:
            updated_id = self._content.update_secret(item.id, password)
        except ContentStoreError as exc:
            LOGGER.error("Could not update password for item %s: %s", item.id, exc)
            return RotationOutcome(item.id, item.title, FAILED, error=str(exc))
        if not updated_id:
            LOGGER.error("Content store did not confirm password update for item %s", item.id)
            return RotationOutcome(item.id, item.title, FAILED, error="update not confirmed")

        next_due: Optional[datetime] = None
        error: Optional[str] = None
        if self._policy.arm_unconfigured_items or self.intervals.has_interval(item.id):
            try:
                next_due = self.intervals.arm(item.id, self._clock.now())
            except ContentStoreError as exc:
                # The password already changed, so the notice still has to go out.
                LOGGER.error("Password rotated but %s not saved for item %s: %s", NEXT_DUE_KEY, item.id, exc)
                error = str(exc)

        self.outbox.emit(RotationNotice.for_item(self._policy.admin_email, item.title, password))
        LOGGER.info("Rotated password for item %s", item.id)
        return RotationOutcome(item.id, item.title, ROTATED, next_due_at=next_due, error=error)
