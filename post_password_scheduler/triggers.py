"""The two ways a rotation batch gets started: the hourly job and the operator button."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .notification import NotificationOutbox
from .scheduler import PasswordRotationEngine, RotationOutcome

LOGGER = logging.getLogger("post_password_scheduler.triggers")

JOB_NAME = "reset_post_passwords"

CADENCES = {
    "hourly": 3600,
    "twicedaily": 12 * 3600,
    "daily": 24 * 3600,
}


def cadence_seconds(cadence: Union[str, int]) -> int:
    if isinstance(cadence, int):
        seconds = cadence
    elif cadence in CADENCES:
        seconds = CADENCES[cadence]
    else:
        try:
            seconds = int(cadence)
        except ValueError:
            raise ValueError(f"Unknown cadence {cadence!r}") from None
    if seconds <= 0:
        raise ValueError("Cadence must be positive")
    return seconds


class JobScheduler:
    """Named recurring jobs on top of an APScheduler scheduler.

    The service runs a :class:`BlockingScheduler`; anything else (for example
    an unstarted ``BackgroundScheduler``) can be passed in.
    """

    def __init__(self, scheduler: Optional[BaseScheduler] = None) -> None:
        self._scheduler = scheduler or BlockingScheduler(timezone="UTC")

    def is_armed(self, job_name: str) -> bool:
        return self._scheduler.get_job(job_name) is not None

    def arm(self, job_name: str, cadence: Union[str, int], callback: Callable[[], object]) -> bool:
        """Register ``callback`` to run every ``cadence``; returns False if already armed."""

        if self.is_armed(job_name):
            return False
        self._scheduler.add_job(
            callback,
            IntervalTrigger(seconds=cadence_seconds(cadence)),
            id=job_name,
            name=job_name,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
        )
        LOGGER.debug("Armed job %s (%s)", job_name, cadence)
        return True

    def start(self) -> None:
        """Start the underlying scheduler. Blocks when it is a ``BlockingScheduler``."""

        self._scheduler.start()


@dataclass(frozen=True)
class TriggerResult:
    """Outcome reported back to whoever pressed the button."""

    type: str
    info: str
    outcomes: List[RotationOutcome] = field(default_factory=list)


class ScheduledTrigger:
    """Hourly, unattended rotation of items whose due time has passed."""

    def __init__(
        self,
        engine: PasswordRotationEngine,
        notifier,
        scheduler: JobScheduler,
        cadence: Union[str, int] = "hourly",
    ) -> None:
        self._engine = engine
        self._notifier = notifier
        self._scheduler = scheduler
        self._cadence = cadence

    def install(self) -> bool:
        if self._scheduler.is_armed(JOB_NAME):
            return False
        return self._scheduler.arm(JOB_NAME, self._cadence, self.run)

    def fire(self) -> List[RotationOutcome]:
        outcomes = self._engine.rotate_due(unattended=True)
        _deliver(self._engine.outbox, self._notifier)
        return outcomes

    def run(self) -> None:
        """Job body: one unattended pass. A failed query is logged and waits for the next tick."""

        started = time.monotonic()
        try:
            outcomes = self.fire()
        except Exception:
            LOGGER.exception("Unattended rotation pass aborted")
            return
        LOGGER.info(
            "Unattended rotation pass done: %s item(s) in %.2fs", len(outcomes), time.monotonic() - started
        )


class ManualTrigger:
    """Operator-invoked rotation of every protected item, due or not.

    Authorization is checked by the caller before :meth:`invoke`.
    """

    SUCCESS_MESSAGE = "Passwords have been reset"

    def __init__(self, engine: PasswordRotationEngine, notifier) -> None:
        self._engine = engine
        self._notifier = notifier

    def invoke(self) -> TriggerResult:
        outcomes = self._engine.rotate_due(unattended=False)
        _deliver(self._engine.outbox, self._notifier)
        return TriggerResult(type="success", info=self.SUCCESS_MESSAGE, outcomes=outcomes)


def _deliver(outbox: NotificationOutbox, notifier) -> None:
    queued = len(outbox)
    if not queued:
        return
    delivered = outbox.drain(notifier)
    LOGGER.info("Sent %s of %s notification(s)", delivered, queued)
