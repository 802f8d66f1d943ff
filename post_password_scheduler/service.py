"""CLI entry point for running the protected post password scheduler."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from dotenv import find_dotenv, load_dotenv

from .client import WordPressClient
from .config import NotificationConfig, RotationPolicy, WordPressConfig
from .handlers import INTERVAL_FIELD, IntervalUpdateHandler
from .notification import AWSSNSNotifier
from .scheduler import PasswordRotationEngine
from .store import SiteClock
from .triggers import JobScheduler, ManualTrigger, ScheduledTrigger

LOGGER = logging.getLogger("post_password_scheduler.service")

REQUIRED_ENV = (
    "WP_URL",
    "WP_USERNAME",
    "WP_APP_PASSWORD",
    "ADMIN_EMAIL",
    "ROTATION_SNS_TOPIC_ARN",
    "AWS_SNS_REGION",
)


def _env_list(name: str, default: Sequence[str]) -> Tuple[str, ...]:
    """Comma-separated variable as a tuple; ``default`` when unset or blank."""

    names = tuple(part.strip() for part in os.getenv(name, "").split(",") if part.strip())
    return names or tuple(default)


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name, "").strip().lower()
    if not value:
        return default
    return value in ("1", "true", "yes", "on")


@dataclass
class Service:
    """Everything wired together from the environment.

    ``on_save`` is the hook for post-save events; the CLI exposes it as
    ``--item-saved``.
    """

    engine: PasswordRotationEngine
    scheduled: ScheduledTrigger
    manual: ManualTrigger
    jobs: JobScheduler
    on_save: IntervalUpdateHandler


def build_service_from_env() -> Service:
    load_dotenv(find_dotenv(), override=False)

    for required in REQUIRED_ENV:
        if not os.getenv(required):
            LOGGER.error("Environment variable %s is required", required)
            raise SystemExit(1)

    wp_config = WordPressConfig(
        base_url=os.environ["WP_URL"],
        username=os.environ["WP_USERNAME"],
        app_password=os.environ["WP_APP_PASSWORD"],
        post_types=_env_list("WP_POST_TYPES", ("posts", "pages")),
        timeout_seconds=int(os.getenv("WP_TIMEOUT_SECONDS", "10")),
    )

    policy = RotationPolicy(
        admin_email=os.environ["ADMIN_EMAIL"],
        site_timezone=os.getenv("SITE_TIMEZONE", "UTC"),
        cadence=os.getenv("ROTATION_CADENCE", "hourly"),
        password_length=int(os.getenv("ROTATION_PASSWORD_LENGTH", "12")),
        special_chars=_env_flag("ROTATION_SPECIAL_CHARS", default=True),
        arm_unconfigured_items=_env_flag("ROTATION_ARM_UNCONFIGURED", default=True),
    )

    notification_config = NotificationConfig(
        region=os.environ["AWS_SNS_REGION"],
        topic_arn=os.environ["ROTATION_SNS_TOPIC_ARN"],
        access_key=os.getenv("AWS_SNS_ACCESS_KEY_ID"),
        secret_key=os.getenv("AWS_SNS_SECRET_ACCESS_KEY"),
        subject_prefix=os.getenv("ROTATION_SUBJECT_PREFIX"),
    )

    client = WordPressClient(wp_config)
    notifier = AWSSNSNotifier(notification_config)
    clock = SiteClock(policy.site_timezone)
    engine = PasswordRotationEngine(client, policy, clock=clock)
    jobs = JobScheduler()
    return Service(
        engine=engine,
        scheduled=ScheduledTrigger(engine, notifier, jobs, cadence=policy.cadence),
        manual=ManualTrigger(engine, notifier),
        jobs=jobs,
        on_save=IntervalUpdateHandler(client, engine.intervals, clock),
    )


def run_scheduler_loop(service: Service, run_once: bool = False) -> None:
    """Run one unattended pass, or hand the hourly job to APScheduler and block."""

    if run_once:
        LOGGER.info("Running a single unattended rotation pass")
        service.scheduled.run()
        return

    service.scheduled.install()
    LOGGER.info("Rotation job armed; waiting for ticks")
    service.jobs.start()


def handle_item_saved(service: Service, item_id: int, interval: Optional[str]) -> str:
    """Feed one post-save event to the interval handler.

    Meant to be called by whatever receives WordPress ``save_post`` webhooks.
    ``interval=None`` means the form did not carry the interval field.
    """

    fields = {} if interval is None else {INTERVAL_FIELD: interval}
    action = service.on_save.on_item_saved(item_id, fields)
    LOGGER.info("Save event for item %s: %s", item_id, action)
    return action


def main(argv: Optional[Sequence[str]] = None) -> int:  # noqa: D401
    """Entry point for the ``post-password-scheduler`` console script."""

    parser = argparse.ArgumentParser(prog="post-password-scheduler")
    parser.add_argument("--reset-now", action="store_true", help="rotate every protected post immediately")
    parser.add_argument("--once", action="store_true", help="run a single unattended pass and exit")
    parser.add_argument("--item-saved", type=int, metavar="ID", help="apply a post-save event for post ID")
    parser.add_argument("--interval", metavar="DAYS", help="interval submitted with --item-saved")
    args = parser.parse_args(argv)

    logging.basicConfig(level=os.getenv("ROTATION_LOG_LEVEL", "INFO"))
    service = build_service_from_env()

    if args.reset_now:
        result = service.manual.invoke()
        print(result.info)
        return 0

    if args.item_saved is not None:
        print(handle_item_saved(service, args.item_saved, args.interval))
        return 0

    try:
        run_scheduler_loop(service, run_once=args.once or _env_flag("ROTATION_RUN_ONCE"))
    except KeyboardInterrupt:
        LOGGER.info("Rotation scheduler shut down")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
