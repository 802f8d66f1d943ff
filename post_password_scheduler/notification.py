"""Notification helpers for the password rotation scheduler."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

import boto3

from .config import NotificationConfig

LOGGER = logging.getLogger("post_password_scheduler.notification")


@dataclass(frozen=True)
class RotationNotice:
    """A message telling the administrator about a freshly rotated password."""

    recipient: str
    subject: str
    body: str

    @classmethod
    def for_item(cls, recipient: str, title: str, password: str) -> "RotationNotice":
        return cls(
            recipient=recipient,
            subject=f"Password changed - {title}",
            body=f"New password for post {title} is: {password}",
        )


@dataclass(frozen=True)
class NotificationResult:
    """Represents a successfully queued notification."""

    recipient: str
    message_id: str


class NotificationOutbox:
    """Collects notices during a rotation batch until the caller drains them."""

    def __init__(self) -> None:
        self._pending: List[RotationNotice] = []

    def __len__(self) -> int:
        return len(self._pending)

    def emit(self, notice: RotationNotice) -> None:
        self._pending.append(notice)

    def drain(self, notifier) -> int:
        """Hand every pending notice to ``notifier.send`` once; returns how many went out.

        Failures are logged and dropped. There are no retries and nothing is
        re-queued.
        """

        pending, self._pending = self._pending, []
        delivered = 0
        for notice in pending:
            try:
                notifier.send(notice.recipient, notice.subject, notice.body)
            except Exception as exc:
                LOGGER.warning("Dropping notification %r: %s", notice.subject, exc)
                continue
            delivered += 1
        return delivered


def _sns_client(config: NotificationConfig):
    options = {"region_name": config.region}
    if config.access_key and config.secret_key:
        options["aws_access_key_id"] = config.access_key
        options["aws_secret_access_key"] = config.secret_key
    # Point at LocalStack or another SNS-compatible endpoint when set.
    endpoint_url = os.getenv("AWS_ENDPOINT_URL")
    if endpoint_url:
        options["endpoint_url"] = endpoint_url
    return boto3.client("sns", **options)


class AWSSNSNotifier:
    """Publishes password change notices to an SNS topic the admin subscribes to."""

    def __init__(self, config: NotificationConfig, sns_client: Optional[object] = None) -> None:
        self._config = config
        self._sns = sns_client if sns_client is not None else _sns_client(config)

    def send(self, recipient: str, subject: str, body: str) -> NotificationResult:
        """Publish one message to the configured SNS topic. Raises on failure."""

        prefix = (self._config.subject_prefix or "").encode("ascii", "ignore").decode("ascii").strip()
        full_subject = f"{prefix} {subject}" if prefix else subject
        # SNS Subject must be ASCII, <= 100 chars
        full_subject = full_subject.encode("ascii", "replace").decode("ascii")[:100]

        response = self._sns.publish(
            TopicArn=self._config.topic_arn,
            Subject=full_subject,
            Message=body,
            MessageAttributes={
                "recipient": {"DataType": "String", "StringValue": recipient},
            },
        )
        return NotificationResult(recipient=recipient, message_id=response.get("MessageId", ""))
