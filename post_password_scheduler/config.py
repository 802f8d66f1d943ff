"""Configuration dataclasses for the protected post password scheduler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class WordPressConfig:
    """Connection details for talking to the WordPress REST API."""

    base_url: str
    username: str
    app_password: str
    post_types: Sequence[str] = ("posts", "pages")
    timeout_seconds: int = 10
    per_page: int = 100


@dataclass(frozen=True)
class RotationPolicy:
    """Controls how passwords are generated and when the job runs."""

    admin_email: str
    site_timezone: str = "UTC"
    cadence: str = "hourly"
    password_length: int = 12
    special_chars: bool = True
    arm_unconfigured_items: bool = True


@dataclass(frozen=True)
class NotificationConfig:
    """Configuration for outbound SNS notifications."""

    region: str
    topic_arn: str
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    subject_prefix: Optional[str] = None
