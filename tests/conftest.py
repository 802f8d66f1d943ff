"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta

import pytest

from post_password_scheduler.client import ContentStoreError
from post_password_scheduler.config import RotationPolicy
from post_password_scheduler.scheduler import PasswordRotationEngine
from post_password_scheduler.store import IntervalStore, SiteClock


class FakeContentStore:
    """In-memory stand-in for the WordPress REST API."""

    def __init__(self):
        self.items = {}
        self.updates = []
        self.fail_updates = set()
        self.unconfirmed_updates = set()
        self.fail_meta_writes = set()
        self.fail_query = False

    def add(self, item_id, title="Post", password="", meta=None):
        self.items[item_id] = {
            "id": item_id,
            "title": {"raw": title},
            "password": password,
            "type_route": "posts",
            "meta": dict(meta or {}),
        }
        return self.items[item_id]

    def query(self, has_password=True):
        if self.fail_query:
            raise ContentStoreError("query failed")
        result = [dict(item, meta=dict(item["meta"])) for item in self.items.values()]
        if has_password:
            result = [item for item in result if item["password"]]
        return result

    def get_item(self, item_id):
        return dict(self.items[item_id])

    def update_secret(self, item_id, secret):
        if item_id in self.fail_updates:
            raise ContentStoreError("update rejected")
        if item_id in self.unconfirmed_updates:
            return None
        self.items[item_id]["password"] = secret
        self.updates.append((item_id, secret))
        return item_id

    def get_meta(self, item_id, key):
        return self.items[item_id]["meta"].get(key)

    def set_meta(self, item_id, key, value):
        if item_id in self.fail_meta_writes:
            raise ContentStoreError("meta write rejected")
        self.items[item_id]["meta"][key] = value

    def delete_meta(self, item_id, key):
        self.items[item_id]["meta"].pop(key, None)


class FixedClock(SiteClock):
    """Site clock frozen at a settable moment."""

    def __init__(self, moment, timezone_name="UTC"):
        super().__init__(timezone_name)
        self.moment = moment.replace(tzinfo=self.tz)

    def now(self):
        return self.moment

    def advance(self, **kwargs):
        self.moment = self.moment + timedelta(**kwargs)


class RecordingNotifier:
    """Notifier that remembers what it was asked to send."""

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send(self, recipient, subject, body):
        if self.fail:
            raise RuntimeError("mail transport down")
        self.sent.append((recipient, subject, body))


@pytest.fixture
def content_store():
    """Empty in-memory content store."""
    return FakeContentStore()


@pytest.fixture
def clock():
    """Clock frozen at 2024-03-10 12:00:00 UTC."""
    return FixedClock(datetime(2024, 3, 10, 12, 0, 0))


@pytest.fixture
def notifier():
    """Recording notifier."""
    return RecordingNotifier()


@pytest.fixture
def policy():
    """Rotation policy addressed to a test administrator."""
    return RotationPolicy(admin_email="admin@example.com")


@pytest.fixture
def intervals(content_store, clock):
    """Interval store on top of the fake content store."""
    return IntervalStore(content_store, clock)


@pytest.fixture
def engine(content_store, policy, clock):
    """Rotation engine wired to the fakes."""
    return PasswordRotationEngine(content_store, policy, clock=clock)


@pytest.fixture
def failing_notifier():
    """Notifier whose transport is down."""
    return RecordingNotifier(fail=True)


@pytest.fixture
def strict_engine(content_store, clock):
    """Rotation engine that never arms posts without a stored interval."""
    policy = RotationPolicy(admin_email="admin@example.com", arm_unconfigured_items=False)
    return PasswordRotationEngine(content_store, policy, clock=clock)


@pytest.fixture
def make_clock():
    """Factory for frozen clocks in an arbitrary site timezone."""
    return FixedClock
