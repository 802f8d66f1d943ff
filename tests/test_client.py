"""Tests for the WordPress REST client."""

from unittest.mock import MagicMock

import pytest
import requests

from post_password_scheduler.client import ContentStoreError, PostSelection, WordPressClient
from post_password_scheduler.config import WordPressConfig
from post_password_scheduler.handlers import ARMED, INTERVAL_FIELD, IntervalUpdateHandler
from post_password_scheduler.store import IntervalStore, SiteClock


def _response(payload, headers=None, status_error=None):
    response = MagicMock()
    response.json.return_value = payload
    response.headers = headers or {}
    if status_error:
        response.raise_for_status.side_effect = status_error
    return response


@pytest.fixture
def session():
    """Mock requests session."""
    return MagicMock()


@pytest.fixture
def client(session):
    """Client talking to a mock session."""
    config = WordPressConfig(
        base_url="https://blog.example.com/",
        username="bot",
        app_password="abcd efgh",
        post_types=("posts",),
    )
    return WordPressClient(config, session=session)


class TestWordPressClient:
    """Test REST calls."""

    def test_uses_application_password(self, client, session):
        """Basic auth is configured on the session."""
        assert session.auth == ("bot", "abcd efgh")

    def test_query_follows_all_pages(self, client, session):
        """Every page is fetched and unprotected posts are dropped."""
        session.request.side_effect = [
            _response([{"id": 1, "password": "pw"}, {"id": 2, "password": ""}], {"X-WP-TotalPages": "2"}),
            _response([{"id": 3, "password": "pw", "meta": {"interval_days": "2"}}], {"X-WP-TotalPages": "2"}),
        ]

        items = client.query(has_password=True)

        assert [item["id"] for item in items] == [1, 3]
        pages = [call.kwargs["params"]["page"] for call in session.request.call_args_list]
        assert pages == [1, 2]
        first = session.request.call_args_list[0]
        assert first.args == ("GET", "https://blog.example.com/wp-json/wp/v2/posts")
        assert first.kwargs["params"]["context"] == "edit"
        assert client.get_meta(3, "interval_days") == "2"

    def test_query_rejects_unexpected_payload(self, client, session):
        """Non-list answers are an error."""
        session.request.return_value = _response({"code": "oops"})

        with pytest.raises(ContentStoreError):
            client.query()

    def test_http_errors_are_wrapped(self, client, session):
        """Transport failures surface as ContentStoreError."""
        session.request.return_value = _response({}, status_error=requests.HTTPError("500"))

        with pytest.raises(ContentStoreError):
            client.update_secret(1, "new")

    def test_update_secret_returns_id(self, client, session):
        """The confirmed id is returned."""
        session.request.return_value = _response({"id": 7})

        assert client.update_secret(7, "new") == 7
        call = session.request.call_args
        assert call.args == ("POST", "https://blog.example.com/wp-json/wp/v2/posts/7")
        assert call.kwargs["json"] == {"password": "new"}

    def test_update_secret_without_id(self, client, session):
        """A payload without id means the update was not confirmed."""
        session.request.side_effect = [_response({"id": 7}), _response({})]

        assert client.update_secret(7, "new") is None

    def test_meta_write_and_delete(self, client, session):
        """Meta is written through the post endpoint and deleted with null."""
        session.request.return_value = _response({"id": 5, "meta": {}})
        client.get_item(5)

        client.set_meta(5, "interval_days", "3")
        assert session.request.call_args.kwargs["json"] == {"meta": {"interval_days": "3"}}
        assert client.get_meta(5, "interval_days") == "3"

        client.delete_meta(5, "interval_days")
        assert session.request.call_args.kwargs["json"] == {"meta": {"interval_days": None}}
        assert client.get_meta(5, "interval_days") is None

    def test_get_meta_fetches_unknown_items(self, client, session):
        """Meta for an unseen item is loaded on demand."""
        session.request.return_value = _response({"id": 9, "meta": {"next_due_at": "2024-03-11 12:00:00"}})

        assert client.get_meta(9, "next_due_at") == "2024-03-11 12:00:00"
        assert session.request.call_args.args == ("GET", "https://blog.example.com/wp-json/wp/v2/posts/9")

def _not_found():
    response = MagicMock()
    response.status_code = 404
    return _response({"code": "rest_post_invalid_id"}, status_error=requests.HTTPError("404", response=response))


@pytest.fixture
def pages_session():
    """Mock session where item 5 exists only as a page."""
    session = MagicMock()

    def answer(method, url, **kwargs):
        if url.endswith("/posts/5"):
            return _not_found()
        if method == "GET":
            return _response({"id": 5, "password": "pw", "meta": {}})
        return _response({"id": 5})

    session.request.side_effect = answer
    return session


@pytest.fixture
def pages_client(pages_session):
    """Client configured for posts and pages."""
    config = WordPressConfig(
        base_url="https://blog.example.com",
        username="bot",
        app_password="abcd efgh",
        post_types=("posts", "pages"),
    )
    return WordPressClient(config, session=pages_session)


class TestRouteResolution:
    """Test how an id that was never listed is matched to its post type."""

    def test_unseen_page_is_found_under_pages(self, pages_client, pages_session):
        """A 404 under posts moves on to pages, and later writes stay there."""
        assert pages_client.get_item(5)["type_route"] == "pages"

        pages_client.update_secret(5, "new")

        urls = [call.args for call in pages_session.request.call_args_list]
        assert urls == [
            ("GET", "https://blog.example.com/wp-json/wp/v2/posts/5"),
            ("GET", "https://blog.example.com/wp-json/wp/v2/pages/5"),
            ("POST", "https://blog.example.com/wp-json/wp/v2/pages/5"),
        ]

    def test_save_event_for_page_writes_to_pages(self, pages_client, pages_session):
        """The save handler's interval writes land on the page endpoint."""
        clock = SiteClock("UTC")
        handler = IntervalUpdateHandler(pages_client, IntervalStore(pages_client, clock), clock)

        assert handler.on_item_saved(5, {INTERVAL_FIELD: "3"}) == ARMED

        posts = [call for call in pages_session.request.call_args_list if call.args[0] == "POST"]
        assert posts
        assert {call.args[1] for call in posts} == {"https://blog.example.com/wp-json/wp/v2/pages/5"}
        assert posts[0].kwargs["json"] == {"meta": {"interval_days": "3"}}

    def test_missing_everywhere_raises(self, session):
        """An id unknown to every post type is an error."""
        config = WordPressConfig(
            base_url="https://blog.example.com",
            username="bot",
            app_password="abcd efgh",
            post_types=("posts", "pages"),
        )
        client = WordPressClient(config, session=session)
        session.request.side_effect = [_not_found(), _not_found()]

        with pytest.raises(ContentStoreError) as excinfo:
            client.get_item(5)
        assert excinfo.value.status_code == 404

    def test_other_errors_are_not_retried(self, client, session):
        """Only 404 moves on to the next type."""
        failure = MagicMock()
        failure.status_code = 500
        session.request.return_value = _response({}, status_error=requests.HTTPError("500", response=failure))

        with pytest.raises(ContentStoreError) as excinfo:
            client.get_item(5)
        assert excinfo.value.status_code == 500
        assert session.request.call_count == 1



class TestPostSelection:
    """Test local filtering."""

    def test_filter_protected(self):
        """Only items with a password remain."""
        selection = PostSelection([{"id": 1, "password": "x"}, {"id": 2, "password": ""}, {"id": 3}])

        assert [item["id"] for item in selection.filter_protected().items] == [1]
