"""Tests for the Canvas API client."""

import pytest
import requests

from canvas_api.client import (
    AuthError,
    CanvasClient,
    DecodeError,
    NetworkError,
    NotFoundError,
    UnexpectedStatusError,
)
from canvas_api.rate_limiter import CanvasRateLimiter
from conftest import API, BASE_URL, FakeSession, make_response


class TestConstruction:
    """Headers and URL building."""

    def test_bearer_token_is_sent(self, client, session):
        assert session.headers["Authorization"] == "Bearer secret-token"
        assert session.headers["Accept"] == "application/json"

    def test_url_for_joins_api_prefix(self):
        client = CanvasClient(BASE_URL + "/", "t", session=FakeSession())
        assert client.url_for("courses/1/modules") == f"{API}/courses/1/modules"
        assert client.url_for("/courses/1") == f"{API}/courses/1"

    def test_empty_token_rejected(self):
        with pytest.raises(ValueError):
            CanvasClient(BASE_URL, "", session=FakeSession())

    def test_context_manager_closes_session(self, session):
        with CanvasClient(BASE_URL, "t", session=session):
            pass
        assert session.closed


class TestGet:
    """Single-page requests and status mapping."""

    def test_returns_parsed_json(self, client, session):
        session.add_json(f"{API}/courses/1", {"id": 1, "name": "Course"})
        assert client.get("courses/1") == {"id": 1, "name": "Course"}
        url, params, timeout = session.calls[0]
        assert timeout == 3.0

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_errors(self, client, session, status):
        session.add_json(f"{API}/courses/1", {"errors": []}, status=status)
        with pytest.raises(AuthError) as exc_info:
            client.get("courses/1")
        assert exc_info.value.status == status
        assert exc_info.value.url == f"{API}/courses/1"

    def test_not_found(self, client):
        with pytest.raises(NotFoundError):
            client.get("courses/999")

    def test_unexpected_status_keeps_body(self, client, session):
        session.add(f"{API}/courses/1", make_response(f"{API}/courses/1", raw="boom", status=500))
        with pytest.raises(UnexpectedStatusError) as exc_info:
            client.get("courses/1")
        assert exc_info.value.status == 500
        assert exc_info.value.body == "boom"

    def test_malformed_json_is_decode_error(self, client, session):
        session.add(f"{API}/courses/1", make_response(f"{API}/courses/1", raw="<html>"))
        with pytest.raises(DecodeError):
            client.get("courses/1")

    def test_timeout_is_network_error(self, client, session):
        session.add(f"{API}/courses/1", requests.exceptions.ReadTimeout("slow"))
        with pytest.raises(NetworkError, match="timed out"):
            client.get("courses/1")

    def test_connection_failure_is_network_error(self, client, session):
        session.add(f"{API}/courses/1", requests.exceptions.ConnectionError("refused"))
        with pytest.raises(NetworkError):
            client.get("courses/1")


class TestRateLimit:
    """429 handling."""

    def test_retries_once_after_retry_after(self, client, session, sleeps):
        url = f"{API}/courses/1"
        session.add(
            url,
            make_response(url, {}, status=429, headers={"Retry-After": "2"}),
            make_response(url, {"id": 1}),
        )
        assert client.get("courses/1") == {"id": 1}
        assert sleeps == [2.0]
        assert client.rate_limiter.throttled_count == 1

    def test_persistent_429_is_unexpected(self, client, session, sleeps):
        url = f"{API}/courses/1"
        session.add(url, make_response(url, {}, status=429))
        with pytest.raises(UnexpectedStatusError) as exc_info:
            client.get("courses/1")
        assert exc_info.value.status == 429
        assert sleeps == [5.0]

    def test_retry_after_is_capped(self):
        limiter = CanvasRateLimiter(sleep=lambda s: None)
        response = make_response("u", {}, status=429, headers={"Retry-After": "3600"})
        assert limiter.retry_after(response) == 60.0

    def test_non_429_is_ignored(self):
        limiter = CanvasRateLimiter(sleep=lambda s: pytest.fail("should not sleep"))
        assert limiter.handle_rate_limit(make_response("u", {})) is None


class TestPagination:
    """Following Link headers."""

    def test_follows_next_links_until_exhausted(self, client, session):
        first = f"{API}/courses/1/modules"
        second = f"{API}/courses/1/modules?page=2&per_page=100"
        third = f"{API}/courses/1/modules?page=3&per_page=100"
        session.add_json(first, [{"id": 1}], next_url=second)
        session.add_json(second, [{"id": 2}], next_url=third)
        session.add_json(third, [{"id": 3}])

        pages = client.get_paginated("courses/1/modules")

        assert pages == [[{"id": 1}], [{"id": 2}], [{"id": 3}]]
        assert session.urls_called() == [first, second, third]

    def test_per_page_only_on_first_request(self, client, session):
        first = f"{API}/courses/1/modules"
        second = f"{API}/courses/1/modules?page=2&per_page=100"
        session.add_json(first, [], next_url=second)
        session.add_json(second, [])

        client.get_paginated("courses/1/modules")

        assert session.calls[0][1] == {"per_page": 100}
        assert session.calls[1][1] is None

    def test_caller_per_page_wins(self, client, session):
        session.add_json(f"{API}/x", [])
        client.get_paginated("x", {"per_page": 10})
        assert session.calls[0][1] == {"per_page": 10}

    def test_repeated_next_link_stops(self, client, session):
        url = f"{API}/courses/1/modules"
        session.add_json(url, [{"id": 1}], next_url=url)
        assert client.get_paginated("courses/1/modules") == [[{"id": 1}]]

    def test_error_on_later_page_propagates(self, client, session):
        first = f"{API}/courses/1/modules"
        second = f"{API}/courses/1/modules?page=2"
        session.add_json(first, [{"id": 1}], next_url=second)
        session.add_json(second, {}, status=401)
        with pytest.raises(AuthError):
            client.get_paginated("courses/1/modules")
