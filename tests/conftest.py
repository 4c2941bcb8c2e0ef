"""Shared fixtures: an in-memory stand-in for requests.Session."""

import json
import threading

import pytest
import requests

from canvas_api.client import CanvasClient
from canvas_api.models import Course
from canvas_api.rate_limiter import CanvasRateLimiter

BASE_URL = "https://canvas.test"
API = f"{BASE_URL}/api/v1"


def make_response(url, body=None, status=200, next_url=None, raw=None, headers=None):
    response = requests.Response()
    response.status_code = status
    response.url = url
    response.encoding = "utf-8"
    if raw is not None:
        response._content = raw.encode("utf-8")
    else:
        response._content = json.dumps(body if body is not None else []).encode("utf-8")
    if next_url:
        response.headers["Link"] = f'<{next_url}>; rel="next", <{url}>; rel="current"'
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response


class FakeSession:
    """Answers GET requests from a url -> responses table.

    A route holds a list; each call pops the first entry until one is left,
    which then answers every further call. Entries may be exceptions.
    """

    def __init__(self):
        self.headers = {}
        self.routes = {}
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def add(self, url, *entries):
        self.routes[url] = list(entries)
        return self

    def add_json(self, url, body, status=200, next_url=None):
        return self.add(url, make_response(url, body, status=status, next_url=next_url))

    def get(self, url, params=None, timeout=None):
        with self._lock:
            self.calls.append((url, params, timeout))
            entries = self.routes.get(url)
            if entries is None:
                entry = make_response(url, {"errors": [{"message": "not found"}]}, status=404)
            elif len(entries) > 1:
                entry = entries.pop(0)
            else:
                entry = entries[0]
        if isinstance(entry, BaseException):
            raise entry
        return entry

    def urls_called(self):
        return [call[0] for call in self.calls]

    def close(self):
        self.closed = True


def modules_url(course_id):
    return f"{API}/courses/{course_id}/modules"


def items_url(course_id, module_id):
    return f"{API}/courses/{course_id}/modules/{module_id}/items"


def module(module_id, name, position):
    return {"id": module_id, "name": name, "position": position, "items_count": 0}


def item(item_id, title, type_="Page", html_url=None):
    data = {"id": item_id, "title": title, "type": type_}
    if html_url is not None:
        data["html_url"] = html_url
    return data


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client(session, sleeps):
    limiter = CanvasRateLimiter(sleep=sleeps.append)
    return CanvasClient(BASE_URL, "secret-token", timeout=3.0, session=session, rate_limiter=limiter)


@pytest.fixture
def course_a():
    return Course(id=101, display_name="Algorithms")


@pytest.fixture
def course_b():
    return Course(id=202, display_name="Biology")


@pytest.fixture
def course_c():
    return Course(id=303, display_name="Chemistry")
