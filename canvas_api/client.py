import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

from canvas_api.auth import get_headers
from canvas_api.rate_limiter import CanvasRateLimiter

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
DEFAULT_TIMEOUT = 10.0
DEFAULT_PER_PAGE = 100
MAX_ERROR_BODY = 500


class ApiError(Exception):
    """Base error for a single Canvas API call"""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class NetworkError(ApiError):
    """Transport failure, including timeouts"""
    pass


class AuthError(ApiError):
    def __init__(self, status: int, url: Optional[str] = None):
        super().__init__(f"authorization failed (HTTP {status})", url)
        self.status = status


class NotFoundError(ApiError):
    def __init__(self, url: Optional[str] = None):
        super().__init__("resource not found (HTTP 404)", url)
        self.status = 404


class UnexpectedStatusError(ApiError):
    def __init__(self, status: int, body: str = "", url: Optional[str] = None):
        super().__init__(f"unexpected response (HTTP {status})", url)
        self.status = status
        self.body = body


class DecodeError(ApiError):
    """Response body was not the JSON we expected"""
    pass


class CanvasClient:
    """Authenticated, read-only GET access to the Canvas REST API.

    The token and base URL are fixed at construction and shared read-only by
    every thread using the client. Each call carries a bounded timeout.
    """

    def __init__(self, base_url: str, token: str, timeout: float = DEFAULT_TIMEOUT,
                 per_page: int = DEFAULT_PER_PAGE, session: Optional[requests.Session] = None,
                 rate_limiter: Optional[CanvasRateLimiter] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.per_page = per_page
        self.session = session if session is not None else requests.Session()
        self.session.headers.update(get_headers(token))
        self.rate_limiter = rate_limiter or CanvasRateLimiter()

    @classmethod
    def from_config(cls, config, **kwargs) -> "CanvasClient":
        return cls(config.base_url, config.token, timeout=config.timeout,
                   per_page=config.per_page, **kwargs)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.session.close()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{API_PREFIX}/{path.lstrip('/')}"

    def _request(self, url: str, params: Optional[Dict] = None) -> requests.Response:
        attempts = 0
        while True:
            logger.debug(f"GET {url} params={params}")
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)
            except requests.exceptions.Timeout:
                logger.error(f"Request timed out: {url}")
                raise NetworkError("request timed out", url)
            except requests.exceptions.RequestException as e:
                logger.error(f"API request failed: {e}")
                raise NetworkError(f"request failed: {e}", url)

            if response.status_code == 429 and attempts < self.rate_limiter.max_retries:
                attempts += 1
                self.rate_limiter.handle_rate_limit(response)
                continue
            break

        status = response.status_code
        if status in (401, 403):
            raise AuthError(status, url)
        if status == 404:
            raise NotFoundError(url)
        if not 200 <= status < 300:
            raise UnexpectedStatusError(status, response.text[:MAX_ERROR_BODY], url)
        return response

    @staticmethod
    def _decode(response: requests.Response, url: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Failed to parse JSON response from {url}: {e}")
            raise DecodeError("invalid JSON in response body", url)

    def get(self, path: str, params: Optional[Dict] = None) -> Any:
        """GET a single resource and return its parsed JSON body."""
        url = self.url_for(path)
        return self._decode(self._request(url, params), url)

    def iter_pages(self, path: str, params: Optional[Dict] = None) -> Iterator[Any]:
        """Yield parsed pages of a listing, following rel="next" links.

        The next link is absolute and already carries the query string, so
        params are only sent with the first request.
        """
        params = dict(params or {})
        params.setdefault("per_page", self.per_page)

        url = self.url_for(path)
        seen = set()
        while url and url not in seen:
            seen.add(url)
            response = self._request(url, params)
            yield self._decode(response, url)

            url = response.links.get("next", {}).get("url")
            params = None

    def get_paginated(self, path: str, params: Optional[Dict] = None) -> List[Any]:
        """Return every page of a listing; all pages are fetched before returning."""
        pages = list(self.iter_pages(path, params))
        logger.debug(f"Fetched {len(pages)} page(s) for {path}")
        return pages
