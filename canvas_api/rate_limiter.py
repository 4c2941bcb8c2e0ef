import time
import threading
from typing import Callable, Optional
import logging

logger = logging.getLogger(__name__)

MAX_RETRY_AFTER = 60.0

class CanvasRateLimiter:
    """Back-off for Canvas 429 responses, shared by all course-fetch threads."""

    def __init__(self, max_retries: int = 1, default_retry_after: float = 5.0,
                 sleep: Callable[[float], None] = time.sleep):
        self.max_retries = max_retries
        self.default_retry_after = default_retry_after
        self._sleep = sleep
        self._lock = threading.Lock()
        self._throttled = 0

    @property
    def throttled_count(self) -> int:
        with self._lock:
            return self._throttled

    def retry_after(self, response) -> float:
        """Seconds to wait according to the Retry-After header"""
        value = response.headers.get("Retry-After")
        try:
            wait = float(value) if value is not None else self.default_retry_after
        except (TypeError, ValueError):
            wait = self.default_retry_after
        return max(0.0, min(wait, MAX_RETRY_AFTER))

    def handle_rate_limit(self, response) -> Optional[float]:
        """Handle rate limit response from Canvas API"""
        if response.status_code != 429:  # Too Many Requests
            return None

        wait = self.retry_after(response)
        with self._lock:
            self._throttled += 1
        logger.warning(f"Rate limit hit, waiting {wait} seconds")
        self._sleep(wait)
        return wait
