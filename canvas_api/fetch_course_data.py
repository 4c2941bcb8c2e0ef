# canvas_api/fetch_course_data.py

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Optional, Sequence, Union

from canvas_api.client import CanvasClient
from canvas_api.fetch_modules import CourseUnavailableError, fetch_course
from canvas_api.models import AggregateResult, Course, CourseResult

logger = logging.getLogger(__name__)

CourseOutcome = Union[CourseResult, CourseUnavailableError]


def aggregate_courses(
    client: CanvasClient,
    courses: Sequence[Course],
    max_workers: Optional[int] = None,
    fetch: Callable[[CanvasClient, Course, threading.Event], CourseResult] = fetch_course,
) -> AggregateResult:
    """
    Fetch all courses in parallel and join the results.

    Args:
        client: Shared Canvas API client
        courses: Courses in configured order
        max_workers: Maximum number of courses fetched at once (default: all of them)
        fetch: Per-course fetch function; receives a cancel event set on interrupt

    Returns:
        AggregateResult whose successes and failures keep the configured
        course order no matter which fetch finishes first
    """
    if not courses:
        return AggregateResult()

    workers = max_workers or len(courses)
    outcomes: Dict[int, CourseOutcome] = {}
    cancel = threading.Event()

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="course-fetch")
    try:
        future_to_index = {
            executor.submit(fetch, client, course, cancel): index
            for index, course in enumerate(courses)
        }

        # Join point: every course ends in a result or a failure
        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                outcomes[index] = future.result()
            except CourseUnavailableError as e:
                outcomes[index] = e
    except BaseException:
        # Interrupted: running fetches stop before their next request,
        # queued ones never start
        cancel.set()
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    else:
        executor.shutdown(wait=True)

    result = AggregateResult()
    for index, course in enumerate(courses):
        outcome = outcomes[index]
        if isinstance(outcome, CourseUnavailableError):
            result.failures.append((course, outcome))
        else:
            result.successes.append(outcome)

    logger.info(f"Fetched {len(result.successes)} of {len(courses)} courses, {result.failure_count} failed")
    return result
