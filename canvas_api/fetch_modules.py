import logging
import threading
from typing import Dict, List, Optional

from canvas_api.client import ApiError, CanvasClient, DecodeError
from canvas_api.models import Course, CourseResult, Module, ModuleItem

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Course-level fetch failure"""
    pass


class FetchCancelledError(FetchError):
    """The run was interrupted before this course finished"""
    pass


class CourseUnavailableError(FetchError):
    def __init__(self, course: Course, cause: ApiError):
        super().__init__(f"course {course.id} unavailable: {cause}")
        self.course = course
        self.cause = cause

    @property
    def course_id(self) -> int:
        return self.course.id


def _flatten_pages(pages: list, path: str) -> List[Dict]:
    objects = []
    for page in pages:
        if not isinstance(page, list):
            raise DecodeError("expected a JSON array page", path)
        objects.extend(page)
    return objects


def _parse(factory, data, path: str):
    try:
        return factory(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"malformed object in response: {e}", path)


def list_modules(client: CanvasClient, course_id: int) -> List[Module]:
    """All modules of a course, by position then id."""
    path = f"courses/{course_id}/modules"
    pages = client.get_paginated(path)
    modules = [_parse(Module.from_dict, data, path) for data in _flatten_pages(pages, path)]
    return sorted(modules, key=lambda m: (m.position, m.id))


def list_module_items(client: CanvasClient, course_id: int, module_id: int) -> List[ModuleItem]:
    # Server order is the authored order, never re-sort it
    path = f"courses/{course_id}/modules/{module_id}/items"
    pages = client.get_paginated(path)
    return [_parse(ModuleItem.from_dict, data, path) for data in _flatten_pages(pages, path)]


def _check_cancelled(course: Course, cancel: Optional[threading.Event]):
    if cancel is not None and cancel.is_set():
        raise FetchCancelledError(f"fetch of course {course.id} abandoned")


def fetch_course(client: CanvasClient, course: Course,
                 cancel: Optional[threading.Event] = None) -> CourseResult:
    """
    Fetch every module of a course together with its items.

    Args:
        client: The Canvas API client
        course: The configured course
        cancel: Set by the caller to abandon the course between requests

    Returns:
        CourseResult with modules in position order and items in server order

    Raises:
        CourseUnavailableError: if the module list itself cannot be fetched.
        A failing item list only empties that module and logs a warning.
        FetchCancelledError: if cancel is set before the next request starts.
    """
    logger.info(f"Fetching modules for course {course.id} ({course.display_name})")
    _check_cancelled(course, cancel)
    try:
        modules = list_modules(client, course.id)
    except ApiError as e:
        logger.error(f"Failed to fetch modules for course {course.id}: {e}")
        raise CourseUnavailableError(course, e) from e

    result = CourseResult(course=course)
    for module in modules:
        _check_cancelled(course, cancel)
        try:
            items = list_module_items(client, course.id, module.id)
        except ApiError as e:
            logger.warning(
                f"Skipping items of module '{module.name}' ({module.id}) "
                f"in course {course.display_name}: {e}"
            )
            items = []
        result.modules.append((module, items))

    logger.info(f"Course {course.display_name}: {len(result.modules)} modules, {result.item_count} items")
    return result
