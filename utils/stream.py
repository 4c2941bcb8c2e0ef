import sys
import logging
from typing import Iterable, Sequence, TextIO, Tuple

from canvas_api.models import Course

logger = logging.getLogger(__name__)


def emit(lines: Iterable[str], sink: TextIO = None, flush_every: int = 1) -> int:
    """
    Write each line plus a newline to the sink, flushing as it goes.

    Whatever was already written is flushed even when the iterable or the
    sink raises part way through.

    Returns:
        int: number of lines written
    """
    sink = sink if sink is not None else sys.stdout
    count = 0
    try:
        for line in lines:
            sink.write(line)
            sink.write("\n")
            count += 1
            if flush_every and count % flush_every == 0:
                sink.flush()
    finally:
        sink.flush()
    return count


def format_failure(course: Course, error: Exception) -> str:
    return f"error: course '{course.display_name}' ({course.id}): {getattr(error, 'cause', error)}"


def report_failures(failures: Sequence[Tuple[Course, Exception]], sink: TextIO = None) -> int:
    """Write one diagnostic line per failed course to the error channel."""
    sink = sink if sink is not None else sys.stderr
    for course, error in failures:
        sink.write(format_failure(course, error) + "\n")
    sink.flush()
    return len(failures)
