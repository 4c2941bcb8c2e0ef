"""Tests for writing the item stream and diagnostics."""

import io

import pytest

from canvas_api.client import AuthError
from canvas_api.fetch_modules import CourseUnavailableError
from canvas_api.models import Course
from utils.stream import emit, format_failure, report_failures


class RecordingSink(io.StringIO):
    def __init__(self):
        super().__init__()
        self.flushes = []

    def flush(self):
        self.flushes.append(self.getvalue())
        super().flush()


class TestEmit:
    """Passthrough writing with incremental flushes."""

    def test_writes_one_line_per_entry(self):
        sink = io.StringIO()
        assert emit(["a || b || c || d", "e || f || g || "], sink) == 2
        assert sink.getvalue() == "a || b || c || d\ne || f || g || \n"

    def test_flushes_after_each_line(self):
        sink = RecordingSink()
        emit(["one", "two"], sink)
        assert sink.flushes[:2] == ["one\n", "one\ntwo\n"]

    def test_flushes_partial_output_on_error(self):
        def lines():
            yield "first"
            raise RuntimeError("producer failed")

        sink = RecordingSink()
        with pytest.raises(RuntimeError):
            emit(lines(), sink, flush_every=0)
        assert sink.flushes == ["first\n"]

    def test_empty_stream(self):
        sink = io.StringIO()
        assert emit([], sink) == 0
        assert sink.getvalue() == ""


class TestReportFailures:
    """Diagnostics go to their own channel, one line per course."""

    def test_names_course_and_cause(self):
        course = Course(202, "Biology")
        error = CourseUnavailableError(course, AuthError(401))
        sink = io.StringIO()

        assert report_failures([(course, error)], sink) == 1

        lines = sink.getvalue().splitlines()
        assert len(lines) == 1
        assert "Biology" in lines[0] and "202" in lines[0]
        assert "authorization failed" in lines[0]

    def test_plain_exception(self):
        assert "boom" in format_failure(Course(1, "X"), RuntimeError("boom"))
