"""Flatten aggregated courses into one line per module item.

Line layout::

    <course> || <module> || <item title> || <url>

Backslashes, pipes and line breaks inside a field are backslash-escaped, so
an unescaped " || " only ever appears between fields and every line carries
exactly four fields. The url field is empty for items without one.
"""

import logging
from typing import Iterable, Iterator, List

from canvas_api.models import AggregateResult, FlatRecord

logger = logging.getLogger(__name__)

DELIMITER = " || "
FIELD_COUNT = 4

_ESCAPES = {
    "\\": "\\\\",
    "|": "\\|",
    "\n": "\\n",
    "\r": "\\r",
}
_UNESCAPES = {"\\": "\\", "|": "|", "n": "\n", "r": "\r"}


class LineFormatError(ValueError):
    pass


def escape_field(value: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def format_records(result: AggregateResult) -> List[FlatRecord]:
    """One FlatRecord per navigable item: course order, then module position, then item order."""
    records = []
    for course_result in result.successes:
        course_name = course_result.course.display_name
        for module, items in course_result.modules:
            for item in items:
                if not item.is_navigable:
                    continue
                records.append(FlatRecord(
                    course_name=course_name,
                    module_name=module.name,
                    item_title=item.title,
                    item_url=item.html_url or "",
                ))
    logger.debug(f"Formatted {len(records)} records from {len(result.successes)} courses")
    return records


def serialize_record(record: FlatRecord) -> str:
    return DELIMITER.join(escape_field(value) for value in (
        record.course_name,
        record.module_name,
        record.item_title,
        record.item_url,
    ))


def iter_lines(records: Iterable[FlatRecord]) -> Iterator[str]:
    for record in records:
        yield serialize_record(record)


def parse_line(line: str) -> FlatRecord:
    """Split a serialized line back into its record.

    Raises:
        LineFormatError: if the line does not hold exactly four fields or ends
        in a dangling escape.
    """
    line = line.rstrip("\r\n")
    fields = []
    current = []
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == "\\":
            if i + 1 >= len(line):
                raise LineFormatError("dangling escape at end of line")
            nxt = line[i + 1]
            current.append(_UNESCAPES.get(nxt, nxt))
            i += 2
        elif line.startswith(DELIMITER, i):
            fields.append("".join(current))
            current = []
            i += len(DELIMITER)
        else:
            current.append(ch)
            i += 1
    fields.append("".join(current))

    if len(fields) != FIELD_COUNT:
        raise LineFormatError(f"expected {FIELD_COUNT} fields, found {len(fields)}")
    return FlatRecord(*fields)
