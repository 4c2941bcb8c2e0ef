# canvas_finder.py

import argparse
import os
import sys
import logging
from dataclasses import replace
from typing import List, Optional

from canvas_api.client import CanvasClient
from canvas_api.fetch_course_data import aggregate_courses
from canvas_api.models import AggregateResult
from processing.file_selector import SelectorUnavailableError, extract_url, fuzzy_select, open_link
from processing.line_formatter import format_records, iter_lines
from utils.config import CONFIG_FILE, Config, ConfigError, load_config, validate_config
from utils.logger import log_event, setup_logging
from utils.stream import emit, report_failures

logger = logging.getLogger(__name__)


def collect_lines(config: Config, client: Optional[CanvasClient] = None, err=None):
    """Fetch every course and return (aggregate result, formatted lines)."""
    validate_config(config)
    err = err if err is not None else sys.stderr

    owns_client = client is None
    client = client or CanvasClient.from_config(config)
    try:
        result = aggregate_courses(client, config.courses, max_workers=config.max_workers)
        throttled = client.rate_limiter.throttled_count
    finally:
        if owns_client:
            client.close()

    report_failures(result.failures, err)
    lines = list(iter_lines(format_records(result)))
    log_event("courses_fetched", succeeded=len(result.successes),
              failed=result.failure_count, lines=len(lines), throttled=throttled)
    return result, lines


def run_pipeline(config: Config, client: Optional[CanvasClient] = None,
                 out=None, err=None) -> AggregateResult:
    """Fetch, flatten and write the whole item stream.

    Nothing reaches ``out`` until every course has finished, so an interrupted
    run leaves the selectable stream empty.
    """
    result, lines = collect_lines(config, client, err)
    count = emit(lines, out if out is not None else sys.stdout)
    log_event("lines_emitted", count=count)
    return result


def setup_argparse() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Flatten Canvas module items from several courses into one fuzzy-searchable list.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s | fzf                     # print one line per module item
  %(prog)s --select                  # pick an item with fzf and open it
  %(prog)s --config my_courses.json --max-workers 4

Environment Variables:
  CANVAS_API_TOKEN      Canvas access token (TOKEN is also accepted)
  CANVAS_API_URL        Canvas base URL, e.g. https://canvas.example.edu
  COURSE_IDS            Comma separated course ids
  COURSE_NAMES          Comma separated display names, one per course id
"""
    )

    parser.add_argument(
        "--config",
        default=CONFIG_FILE,
        help="JSON file overriding environment settings (default: %(default)s)"
    )

    parser.add_argument(
        "--select",
        action="store_true",
        help="Choose an item with fzf and open it in the browser"
    )

    parser.add_argument(
        "--max-workers",
        type=int,
        help="Maximum number of courses fetched at the same time"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds before a single API request is abandoned"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr (-vv for debug output)"
    )

    return parser


def select_and_open(lines: List[str]) -> int:
    selected = fuzzy_select(lines)
    if not selected:
        return 0

    url = extract_url(selected)
    if not url:
        print("\nSelected item has no URL to open.", file=sys.stderr)
        return 1

    open_link(url)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = setup_argparse()
    args = parser.parse_args(argv)

    setup_logging(["WARNING", "INFO", "DEBUG"][min(args.verbose, 2)])

    try:
        config = load_config(args.config)
        overrides = {}
        if args.max_workers is not None:
            overrides["max_workers"] = args.max_workers
        if args.timeout is not None:
            overrides["timeout"] = args.timeout
        if overrides:
            config = replace(config, **overrides)
            if (config.max_workers is not None and config.max_workers < 1) or config.timeout <= 0:
                raise ConfigError("--max-workers must be at least 1 and --timeout positive")
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        if args.select:
            result, lines = collect_lines(config)
            if lines:
                status = select_and_open(lines)
            else:
                print("\nNo module items found.", file=sys.stderr)
                status = 0
        else:
            result = run_pipeline(config)
            status = 0
    except KeyboardInterrupt:
        print("\nAborted by user", file=sys.stderr)
        return 130
    except BrokenPipeError:
        # Consumer closed the pipe early; point stdout at devnull so the
        # interpreter's final flush does not fail again
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return 0
    except SelectorUnavailableError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    return 1 if result.all_failed else status


if __name__ == "__main__":
    sys.exit(main())
