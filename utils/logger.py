import sys
import logging

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

logger = logging.getLogger("canvas_finder")


def setup_logging(level: str = "WARNING", stream=None):
    """Configure root logging on stderr; stdout is reserved for the item stream."""
    numeric_level = getattr(logging, str(level).upper(), logging.WARNING)
    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(stream if stream is not None else sys.stderr)],
        force=True,
    )

    # Silence urllib3 connection chatter unless debugging
    if numeric_level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def log_event(event: str, **fields):
    details = " ".join(f"{key}={fields[key]}" for key in sorted(fields))
    logger.info(f"{event} {details}".rstrip())
