import os
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional, Tuple, Union

from dotenv import find_dotenv, load_dotenv

from canvas_api.auth import get_token
from canvas_api.client import API_PREFIX, DEFAULT_PER_PAGE, DEFAULT_TIMEOUT
from canvas_api.models import Course

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"


class ConfigError(Exception):
    """Invalid or missing configuration"""
    pass


@dataclass(frozen=True)
class Config:
    token: str
    base_url: str
    courses: Tuple[Course, ...]
    max_workers: Optional[int] = None
    timeout: float = DEFAULT_TIMEOUT
    per_page: int = DEFAULT_PER_PAGE


def _split_list(name: str, value: Union[str, Iterable, int, None]) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(part).strip() for part in value]
    if isinstance(value, int) and not isinstance(value, bool):
        # a single course written without a list
        return [str(value)]
    raise ConfigError(f"{name} must be a list or comma separated string, got {value!r}")


def normalize_base_url(url: str) -> str:
    url = url.strip().rstrip("/")
    if url.endswith(API_PREFIX):
        url = url[: -len(API_PREFIX)].rstrip("/")
    return url


def _optional_int(name: str, value) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def build_config(token: Optional[str], base_url: Optional[str], course_ids, course_names,
                 max_workers=None, timeout=DEFAULT_TIMEOUT, per_page=DEFAULT_PER_PAGE) -> Config:
    """Validate raw settings and pair course ids with names by position."""
    if not token:
        raise ConfigError("Missing Canvas API token (CANVAS_API_TOKEN)")
    if not base_url or not normalize_base_url(base_url):
        raise ConfigError("Missing Canvas base URL (CANVAS_API_URL)")

    ids = _split_list("course_ids", course_ids)
    names = _split_list("course_names", course_names)
    if not ids:
        raise ConfigError("No courses configured (COURSE_IDS is empty)")
    if len(ids) != len(names):
        raise ConfigError(
            f"COURSE_IDS has {len(ids)} entries but COURSE_NAMES has {len(names)}; "
            "every course id needs exactly one name"
        )

    courses = []
    for raw_id, name in zip(ids, names):
        try:
            course_id = int(raw_id)
        except ValueError:
            raise ConfigError(f"Course id {raw_id!r} is not an integer")
        if not name:
            raise ConfigError(f"Course {course_id} has a blank name")
        courses.append(Course(id=course_id, display_name=name))

    workers = _optional_int("max_workers", max_workers)
    if workers is not None and workers < 1:
        raise ConfigError("max_workers must be at least 1")

    try:
        timeout = float(timeout)
    except (TypeError, ValueError):
        raise ConfigError(f"timeout must be a number, got {timeout!r}")
    if timeout <= 0:
        raise ConfigError("timeout must be positive")

    page_size = _optional_int("per_page", per_page)
    if page_size is None or page_size < 1:
        raise ConfigError("per_page must be at least 1")

    return Config(
        token=token,
        base_url=normalize_base_url(base_url),
        courses=tuple(courses),
        max_workers=workers,
        timeout=timeout,
        per_page=page_size,
    )


def validate_config(config: Config) -> Config:
    """Fail fast on a configuration built outside load_config/build_config."""
    if not config.token:
        raise ConfigError("Missing Canvas API token")
    if not config.base_url:
        raise ConfigError("Missing Canvas base URL")
    if not config.courses:
        raise ConfigError("No courses configured")
    for course in config.courses:
        if not isinstance(course, Course) or not course.display_name:
            raise ConfigError(f"Course entry {course!r} needs both an id and a name")
        if not isinstance(course.id, int) or isinstance(course.id, bool):
            raise ConfigError(f"Course id {course.id!r} of {course.display_name!r} is not an integer")
    return config


def load_config(config_file: Union[str, Path, None] = CONFIG_FILE,
                env: Optional[Mapping[str, str]] = None) -> Config:
    """Load configuration from environment variables (.env included) and an optional JSON file."""
    if env is None:
        load_dotenv(find_dotenv(usecwd=True), override=False)
        env = os.environ
        token = get_token()
    else:
        token = env.get("CANVAS_API_TOKEN") or env.get("TOKEN")

    config = {
        "canvas_api_token": token,
        "canvas_api_url": env.get("CANVAS_API_URL"),
        "course_ids": env.get("COURSE_IDS"),
        "course_names": env.get("COURSE_NAMES"),
        "max_workers": env.get("CANVAS_MAX_WORKERS"),
        "timeout": env.get("CANVAS_TIMEOUT") or DEFAULT_TIMEOUT,
    }

    # Try loading from config file if exists
    if config_file:
        config_path = Path(config_file)
        if config_path.exists():
            try:
                with open(config_path) as f:
                    file_config = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigError(f"Could not read {config_path}: {e}")
            if not isinstance(file_config, dict):
                raise ConfigError(f"{config_path} must contain a JSON object")
            logger.debug(f"Loaded settings from {config_path}")
            config.update({k: v for k, v in file_config.items() if v is not None})

    return build_config(
        config["canvas_api_token"],
        config["canvas_api_url"],
        config["course_ids"],
        config["course_names"],
        max_workers=config["max_workers"],
        timeout=config["timeout"],
    )
