import logging
import subprocess
import webbrowser
from typing import Iterable, Optional, Sequence

from processing.line_formatter import LineFormatError, parse_line

logger = logging.getLogger(__name__)

# Search course, module and title; keep the URL out of the matched text
FZF_COMMAND = (
    "fzf",
    "--delimiter", r" \|\| ",
    "--nth", "1..3",
    "--prompt", "canvas> ",
)

# fzf: 1 = no match, 130 = aborted with ESC / CTRL-C
NO_SELECTION_CODES = (1, 130)


class SelectorUnavailableError(RuntimeError):
    pass


def fuzzy_select(lines: Iterable[str], command: Sequence[str] = FZF_COMMAND) -> Optional[str]:
    """Let the user pick one line with an external fuzzy finder.

    Returns the chosen line, or None when nothing was selected.
    """
    stdin = "".join(f"{line}\n" for line in lines)
    try:
        completed = subprocess.run(
            list(command),
            input=stdin,
            stdout=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError:
        raise SelectorUnavailableError(f"'{command[0]}' was not found on PATH")

    if completed.returncode in NO_SELECTION_CODES:
        logger.info("No item selected")
        return None
    if completed.returncode != 0:
        raise SelectorUnavailableError(f"'{command[0]}' exited with status {completed.returncode}")

    selected = completed.stdout.strip("\r\n")
    return selected or None


def extract_url(line: str) -> Optional[str]:
    try:
        record = parse_line(line)
    except LineFormatError as e:
        logger.error(f"Selected line is not a finder record: {e}")
        return None
    return record.item_url or None


def open_link(url: str) -> bool:
    logger.info(f"Opening {url}")
    return webbrowser.open(url)
