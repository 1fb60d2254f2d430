"""
Run-scoped transcript of external tool output.

Every invocation truncates the transcript file and records each command
kvmctl runs, its exit status and its output. The file is only shown to
the user when a command fails in verbose mode.
"""

import logging
from pathlib import Path

logger = logging.getLogger("kvmctl")
logger.addHandler(logging.NullHandler())
logger.propagate = False


def start_transcript(path: Path) -> None:
    """
    Truncate the transcript file and attach it to the kvmctl logger.

    Raises:
        OSError: If the transcript file cannot be created
    """
    stop_transcript()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


def stop_transcript() -> None:
    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            continue
        logger.removeHandler(handler)
        handler.close()


def read_transcript(path: Path) -> str:
    for handler in logger.handlers:
        handler.flush()
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        return ""
