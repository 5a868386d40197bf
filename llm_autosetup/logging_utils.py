from __future__ import annotations

import logging
import os
from pathlib import Path

DEFAULT_LOG_PATH = "~/llm-auto-setup.log"
FALLBACK_LOG_NAME = "llm-auto-setup.log"

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _open_log_file(requested: str) -> tuple[logging.FileHandler, str]:
    try:
        Path(os.path.dirname(requested) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(requested, mode="a", encoding="utf-8"), requested
    except OSError:
        fallback = str(Path.cwd() / FALLBACK_LOG_NAME)
        return logging.FileHandler(fallback, mode="a", encoding="utf-8"), fallback


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Attach the setup log file and a stderr console handler to the root logger.

    The file is shared by every run and only ever appended to; each run opens
    with a session marker. It always receives DEBUG, so captured command
    output lands there even when the console shows INFO only. An unwritable
    path falls back to ``./llm-auto-setup.log``.

    Returns the path actually written.
    """

    root = logging.getLogger()

    if getattr(root, "_llm_autosetup_configured", False):
        return getattr(root, "_llm_autosetup_log_path", log_path)

    requested = os.path.expanduser(log_path)
    fmt = logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT)

    file_handler, chosen_path = _open_log_file(requested)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(fmt)
        root.addHandler(console)

    root.setLevel(logging.DEBUG)
    setattr(root, "_llm_autosetup_configured", True)
    setattr(root, "_llm_autosetup_log_path", chosen_path)

    log = logging.getLogger(__name__)
    log.info("==== llm-auto-setup session (pid %d) ====", os.getpid())
    if chosen_path != requested:
        log.warning("Cannot write %s; logging to %s instead", requested, chosen_path)
    return chosen_path
