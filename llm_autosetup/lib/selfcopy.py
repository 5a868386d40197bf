from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def save_script_copy(source: str, dest: str, *, dry_run: bool = False) -> bool:
    """Save the setup manifest to dest once.

    An existing dest is never touched, even if its content differs.
    Returns True only when a new copy was written.
    """

    d = Path(dest)
    if d.exists():
        logger.info("Local copy already present, leaving it unchanged: %s", d)
        return False

    if dry_run:
        logger.info("Would save local copy %s -> %s", source, d)
        return False

    data = Path(source).read_bytes()
    d.parent.mkdir(parents=True, exist_ok=True)
    try:
        # "x" fails instead of truncating if something appeared meanwhile.
        with d.open("xb") as fh:
            fh.write(data)
    except FileExistsError:
        logger.info("Local copy appeared concurrently, leaving it unchanged: %s", d)
        return False

    logger.info("Saved local copy: %s (re-run with --config %s)", d, d)
    return True
