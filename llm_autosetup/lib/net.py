from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Optional, Sequence

import requests

from ..errors import DownloadError, IntegrityError

logger = logging.getLogger(__name__)

PROBE_URLS = ("https://huggingface.co", "https://pypi.org")


def is_online(urls: Sequence[str] = PROBE_URLS, *, timeout_s: float = 5) -> bool:
    """Best-effort online check."""

    for url in urls:
        try:
            response = requests.head(url, timeout=timeout_s, allow_redirects=True)
        except requests.RequestException:
            continue
        if response.status_code < 500:
            logger.info("Internet: reachable (%s)", url)
            return True
    return False


def download(url: str, dest: Path, *, timeout_s: float = 60) -> Path:
    """Fetch url to dest over HTTPS. Raises DownloadError on any failure."""

    logger.info("Downloading %s -> %s", url, dest)
    try:
        with requests.get(url, stream=True, timeout=timeout_s) as response:
            response.raise_for_status()
            dest.parent.mkdir(parents=True, exist_ok=True)
            with dest.open("wb") as fh:
                for chunk in response.iter_content(chunk_size=64 * 1024):
                    if chunk:
                        fh.write(chunk)
    except requests.RequestException as e:
        raise DownloadError(f"Download failed: {url}: {e}") from e
    return dest


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_sha256(path: Path, expected: Optional[str]) -> Optional[str]:
    """Compare the file digest with expected.

    Returns the actual digest. expected=None skips the comparison.
    """

    actual = sha256_file(path)
    if expected is None:
        return actual
    if actual.lower() != expected.strip().lower():
        raise IntegrityError(f"SHA-256 mismatch for {path.name}: expected {expected}, got {actual}")
    logger.info("SHA-256 verified for %s", path.name)
    return actual
