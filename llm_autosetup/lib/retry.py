from __future__ import annotations

import logging
import time
from typing import Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry(
    fn: Callable[[], T],
    *,
    attempts: int,
    delay_s: float,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    what: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call fn until it succeeds or attempts run out; re-raises the last error."""

    attempts = max(1, int(attempts))
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except retry_on as e:
            if attempt >= attempts:
                logger.warning("%s failed after %d attempts: %s", what, attempts, e)
                raise
            logger.warning("%s attempt %d/%d failed (%s), retrying in %ss", what, attempt, attempts, e, delay_s)
            sleep(delay_s)
    raise AssertionError("unreachable")
