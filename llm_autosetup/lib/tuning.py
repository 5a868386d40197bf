from __future__ import annotations

from typing import Any, Mapping, Optional

LOW_BELOW_GIB = 16
LOW_VALUE = 1
HIGH_CHECK_GIB = 16
HIGH_VALUE = 16
LINEAR_DIVISOR = 8
LINEAR_OFFSET = 2


def num_parallel_for_ram(ram_gib: int, thresholds: Optional[Mapping[str, Any]] = None) -> int:
    """Map total RAM (whole GiB) to the runner's concurrent request count.

    Tiers are tested in a fixed order: low, then high, then linear. The high
    tier is tested with ``high_check_gib`` (16 by default), so every host with
    16 GiB or more lands on ``high_value`` and the linear tier
    ``ram // linear_divisor + linear_offset`` is only reachable when the
    high bound is raised above the low bound.
    """

    t = dict(thresholds or {})
    low_below = int(t.get("low_below_gib", LOW_BELOW_GIB))
    high_check = int(t.get("high_check_gib", HIGH_CHECK_GIB))

    ram = int(ram_gib)
    if ram < low_below:
        return int(t.get("low_value", LOW_VALUE))
    if ram >= high_check:
        return int(t.get("high_value", HIGH_VALUE))
    return ram // int(t.get("linear_divisor", LINEAR_DIVISOR)) + int(t.get("linear_offset", LINEAR_OFFSET))
