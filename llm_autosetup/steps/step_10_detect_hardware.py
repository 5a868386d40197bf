from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import SetupCtx
from ..lib.hwdetect import detect_hardware

logger = logging.getLogger(__name__)


def simd_label(cpu: Dict[str, Any]) -> str:
    if cpu.get("avx512"):
        return "AVX-512 AVX2 AVX"
    if cpu.get("avx2"):
        return "AVX2 AVX"
    if cpu.get("avx"):
        return "AVX"
    if cpu.get("neon"):
        return "NEON (ARM64)"
    return "baseline"


class DetectHardwareStep:
    step_id = "10_detect_hardware"
    gathers_facts = True

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        hw = detect_hardware(ctx.runner)
        state["hardware"] = hw
        logger.info("SIMD: %s", simd_label(hw.get("cpu") or {}))
        if not (hw.get("gpu") or {}).get("present"):
            logger.info("No discrete GPU found, running CPU-only mode.")
        return state
