from __future__ import annotations

import logging
from typing import Any, Dict, List

from .. import __version__
from ..context import SetupCtx
from ..lib.ollama import list_local_models
from ..state import warnings

logger = logging.getLogger(__name__)


def format_summary(state: Dict[str, Any], *, log_path: str = "", local_models: List[str] | None = None) -> str:
    hw = state.get("hardware") or {}
    exe = state.get("execution") or {}
    decisions = exe.get("decisions") or {}
    warns = warnings(state)

    gpu = hw.get("gpu") or {}
    if gpu.get("present") and gpu.get("vram_gib") is not None:
        gpu_line = f"{gpu.get('name')} ({gpu.get('vram_gib')} GiB VRAM)"
    else:
        gpu_line = "None (CPU-only)"

    tuning = decisions.get("tuning") or {}
    rec = decisions.get("recommendation") or {}

    if warns:
        header = f"Setup complete with {len(warns)} warning(s) (v{__version__})"
    else:
        header = f"Local LLM Auto-Setup v{__version__} complete"

    lines = [
        header,
        f"  RAM         {hw.get('ram_gib', '?')} GiB",
        f"  GPU         {gpu_line}",
        f"  Tuning      {tuning.get('env_var', 'OLLAMA_NUM_PARALLEL')}={tuning.get('value', '?')}",
        f"  Recommended {rec.get('best') or '-'}",
    ]

    models = exe.get("models") or []
    if models:
        pulled = [m["model"] for m in models if m.get("ok")]
        failed = [m["model"] for m in models if not m.get("ok")]
        lines.append(f"  Pulled      {', '.join(pulled) or '-'}")
        if failed:
            lines.append(f"  Failed      {', '.join(failed)}")
    if local_models:
        lines.append(f"  Local       {len(local_models)} model(s) available")

    checks = decisions.get("post_install")
    if checks:
        runner_state = "running" if checks.get("runner") else "NOT running"
        api_state = "reachable" if checks.get("api") else "unreachable"
        lines.append(f"  Runner      {runner_state}, API {api_state}")

    copy = decisions.get("script_copy") or {}
    if copy.get("path"):
        lines.append(f"  Setup copy  {copy['path']}")
    if log_path:
        lines.append(f"  Log         {log_path}")

    for w in warns:
        lines.append(f"  ! {w.get('component')}: {w.get('reason')}")
    return "\n".join(lines)


class SummaryStep:
    step_id = "90_summary"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        local = [] if ctx.dry_run else list_local_models(ctx.cfg.runner_host)
        for line in format_summary(state, log_path=ctx.log_path, local_models=local).splitlines():
            logger.info("%s", line)
        return state
