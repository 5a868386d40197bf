from __future__ import annotations

import logging
import os
from typing import Any, Dict

from ..config import SetupConfig
from ..context import SetupCtx
from ..lib.ollama import service_active, start_serve, write_service_env
from ..lib.tuning import num_parallel_for_ram
from ..state import add_warning, record_decision

logger = logging.getLogger(__name__)


def runner_env(cfg: SetupConfig, hw: Dict[str, Any]) -> Dict[str, str]:
    """Environment for the runner process: manifest extras plus host-derived values."""

    env = dict(cfg.runner_extra_env)
    env[cfg.tuning_env_var] = str(num_parallel_for_ram(int(hw.get("ram_gib") or 0), cfg.tuning))
    threads = (hw.get("cpu") or {}).get("threads")
    if threads:
        env["OLLAMA_NUM_THREAD"] = str(int(threads))
    return env


class TuneRunnerStep:
    step_id = "40_tune_runner"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        hw = state.get("hardware") or {}
        ram = int(hw.get("ram_gib") or 0)
        var = ctx.cfg.tuning_env_var
        env = runner_env(ctx.cfg, hw)
        value = int(env[var])

        # Pulls later in this run inherit it from our environment.
        os.environ[var] = str(value)
        record_decision(state, "tuning", {"env_var": var, "value": value, "ram_gib": ram})
        logger.info("%s=%d (RAM %d GiB)", var, value, ram)

        if hw.get("wsl") or ctx.runner.which("systemctl") is None:
            record_decision(state, "service_env", "process")
            if not start_serve(ctx, env):
                add_warning(
                    state,
                    "runner",
                    f"ollama serve did not start; check {ctx.cfg.serve_log_path}",
                )
            return state

        record_decision(state, "service_env", "systemd")
        if not write_service_env(ctx, env):
            add_warning(state, "runner", f"{ctx.cfg.runner_service} service did not restart cleanly")
        elif not ctx.dry_run and not service_active(ctx):
            add_warning(state, "runner", f"{ctx.cfg.runner_service} service not active after restart")
        return state
