from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..context import SetupCtx
from ..lib.catalog import load_catalog, resolve_install_targets
from ..lib.ollama import pull_model
from ..lib.tuning import num_parallel_for_ram
from ..state import add_warning

logger = logging.getLogger(__name__)


def _pull_env(ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, str]:
    tuning = (state.get("execution") or {}).get("decisions", {}).get("tuning")
    if tuning:
        return {tuning["env_var"]: str(tuning["value"])}
    # Run started past the tuning step: derive the same value from the host.
    ram = int((state.get("hardware") or {}).get("ram_gib") or 0)
    return {ctx.cfg.tuning_env_var: str(num_parallel_for_ram(ram, ctx.cfg.tuning))}


class PullModelsStep:
    step_id = "80_pull_models"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        targets = resolve_install_targets(ctx.options.install_models, load_catalog(ctx.cfg.models))
        if not targets:
            logger.info("Model install: skipped (no --install-models)")
            return state

        env = _pull_env(ctx, state)

        results: List[Dict[str, Any]] = state.setdefault("execution", {}).setdefault("models", [])
        for name in targets:
            logger.info("Pulling %s", name)
            ok = pull_model(ctx, name, env=env)
            results.append({"model": name, "ok": ok})
            if not ok:
                add_warning(state, "models", f"pull failed for {name}", model=name)

        pulled = sum(1 for r in results if r["ok"])
        logger.info("Model install: %d/%d pulled", pulled, len(targets))
        return state
