from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import SetupCtx
from ..lib.ollama import api_reachable, serve_running, service_active
from ..state import add_warning, record_decision

logger = logging.getLogger(__name__)


class PostInstallChecksStep:
    step_id = "87_post_install_checks"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        if ctx.dry_run:
            logger.info("Post-install checks skipped (dry run)")
            return state

        hw = state.get("hardware") or {}
        host = ctx.cfg.runner_host
        if hw.get("wsl") or ctx.runner.which("systemctl") is None:
            what = "ollama serve process"
            running = serve_running(ctx)
        else:
            what = f"{ctx.cfg.runner_service} service"
            running = service_active(ctx)
        api = api_reachable(host)

        record_decision(state, "post_install", {"runner": running, "api": api})
        if not running:
            add_warning(state, "validation", f"{what} not running")
        if not api:
            add_warning(state, "validation", f"runner API not answering at {host}")
        if running and api:
            logger.info("Post-install checks passed (%s, API at %s)", what, host)
        return state
