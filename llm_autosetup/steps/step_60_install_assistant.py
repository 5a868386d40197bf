from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import SetupCtx
from ..state import add_warning, record_decision

logger = logging.getLogger(__name__)


class InstallAssistantStep:
    step_id = "60_install_assistant"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = ctx.cfg
        if ctx.options.skip_assistant or not cfg.assistant_enabled:
            logger.info("AI assistant: skipped")
            record_decision(state, "assistant", "skipped")
            return state

        if ctx.runner.which(cfg.assistant_command) is not None:
            logger.info("AI assistant already installed (%s)", cfg.assistant_command)
            record_decision(state, "assistant", "present")
            return state

        if ctx.runner.which("pipx") is None:
            add_warning(state, "assistant", f"pipx not found; install {cfg.assistant_package} manually")
            record_decision(state, "assistant", "failed")
            return state

        r = ctx.runner.run(
            ["pipx", "install", cfg.assistant_package],
            check=False,
            timeout_s=cfg.timeout("command"),
        )
        if r.ok:
            logger.info("AI assistant installed: %s", cfg.assistant_package)
            record_decision(state, "assistant", "installed")
        else:
            add_warning(state, "assistant", f"pipx install {cfg.assistant_package} failed ({r.returncode})")
            record_decision(state, "assistant", "failed")
        return state
