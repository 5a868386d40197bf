from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import SetupCtx
from ..errors import CommandError
from ..lib.ollama import install_runner, runner_installed, runner_version
from ..state import record_decision

logger = logging.getLogger(__name__)


class InstallModelRunnerStep:
    step_id = "30_install_model_runner"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        if runner_installed(ctx):
            version = runner_version(ctx)
            logger.info("Ollama: %s", version or "already installed")
            record_decision(state, "runner", {"installed_now": False, "version": version})
            return state

        logger.info("Installing Ollama from %s", ctx.cfg.installer_url)
        digest = install_runner(ctx)

        if not ctx.dry_run and not runner_installed(ctx):
            raise CommandError("Ollama installer finished but 'ollama' is not on PATH")

        record_decision(
            state,
            "runner",
            {
                "installed_now": True,
                "installer_sha256": digest,
                "verified": ctx.cfg.installer_sha256 is not None,
            },
        )
        return state
