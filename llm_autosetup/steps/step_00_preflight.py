from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict

from ..context import SetupCtx
from ..errors import PrerequisiteError
from ..lib.hwdetect import is_wsl, parse_os_release
from ..lib.net import is_online
from ..lib.pkg import require_apt
from ..state import add_warning, record_decision

logger = logging.getLogger(__name__)

SUPPORTED_DISTROS = {"ubuntu", "debian", "linuxmint", "pop", "neon", "elementary", "zorin"}


def _euid() -> int:
    return os.geteuid()


class PreflightStep:
    step_id = "00_preflight"
    gathers_facts = True

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        if _euid() == 0:
            raise PrerequisiteError("Do not run as root. Run as a normal user with sudo access.")
        if ctx.runner.which("sudo") is None:
            raise PrerequisiteError("sudo is required but not found. Install it: apt-get install sudo")
        require_apt(ctx)

        try:
            distro = parse_os_release(Path("/etc/os-release").read_text(encoding="utf-8"))
        except OSError:
            distro = parse_os_release("")
        record_decision(state, "distro", distro)
        logger.info("Distro: %s %s (%s)", distro["id"], distro["version"], distro["codename"])
        if distro["id"] not in SUPPORTED_DISTROS:
            add_warning(state, "preflight", f"distro '{distro['id']}' not tested; using apt paths anyway")

        wsl = is_wsl()
        record_decision(state, "wsl", wsl)
        logger.info("%s", "WSL2 environment detected." if wsl else "Native Linux detected.")

        online = is_online()
        record_decision(state, "online", online)
        if not online:
            add_warning(
                state,
                "preflight",
                "internet appears unreachable; downloads may fail (set https_proxy if behind a proxy)",
            )
        return state
