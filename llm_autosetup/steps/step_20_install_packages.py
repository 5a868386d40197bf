from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..config import SetupConfig
from ..context import SetupCtx
from ..errors import PrerequisiteError
from ..lib.pkg import apt_install, apt_update
from ..state import add_warning

logger = logging.getLogger(__name__)


def plan_packages(cfg: SetupConfig, hw: Dict[str, Any]) -> List[str]:
    """Baseline packages, plus the math-acceleration set on AVX2 hosts."""

    packages = list(cfg.baseline_packages)
    if bool((hw.get("cpu") or {}).get("avx2", False)):
        packages.extend(p for p in cfg.avx2_packages if p not in packages)
    return packages


class InstallPackagesStep:
    step_id = "20_install_packages"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        hw = state.get("hardware") or {}
        packages = plan_packages(ctx.cfg, hw)
        state.setdefault("execution", {}).setdefault("plan", {})["packages"] = packages

        apt_update(ctx)
        apt_install(ctx, packages)

        optional = ctx.cfg.optional_packages
        if optional and not apt_install(ctx, optional, check=False):
            add_warning(state, "packages", "some optional packages unavailable", packages=optional)

        if not ctx.dry_run:
            missing = [c for c in ctx.cfg.required_commands if ctx.runner.which(c) is None]
            if missing:
                raise PrerequisiteError(f"Critical dependency missing after install: {', '.join(missing)}")

        logger.info("System packages OK (%d installed)", len(packages))
        return state
