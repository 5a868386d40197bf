from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..config import ToolGroup
from ..context import SetupCtx
from ..errors import CommandError
from ..lib.pkg import apt_install, apt_install_first_available
from ..state import add_warning

logger = logging.getLogger(__name__)


def select_tool_groups(requested: Optional[Sequence[str]], available: Sequence[str], default: Sequence[str]) -> List[str]:
    """Resolve --tools into group names, keeping manifest order.

    None means the manifest default; "all" and "none" are keywords.
    """

    names = list(default if requested is None else requested)
    lowered = [n.strip().lower() for n in names if n.strip()]
    if "none" in lowered:
        return []
    if "all" in lowered:
        return list(available)
    return [g for g in available if g.lower() in lowered]


class InstallToolsStep:
    step_id = "50_install_tools"

    def _gate_open(self, group: ToolGroup, hw: Dict[str, Any]) -> bool:
        if group.requires == "gpu":
            return bool((hw.get("gpu") or {}).get("present"))
        if group.requires == "display":
            return bool(hw.get("display"))
        return True

    def _install_group(self, ctx: SetupCtx, state: Dict[str, Any], group: ToolGroup) -> bool:
        ok = True
        if group.packages:
            try:
                installed = apt_install(ctx, group.packages, check=group.required)
            except CommandError as e:
                raise CommandError(
                    f"Required tool group '{group.name}' failed to install",
                    argv=e.argv,
                    returncode=e.returncode,
                ) from e
            if not installed:
                add_warning(state, "tools", f"some packages in '{group.name}' failed", packages=group.packages)
                ok = False

        for chain in group.fallbacks:
            chosen = apt_install_first_available(ctx, chain)
            if chosen is None:
                if group.required:
                    raise CommandError(f"Required tool group '{group.name}': none of {', '.join(chain)} installable")
                add_warning(state, "tools", f"none of {'/'.join(chain)} available in apt, skipping")
                ok = False
        return ok

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        hw = state.get("hardware") or {}
        groups = ctx.cfg.tool_groups
        requested = ctx.options.tools

        if requested is not None:
            known = {g.lower() for g in groups} | {"all", "none"}
            unknown = [n for n in requested if n.lower() not in known]
            for name in unknown:
                add_warning(state, "tools", f"unknown tool group '{name}'")

        selected = select_tool_groups(requested, list(groups), ctx.cfg.default_tool_selection)
        # Required groups are installed whatever was selected.
        selected = [g for g in groups if groups[g].required or g in selected]

        done: List[str] = []
        skipped: List[str] = []
        for name in selected:
            group = groups[name]
            if not self._gate_open(group, hw):
                logger.info("Tool group %s skipped: no %s detected", name, group.requires)
                skipped.append(name)
                continue
            if self._install_group(ctx, state, group):
                done.append(name)

        state.setdefault("execution", {}).setdefault("plan", {})["tools"] = {
            "selected": selected,
            "installed": done,
            "skipped": skipped,
        }
        logger.info("Tools installed: %s", ", ".join(done) or "none")
        return state
