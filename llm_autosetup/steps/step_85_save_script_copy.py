from __future__ import annotations

from typing import Any, Dict

from ..context import SetupCtx
from ..lib.selfcopy import save_script_copy
from ..state import record_decision


class SaveScriptCopyStep:
    step_id = "85_save_script_copy"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        written = save_script_copy(ctx.cfg.source_path, ctx.cfg.script_copy_path, dry_run=ctx.dry_run)
        record_decision(state, "script_copy", {"path": ctx.cfg.script_copy_path, "written": written})
        return state
