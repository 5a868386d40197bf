from __future__ import annotations

import logging
from typing import Any, Dict

from ..context import SetupCtx
from ..lib.catalog import load_catalog, recommend_models
from ..state import record_decision

logger = logging.getLogger(__name__)


class RecommendModelsStep:
    step_id = "70_recommend_models"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        catalog = load_catalog(ctx.cfg.models)
        rec = recommend_models(catalog, state.get("hardware") or {})
        record_decision(state, "recommendation", rec)

        fitting = set(rec["fitting"])
        logger.info("Model recommendations (%s tiers):", rec["mode"].upper())
        for m in catalog:
            mark = "*" if m.name == rec["best"] else ("+" if m.name in fitting else " ")
            caps = ",".join(m.caps) or "-"
            logger.info("  %s %-16s %-24s %s", mark, m.name, m.label, caps)
        if rec["best"]:
            logger.info("Recommended: ollama pull %s", rec["best"])
        return state
