from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .context import SetupCtx
from .state import mark_step_completed

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single setup step."""

    step_id: str

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    durations_s: Dict[str, float] = field(default_factory=dict)


def _select(steps: Sequence[Step], start_at: Optional[str], stop_after: Optional[str]) -> List[Step]:
    """Steps from start_at through stop_after.

    Steps that set ``gathers_facts`` and sit before start_at are kept in
    front of the slice: later steps read the host facts they record, and
    nothing carries those facts over from an earlier run.
    """

    ids = [s.step_id for s in steps]
    for name, value in (("start_at", start_at), ("stop_after", stop_after)):
        if value is not None and value not in ids:
            raise ValueError(f"Unknown {name} step_id {value!r}; expected one of {', '.join(ids)}")

    first = ids.index(start_at) if start_at is not None else 0
    last = ids.index(stop_after) if stop_after is not None else len(ids) - 1
    facts = [s for s in steps[:first] if getattr(s, "gathers_facts", False)]
    return facts + list(steps[first : last + 1])


def run_pipeline(
    *,
    ctx: SetupCtx,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps strictly in order. The first exception aborts the run.

    ``current_step`` is left pointing at the failing step so the caller can
    report where the run stopped.
    """

    ran: List[str] = []
    durations: Dict[str, float] = {}
    exe = state.setdefault("execution", {})

    for step in _select(steps, start_at, stop_after):
        exe["current_step"] = step.step_id
        logger.info("Running step %s", step.step_id)
        started = time.monotonic()
        state = step.run(ctx, state)
        exe = state.setdefault("execution", {})
        durations[step.step_id] = round(time.monotonic() - started, 3)
        mark_step_completed(state, step.step_id)
        ran.append(step.step_id)
        logger.info("Step %s done in %.1fs", step.step_id, durations[step.step_id])

    exe["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, durations_s=durations)
