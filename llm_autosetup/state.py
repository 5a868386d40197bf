from __future__ import annotations

import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


def new_state() -> Dict[str, Any]:
    """Fresh in-memory run state. Nothing here outlives the process."""

    state: Dict[str, Any] = {}
    return ensure_defaults(state)


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with sane defaults (without overriding values)."""

    state.setdefault("hardware", {})
    state.setdefault("execution", {})

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("decisions", {})
    exe.setdefault("warnings", [])
    exe.setdefault("errors", [])
    exe.setdefault("models", [])
    return state


def add_warning(state: Dict[str, Any], component: str, reason: str, **details: Any) -> None:
    """Record a non-fatal failure; the run keeps going."""

    entry: Dict[str, Any] = {"component": component, "reason": reason}
    entry.update(details)
    state.setdefault("execution", {}).setdefault("warnings", []).append(entry)
    logger.warning("%s: %s", component, reason)


def record_decision(state: Dict[str, Any], key: str, value: Any) -> None:
    state.setdefault("execution", {}).setdefault("decisions", {})[key] = value


def warnings(state: Dict[str, Any]) -> List[Dict[str, Any]]:
    return list((state.get("execution") or {}).get("warnings") or [])


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)
