from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional

import yaml

from . import __version__
from .config import SetupConfig, load_setup_config
from .context import SetupCtx, SetupOptions
from .errors import SetupError
from .lib.command import CommandRunner, SubprocessRunner
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import run_pipeline
from .state import new_state
from .steps import (
    DetectHardwareStep,
    InstallAssistantStep,
    InstallModelRunnerStep,
    InstallPackagesStep,
    InstallToolsStep,
    PostInstallChecksStep,
    PreflightStep,
    PullModelsStep,
    RecommendModelsStep,
    SaveScriptCopyStep,
    SummaryStep,
    TuneRunnerStep,
)

logger = logging.getLogger(__name__)


def build_steps():
    return [
        PreflightStep(),
        DetectHardwareStep(),
        InstallPackagesStep(),
        InstallModelRunnerStep(),
        TuneRunnerStep(),
        InstallToolsStep(),
        InstallAssistantStep(),
        RecommendModelsStep(),
        PullModelsStep(),
        SaveScriptCopyStep(),
        PostInstallChecksStep(),
        SummaryStep(),
    ]


def run(
    *,
    cfg: SetupConfig,
    options: SetupOptions,
    runner: Optional[CommandRunner] = None,
    log_path: str = "",
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> Dict[str, Any]:
    """Run the setup pipeline and return the final run state."""

    if runner is None:
        runner = SubprocessRunner(dry_run=options.dry_run, default_timeout_s=cfg.timeout("command"))
    ctx = SetupCtx(cfg=cfg, runner=runner, options=options, log_path=log_path)
    state = new_state()

    logger.info("llm-auto-setup v%s (manifest=%s dry_run=%s)", __version__, cfg.source_path, options.dry_run)

    try:
        result = run_pipeline(
            ctx=ctx,
            state=state,
            steps=build_steps(),
            start_at=start_at,
            stop_after=stop_after,
        )
    except SetupError as e:
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": str(e),
            }
        )
        raise

    state = result.state
    state.setdefault("execution", {})["ran_steps"] = result.ran_steps
    state["execution"]["durations_s"] = result.durations_s
    return state


def _split_csv(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [v.strip() for v in value.split(",") if v.strip()]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="llm-auto-setup",
        description="Provision a local LLM host: packages, Ollama, tuning, tools and models.",
    )
    p.add_argument(
        "--install-models",
        metavar="NAME|all",
        default=None,
        help="Pull one model by name, or every catalog model with 'all'",
    )
    p.add_argument("--config", default=None, help="Setup manifest (YAML); defaults to the bundled one")
    p.add_argument("--log", default=None, help="Path to the setup log (appended)")
    p.add_argument("--tools", default=None, help="Optional tool groups: all, none, or a comma list")
    p.add_argument("--skip-assistant", action="store_true", help="Do not install the AI assistant package")
    p.add_argument("--dry-run", action="store_true", help="Log commands without executing them")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 30_install_model_runner)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--verbose", action="store_true", help="Show command output on the console (always in the log file)")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    step_ids = [s.step_id for s in build_steps()]
    for flag, value in (("--start-at", args.start_at), ("--stop-after", args.stop_after)):
        if value is not None and value not in step_ids:
            parser.error(f"{flag}: unknown step {value!r} (choose from {', '.join(step_ids)})")

    level = logging.DEBUG if args.verbose else logging.INFO
    try:
        cfg = load_setup_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        log_path = configure_logging(log_path=args.log or DEFAULT_LOG_PATH, level=level)
        logger.error("Cannot load setup manifest %s: %s", args.config or "(bundled)", e)
        logger.error("Log file: %s", log_path)
        return 1

    log_path = configure_logging(log_path=args.log or cfg.log_path, level=level)

    options = SetupOptions(
        install_models=args.install_models,
        tools=_split_csv(args.tools),
        skip_assistant=bool(args.skip_assistant),
        dry_run=bool(args.dry_run),
    )

    try:
        run(
            cfg=cfg,
            options=options,
            log_path=log_path,
            start_at=args.start_at,
            stop_after=args.stop_after,
        )
    except SetupError as e:
        logger.error("%s", e)
        logger.error("Log file: %s", log_path)
        return e.exit_code
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
