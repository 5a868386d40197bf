from __future__ import annotations

import logging
import tempfile
import time
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

import requests

from ..context import SetupCtx
from ..errors import CommandError, DownloadError
from .net import download, verify_sha256
from .retry import retry

logger = logging.getLogger(__name__)

SYSTEMD_DIR = "/etc/systemd/system"


def runner_installed(ctx: SetupCtx) -> bool:
    return ctx.runner.which("ollama") is not None


def runner_version(ctx: SetupCtx) -> Optional[str]:
    r = ctx.runner.run(["ollama", "--version"], check=False, timeout_s=30)
    if not r.ok:
        return None
    return r.stdout.strip() or None


def _fetch_and_run_installer(ctx: SetupCtx, workdir: Path) -> Optional[str]:
    script = workdir / "ollama-install.sh"
    if ctx.dry_run:
        logger.info("Would download %s", ctx.cfg.installer_url)
        digest = None
    else:
        download(ctx.cfg.installer_url, script, timeout_s=ctx.cfg.timeout("download"))
        # IntegrityError is not retried: a bad digest will not fix itself.
        digest = verify_sha256(script, ctx.cfg.installer_sha256)
    ctx.runner.run(["sh", str(script)], timeout_s=ctx.cfg.timeout("installer"))
    return digest


def install_runner(ctx: SetupCtx) -> Optional[str]:
    """Download, verify and execute the upstream installer.

    Download and execution failures are retried; returns the installer digest.
    """

    if ctx.cfg.installer_sha256 is None:
        logger.warning("No installer_sha256 configured; installer integrity is not verified")

    with tempfile.TemporaryDirectory(prefix="llm-auto-setup-") as tmp:
        return retry(
            lambda: _fetch_and_run_installer(ctx, Path(tmp)),
            attempts=ctx.cfg.install_attempts,
            delay_s=ctx.cfg.retry_delay_s,
            retry_on=(DownloadError, CommandError),
            what="Model runner install",
        )


def render_override(env: Mapping[str, str]) -> str:
    """systemd drop-in carrying the runner environment."""

    lines = ["[Service]"]
    for key in sorted(env):
        lines.append(f'Environment="{key}={env[key]}"')
    return "\n".join(lines) + "\n"


def write_service_env(ctx: SetupCtx, env: Mapping[str, str]) -> bool:
    """Write the drop-in, reload systemd and restart the runner service.

    The drop-in write and daemon-reload are required; a failed restart only
    returns False.
    """

    service = ctx.cfg.runner_service
    override = f"{SYSTEMD_DIR}/{service}.service.d/override.conf"
    ctx.runner.run(ctx.sudo(["mkdir", "-p", str(Path(override).parent)]))
    ctx.runner.run(ctx.sudo(["tee", override]), input_text=render_override(env))
    ctx.runner.run(ctx.sudo(["systemctl", "daemon-reload"]))

    ok = True
    for action in ("enable", "restart"):
        r = ctx.runner.run(ctx.sudo(["systemctl", action, service]), check=False, timeout_s=120)
        if not r.ok:
            logger.warning("systemctl %s %s failed (%s)", action, service, r.returncode)
            ok = False
    return ok


def service_active(ctx: SetupCtx) -> bool:
    r = ctx.runner.run(["systemctl", "is-active", "--quiet", ctx.cfg.runner_service], check=False, timeout_s=30)
    return r.ok


def serve_running(ctx: SetupCtx) -> bool:
    r = ctx.runner.run(["pgrep", "-f", "ollama serve"], check=False, timeout_s=30)
    return r.ok


def start_serve(ctx: SetupCtx, env: Mapping[str, str], *, sleep: Callable[[float], None] = time.sleep) -> bool:
    """Run `ollama serve` in the background unless one is already up.

    Used where no systemd unit manages the runner (WSL, containers). The
    process gets env, so the tuning applies to it. Waits up to
    ``start_wait_s`` for it to appear.
    """

    if ctx.dry_run:
        ctx.runner.spawn(["ollama", "serve"], env=dict(env), log_path=ctx.cfg.serve_log_path)
        return True
    if serve_running(ctx):
        logger.info("ollama serve already running")
        return True

    ctx.runner.spawn(["ollama", "serve"], env=dict(env), log_path=ctx.cfg.serve_log_path)
    deadline = time.monotonic() + ctx.cfg.runner_start_wait_s
    while True:
        if serve_running(ctx):
            return True
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        sleep(min(1.0, remaining))


def pull_model(ctx: SetupCtx, name: str, *, env: Optional[Mapping[str, str]] = None) -> bool:
    """One pull attempt; failures are reported, never raised."""

    r = ctx.runner.run(
        ["ollama", "pull", name],
        check=False,
        env=dict(env or {}),
        timeout_s=ctx.cfg.timeout("pull"),
    )
    if not r.ok:
        detail = (r.stderr or r.stdout or "").strip().splitlines()
        logger.warning("Pull failed for %s (%s): %s", name, r.returncode, detail[-1] if detail else "no output")
    return r.ok


def _tags_url(host: str) -> str:
    base = host if host.startswith("http") else f"http://{host}"
    return f"{base.rstrip('/')}/api/tags"


def api_reachable(host: str, *, timeout_s: float = 5) -> bool:
    try:
        response = requests.get(_tags_url(host), timeout=timeout_s)
    except requests.RequestException:
        return False
    return response.status_code == 200


def list_local_models(host: str, *, timeout_s: float = 5) -> List[str]:
    """Names the runner reports via /api/tags; empty when it is unreachable."""

    try:
        response = requests.get(_tags_url(host), timeout=timeout_s)
        response.raise_for_status()
        payload: Dict = response.json()
    except (requests.RequestException, ValueError):
        return []

    models = payload.get("models")
    if not isinstance(models, list):
        return []
    out: List[str] = []
    for row in models:
        if not isinstance(row, dict):
            continue
        name = str(row.get("name") or "").strip()
        if name:
            out.append(name)
    return out
