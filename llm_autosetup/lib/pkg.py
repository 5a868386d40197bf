from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..context import SetupCtx
from ..errors import CommandError, PrerequisiteError

logger = logging.getLogger(__name__)

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def require_apt(ctx: SetupCtx) -> None:
    if ctx.runner.which("apt-get") is None:
        raise PrerequisiteError("apt-get not found: only apt-based distributions are supported")


def apt_update(ctx: SetupCtx) -> None:
    try:
        ctx.runner.run(ctx.sudo(["apt-get", "update"]), env=_APT_ENV, timeout_s=ctx.cfg.timeout("command"))
    except CommandError as e:
        raise CommandError(f"apt-get update failed: {e}", argv=e.argv, returncode=e.returncode) from e


def _install_argv(packages: Sequence[str]) -> list[str]:
    return ["apt-get", "install", "-y", *packages]


def apt_install(ctx: SetupCtx, packages: Sequence[str], *, check: bool = True) -> bool:
    """Install packages in one transaction.

    check=True raises CommandError on failure; check=False returns False.
    """

    if not packages:
        return True
    r = ctx.runner.run(
        ctx.sudo(_install_argv(packages)),
        check=check,
        env=_APT_ENV,
        timeout_s=ctx.cfg.timeout("command"),
    )
    return r.ok


def apt_install_first_available(ctx: SetupCtx, candidates: Sequence[str]) -> Optional[str]:
    """Install the first candidate that installs cleanly (e.g. eza, then exa).

    Candidates already on PATH count as installed. Returns the name that
    ended up installed, or None.
    """

    for name in candidates:
        if ctx.runner.which(name) is not None:
            logger.info("%s already present", name)
            return name
        if apt_install(ctx, [name], check=False):
            return name
        logger.info("%s unavailable, trying next fallback", name)
    return None
