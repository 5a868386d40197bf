from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 1800.0


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    timeout_s: float | None = DEFAULT_TIMEOUT_S,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - Captures stdout/stderr; both are logged at DEBUG.
    - A timeout counts as a failure (returncode 124, like coreutils timeout).
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    logger.info("CMD %s", _fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
            timeout=timeout_s,
        )
    except subprocess.TimeoutExpired:
        msg = f"Command timed out after {timeout_s}s: {_fmt_argv(argv_list)}"
        if check:
            raise CommandError(msg, argv=argv_list, returncode=124)
        logger.warning(msg)
        return CmdResult(argv=argv_list, returncode=124, stdout="", stderr=msg)
    except FileNotFoundError as e:
        msg = f"Command not found: {argv_list[0]}"
        if check:
            raise CommandError(msg, argv=argv_list, returncode=127) from e
        logger.warning(msg)
        return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=msg)

    if p.stdout:
        logger.debug("STDOUT %s", p.stdout.strip())
    if p.stderr:
        logger.debug("STDERR %s", p.stderr.strip())

    if check and p.returncode != 0:
        raise CommandError(
            f"Command failed ({p.returncode}): {_fmt_argv(argv_list)}\n{p.stderr}",
            argv=argv_list,
            returncode=p.returncode,
        )

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)


def spawn_cmd(
    argv: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    log_path: str | None = None,
    dry_run: bool = False,
) -> Optional[int]:
    """Start a long-running command detached from this process.

    Output goes to log_path (appended) or is discarded. Returns the pid, or
    None in dry-run.
    """

    argv_list = list(argv)
    logger.info("SPAWN %s", _fmt_argv(argv_list))
    if dry_run:
        return None

    out = open(os.path.expanduser(log_path), "ab") if log_path else subprocess.DEVNULL
    try:
        p = subprocess.Popen(
            argv_list,
            stdin=subprocess.DEVNULL,
            stdout=out,
            stderr=subprocess.STDOUT,
            env=dict(os.environ, **(env or {})),
            start_new_session=True,
        )
    except FileNotFoundError as e:
        raise CommandError(f"Command not found: {argv_list[0]}", argv=argv_list, returncode=127) from e
    finally:
        if log_path:
            out.close()
    logger.info("Started %s (pid %d)", argv_list[0], p.pid)
    return p.pid


class CommandRunner(Protocol):
    """Capability for everything that touches the host.

    Steps only reach the system through this interface, so tests can swap in
    a recording fake.
    """

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
        timeout_s: float | None = None,
    ) -> CmdResult:
        ...

    def spawn(
        self,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        log_path: str | None = None,
    ) -> Optional[int]:
        ...

    def which(self, name: str) -> Optional[str]:
        ...


class SubprocessRunner:
    """CommandRunner backed by run_cmd()."""

    def __init__(self, *, dry_run: bool = False, default_timeout_s: float = DEFAULT_TIMEOUT_S):
        self.dry_run = dry_run
        self.default_timeout_s = default_timeout_s

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
        timeout_s: float | None = None,
    ) -> CmdResult:
        return run_cmd(
            argv,
            check=check,
            env=env,
            input_text=input_text,
            timeout_s=timeout_s if timeout_s is not None else self.default_timeout_s,
            dry_run=self.dry_run,
        )

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)

    def spawn(
        self,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        log_path: str | None = None,
    ) -> Optional[int]:
        return spawn_cmd(argv, env=env, log_path=log_path, dry_run=self.dry_run)
