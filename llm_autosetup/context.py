from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .config import SetupConfig
from .lib.command import CommandRunner


@dataclass(frozen=True)
class SetupOptions:
    """Operator choices from the command line."""

    install_models: Optional[str] = None
    tools: Optional[List[str]] = None
    skip_assistant: bool = False
    dry_run: bool = False


@dataclass(frozen=True)
class SetupCtx:
    cfg: SetupConfig
    runner: CommandRunner
    options: SetupOptions = field(default_factory=SetupOptions)
    log_path: str = ""

    @property
    def dry_run(self) -> bool:
        return self.options.dry_run

    def sudo(self, argv: List[str]) -> List[str]:
        return ["sudo", *argv]
