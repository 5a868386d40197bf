from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import pytest

from llm_autosetup.config import SetupConfig, load_setup_config
from llm_autosetup.context import SetupCtx, SetupOptions
from llm_autosetup.errors import CommandError
from llm_autosetup.lib.command import CmdResult
from llm_autosetup.state import new_state

HOST_COMMANDS = ["sudo", "apt-get", "curl", "wget", "git", "python3", "pipx", "systemctl"]


class FakeRunner:
    """Records every command; returncodes come from ``rc_for(argv)``."""

    def __init__(
        self,
        *,
        commands: Sequence[str] = HOST_COMMANDS,
        rc_for: Optional[Callable[[List[str]], int]] = None,
        stdout_for: Optional[Callable[[List[str]], str]] = None,
        on_run: Optional[Callable[["FakeRunner", List[str]], None]] = None,
    ):
        self.paths = {name: f"/usr/bin/{name}" for name in commands}
        self.rc_for = rc_for or (lambda argv: 0)
        self.stdout_for = stdout_for or (lambda argv: "")
        self.on_run = on_run
        self.calls: List[Dict[str, Any]] = []
        self.spawned: List[List[str]] = []

    @property
    def argvs(self) -> List[List[str]]:
        return [c["argv"] for c in self.calls]

    def which(self, name: str) -> Optional[str]:
        return self.paths.get(name)

    def spawn(
        self,
        argv: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        log_path: str | None = None,
    ) -> Optional[int]:
        argv_list = list(argv)
        self.calls.append({"argv": argv_list, "env": dict(env or {}), "spawn": True, "log_path": log_path})
        self.spawned.append(argv_list)
        return 4242

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
        timeout_s: float | None = None,
    ) -> CmdResult:
        argv_list = list(argv)
        self.calls.append({"argv": argv_list, "env": dict(env or {}), "input_text": input_text, "timeout_s": timeout_s})
        if self.on_run is not None:
            self.on_run(self, argv_list)
        rc = self.rc_for(argv_list)
        if check and rc != 0:
            raise CommandError(f"fake failure: {' '.join(argv_list)}", argv=argv_list, returncode=rc)
        return CmdResult(argv=argv_list, returncode=rc, stdout=self.stdout_for(argv_list), stderr="")


def make_config(tmp_path: Path, **sections: Any) -> SetupConfig:
    """Bundled manifest with sections replaced and paths redirected into tmp_path."""

    base = load_setup_config()
    raw = copy.deepcopy(base.raw)
    raw["paths"] = {
        "log": str(tmp_path / "setup.log"),
        "script_copy": str(tmp_path / "copy" / "llm-auto-setup.yaml"),
        "serve_log": str(tmp_path / "ollama.log"),
    }
    raw.setdefault("model_runner", {})["retry_delay_s"] = 0
    raw["model_runner"]["start_wait_s"] = 0
    for key, value in sections.items():
        raw[key] = value
    return SetupConfig(raw=raw, source_path=base.source_path)


def make_hw(
    *,
    ram: int = 32,
    avx2: bool = True,
    gpu: Optional[Dict[str, Any]] = None,
    wsl: bool = False,
    display: bool = False,
) -> Dict[str, Any]:
    return {
        "arch": "amd64",
        "cpu": {
            "model": "Test CPU",
            "threads": 8,
            "cores": 4,
            "avx": True,
            "avx2": avx2,
            "avx512": False,
            "neon": False,
        },
        "gpu": gpu
        or {"present": False, "vendor": "unknown", "name": None, "driver": None, "vram_mib": 0, "vram_gib": None},
        "os": {"id": "ubuntu", "version": "24.04", "codename": "noble", "pretty_name": "Ubuntu 24.04"},
        "wsl": wsl,
        "display": display,
        "ram_gib": ram,
        "ram_available_gib": ram // 2,
        "disk_free_gib": 100,
    }


def make_ctx(cfg: SetupConfig, runner: FakeRunner, **options: Any) -> SetupCtx:
    return SetupCtx(cfg=cfg, runner=runner, options=SetupOptions(**options), log_path="test.log")


def state_with(hw: Dict[str, Any]) -> Dict[str, Any]:
    state = new_state()
    state["hardware"] = hw
    return state


@pytest.fixture
def cfg(tmp_path: Path) -> SetupConfig:
    return make_config(tmp_path)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()
