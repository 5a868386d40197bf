from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

DEFAULT_MANIFEST = Path(__file__).resolve().parent / "manifests" / "setup.yaml"


@dataclass(frozen=True)
class ToolGroup:
    name: str
    packages: List[str]
    fallbacks: List[List[str]]
    required: bool = False
    requires: Optional[str] = None


@dataclass(frozen=True)
class SetupConfig:
    raw: Dict[str, Any]
    source_path: str = str(DEFAULT_MANIFEST)

    def _section(self, key: str) -> Dict[str, Any]:
        value = self.raw.get(key) or {}
        if not isinstance(value, dict):
            raise ValueError(f"manifest section '{key}' must be a mapping")
        return value

    # packages

    @property
    def baseline_packages(self) -> List[str]:
        return _str_list(self._section("packages").get("baseline"))

    @property
    def avx2_packages(self) -> List[str]:
        return _str_list(self._section("packages").get("avx2"))

    @property
    def optional_packages(self) -> List[str]:
        return _str_list(self._section("packages").get("optional"))

    @property
    def required_commands(self) -> List[str]:
        return _str_list(self._section("packages").get("required_commands"))

    # model runner

    @property
    def installer_url(self) -> str:
        return str(self._section("model_runner").get("installer_url") or "https://ollama.com/install.sh")

    @property
    def installer_sha256(self) -> Optional[str]:
        value = self._section("model_runner").get("installer_sha256")
        return str(value).strip().lower() if value else None

    @property
    def install_attempts(self) -> int:
        return int(self._section("model_runner").get("install_attempts") or 3)

    @property
    def retry_delay_s(self) -> float:
        value = self._section("model_runner").get("retry_delay_s")
        return float(10 if value is None else value)

    @property
    def runner_service(self) -> str:
        return str(self._section("model_runner").get("service") or "ollama")

    @property
    def runner_host(self) -> str:
        return str(self._section("model_runner").get("host") or "127.0.0.1:11434")

    @property
    def runner_start_wait_s(self) -> float:
        value = self._section("model_runner").get("start_wait_s")
        return float(3 if value is None else value)

    @property
    def runner_extra_env(self) -> Dict[str, str]:
        env = self._section("model_runner").get("extra_env") or {}
        return {str(k): str(v) for k, v in env.items()}

    # tuning

    @property
    def tuning(self) -> Dict[str, Any]:
        return self._section("tuning")

    @property
    def tuning_env_var(self) -> str:
        return str(self.tuning.get("env_var") or "OLLAMA_NUM_PARALLEL")

    # tools / assistant

    @property
    def tool_groups(self) -> Dict[str, ToolGroup]:
        groups = self._section("tools").get("groups") or {}
        if not isinstance(groups, dict):
            raise ValueError("manifest tools.groups must be a mapping")
        out: Dict[str, ToolGroup] = {}
        for name, obj in groups.items():
            obj = obj or {}
            out[str(name)] = ToolGroup(
                name=str(name),
                packages=_str_list(obj.get("packages")),
                fallbacks=[_str_list(chain) for chain in (obj.get("fallbacks") or [])],
                required=bool(obj.get("required", False)),
                requires=(str(obj["requires"]) if obj.get("requires") else None),
            )
        return out

    @property
    def default_tool_selection(self) -> List[str]:
        return _str_list(self._section("tools").get("default_selection"))

    @property
    def assistant_enabled(self) -> bool:
        return bool(self._section("assistant").get("enabled", False))

    @property
    def assistant_package(self) -> str:
        return str(self._section("assistant").get("package") or "aider-chat")

    @property
    def assistant_command(self) -> str:
        return str(self._section("assistant").get("command") or "aider")

    # catalog

    @property
    def models(self) -> List[Dict[str, Any]]:
        models = self.raw.get("models") or []
        if not isinstance(models, list):
            raise ValueError("manifest models must be a list")
        return [m for m in models if isinstance(m, dict) and m.get("name")]

    # timeouts (seconds)

    def timeout(self, kind: str) -> float:
        defaults = {"command": 1800, "download": 60, "installer": 900, "pull": 3600}
        value = self._section("timeouts").get(kind)
        return float(defaults.get(kind, 1800) if value is None else value)

    # paths

    @property
    def log_path(self) -> str:
        return os.path.expanduser(str(self._section("paths").get("log") or "~/llm-auto-setup.log"))

    @property
    def serve_log_path(self) -> str:
        return os.path.expanduser(str(self._section("paths").get("serve_log") or "~/.ollama.log"))

    @property
    def script_copy_path(self) -> str:
        raw = self._section("paths").get("script_copy") or "~/.config/local-llm/llm-auto-setup.yaml"
        return os.path.expanduser(str(raw))


def _str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ValueError(f"expected a list of strings, got {type(value).__name__}")
    return [str(v).strip() for v in value if str(v).strip()]


def load_setup_config(path: Optional[str] = None) -> SetupConfig:
    p = Path(os.path.expanduser(path)) if path else DEFAULT_MANIFEST
    if not p.exists():
        raise FileNotFoundError(str(p))

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("setup manifest must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"setup manifest must contain a mapping/object: {p}")

    return SetupConfig(raw=raw, source_path=str(p))
