from __future__ import annotations

import logging
import os
import platform
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set

import psutil

from .command import CommandRunner

logger = logging.getLogger(__name__)

_GPU_VENDOR_MAP = {
    "0x8086": "intel",
    "0x1002": "amd",
    "0x10de": "nvidia",
}

# Cards reporting less than this are integrated/shared memory, not offload targets.
MIN_DEDICATED_VRAM_MIB = 512

_FLAG_LINE = re.compile(r"^(flags|Features)\s*:\s*(.*)$", re.MULTILINE)


def normalize_arch(machine: str) -> str:
    m = machine.lower()
    return {
        "x86_64": "amd64",
        "amd64": "amd64",
        "aarch64": "arm64",
        "arm64": "arm64",
        "armv7l": "armhf",
        "armv6l": "armhf",
    }.get(m, m)


def _read_text(path: Path) -> Optional[str]:
    try:
        txt = path.read_text(encoding="utf-8", errors="ignore").strip()
        return txt or None
    except OSError:
        return None


def parse_cpu_flags(cpuinfo: str) -> Set[str]:
    """Return the feature flags of the first CPU listed in /proc/cpuinfo.

    x86 reports them on a ``flags`` line, ARM on ``Features``.
    """

    m = _FLAG_LINE.search(cpuinfo or "")
    if not m:
        return set()
    return set(m.group(2).split())


def parse_cpu_model(cpuinfo: str) -> str:
    for line in (cpuinfo or "").splitlines():
        if line.lower().startswith("model name"):
            return line.split(":", 1)[1].strip() or "unknown"
    return platform.processor() or "unknown"


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse /etc/os-release into lowercase id, version and codename."""

    values: Dict[str, str] = {}
    for line in (text or "").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"').strip("'")
    return {
        "id": values.get("ID", "unknown").lower(),
        "version": values.get("VERSION_ID", "unknown"),
        "codename": values.get("VERSION_CODENAME") or values.get("UBUNTU_CODENAME") or "unknown",
        "pretty_name": values.get("PRETTY_NAME", ""),
    }


def is_wsl() -> bool:
    version = _read_text(Path("/proc/version")) or ""
    return "microsoft" in version.lower()


def has_display(env: Optional[Mapping[str, str]] = None, *, wsl: bool = False) -> bool:
    env = os.environ if env is None else env
    return bool(env.get("DISPLAY") or env.get("WAYLAND_DISPLAY")) or wsl


def detect_cpu(cpuinfo: Optional[str] = None) -> Dict[str, Any]:
    if cpuinfo is None:
        cpuinfo = _read_text(Path("/proc/cpuinfo")) or ""
    flags = parse_cpu_flags(cpuinfo)
    arch = normalize_arch(platform.machine())
    return {
        "model": parse_cpu_model(cpuinfo),
        "threads": psutil.cpu_count(logical=True) or 1,
        "cores": psutil.cpu_count(logical=False) or 1,
        "avx": "avx" in flags,
        "avx2": "avx2" in flags,
        "avx512": "avx512f" in flags,
        "neon": arch == "arm64",
    }


def detect_ram() -> Dict[str, int]:
    """Total and available RAM in whole GiB (floored, minimum 1)."""

    vm = psutil.virtual_memory()
    total = int(vm.total // (1024 ** 3))
    avail = int(vm.available // (1024 ** 3))
    return {"ram_gib": max(total, 1), "ram_available_gib": max(avail, 1)}


def _nvidia_gpu(runner: CommandRunner) -> Optional[Dict[str, Any]]:
    if runner.which("nvidia-smi") is None:
        return None
    r = runner.run(
        ["nvidia-smi", "--query-gpu=name,memory.total,driver_version", "--format=csv,noheader,nounits"],
        check=False,
        timeout_s=30,
    )
    if not r.ok or not r.stdout.strip():
        return None

    cards: List[Dict[str, Any]] = []
    for line in r.stdout.strip().splitlines():
        parts = [p.strip() for p in line.split(",")]
        if len(parts) < 2 or not parts[1].isdigit():
            continue
        cards.append({"name": parts[0], "vram_mib": int(parts[1]), "driver": parts[2] if len(parts) > 2 else None})
    if not cards:
        return None

    # Layers are offloaded to one device, so tiering uses the largest single card.
    best = max(cards, key=lambda c: c["vram_mib"])
    if best["vram_mib"] <= MIN_DEDICATED_VRAM_MIB:
        return None
    name = best["name"] if len(cards) == 1 else f"{len(cards)}x {best['name']}"
    return {
        "present": True,
        "vendor": "nvidia",
        "name": name,
        "driver": best["driver"],
        "vram_mib": best["vram_mib"],
        "vram_gib": best["vram_mib"] // 1024,
    }


def _sysfs_gpu(drm: Path) -> Dict[str, Any]:
    """Best-effort GPU detection via /sys/class/drm (AMD VRAM, vendor ids)."""

    gpu: Dict[str, Any] = {
        "present": False,
        "vendor": "unknown",
        "name": None,
        "driver": None,
        "vram_mib": 0,
        "vram_gib": None,
    }

    cards = sorted([p for p in drm.glob("card[0-9]*") if p.is_dir() and "-" not in p.name]) if drm.exists() else []
    best_mib = 0
    for card in cards:
        dev = card / "device"
        vendor_id = (_read_text(dev / "vendor") or "").lower()
        vendor = _GPU_VENDOR_MAP.get(vendor_id, "unknown")
        if gpu["vendor"] == "unknown":
            gpu["vendor"] = vendor
        vram_raw = _read_text(dev / "mem_info_vram_total")
        if vram_raw and vram_raw.isdigit():
            mib = int(vram_raw) // (1024 * 1024)
            if mib > best_mib and mib > MIN_DEDICATED_VRAM_MIB:
                best_mib = mib
                gpu["vendor"] = vendor
                driver_link = dev / "driver"
                if driver_link.exists():
                    gpu["driver"] = driver_link.resolve().name

    if best_mib:
        gpu.update({"present": True, "vram_mib": best_mib, "vram_gib": best_mib // 1024})
        gpu["name"] = f"{gpu['vendor'].upper()} GPU"
    elif gpu["vendor"] == "intel":
        # Intel Arc/iGPU: no dedicated VRAM in sysfs; CPU tiers are used.
        gpu["name"] = "Intel GPU"
    return gpu


def detect_gpu(runner: CommandRunner, *, drm: Path = Path("/sys/class/drm")) -> Dict[str, Any]:
    """NVIDIA first (nvidia-smi), then AMD/Intel through sysfs."""

    nvidia = _nvidia_gpu(runner)
    if nvidia:
        return nvidia
    return _sysfs_gpu(drm)


def detect_hardware(runner: CommandRunner) -> Dict[str, Any]:
    wsl = is_wsl()
    hw: Dict[str, Any] = {
        "arch": normalize_arch(platform.machine()),
        "cpu": detect_cpu(),
        "gpu": detect_gpu(runner),
        "os": parse_os_release(_read_text(Path("/etc/os-release")) or ""),
        "wsl": wsl,
        "display": has_display(wsl=wsl),
    }
    hw.update(detect_ram())

    try:
        hw["disk_free_gib"] = int(psutil.disk_usage(str(Path.home())).free // (1024 ** 3))
    except OSError:
        hw["disk_free_gib"] = None

    logger.info(
        "Hardware: arch=%s cpu=%s threads=%s avx2=%s ram=%sGiB gpu=%s vram=%sGiB wsl=%s",
        hw["arch"],
        hw["cpu"]["model"],
        hw["cpu"]["threads"],
        hw["cpu"]["avx2"],
        hw["ram_gib"],
        hw["gpu"].get("name") or "none",
        hw["gpu"].get("vram_gib"),
        wsl,
    )
    return hw
