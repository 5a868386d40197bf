from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

ALL_MODELS = "all"


@dataclass(frozen=True)
class ModelEntry:
    name: str
    label: str
    min_ram_gib: Optional[int]
    min_vram_gib: Optional[int]
    caps: tuple[str, ...] = ()

    def fits(self, *, ram_gib: int, vram_gib: int, has_gpu: bool) -> bool:
        if has_gpu and self.min_vram_gib is not None and vram_gib >= self.min_vram_gib:
            return True
        return self.min_ram_gib is not None and ram_gib >= self.min_ram_gib


def load_catalog(rows: Iterable[Dict[str, Any]]) -> List[ModelEntry]:
    out: List[ModelEntry] = []
    for row in rows:
        name = str(row.get("name") or "").strip()
        if not name:
            continue
        out.append(
            ModelEntry(
                name=name,
                label=str(row.get("label") or name),
                min_ram_gib=_opt_int(row.get("min_ram_gib")),
                min_vram_gib=_opt_int(row.get("min_vram_gib")),
                caps=tuple(str(c) for c in (row.get("caps") or [])),
            )
        )
    return out


def _opt_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def recommend_models(catalog: Sequence[ModelEntry], hw: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the largest catalog entry that fits the host.

    GPU hosts are matched on VRAM first; anything the card cannot hold falls
    back to the CPU tiers (RAM). The catalog is ordered smallest to largest.
    """

    ram = int(hw.get("ram_gib") or 0)
    gpu = hw.get("gpu") or {}
    has_gpu = bool(gpu.get("present")) and gpu.get("vram_gib") is not None
    vram = int(gpu.get("vram_gib") or 0)

    fitting = [m for m in catalog if m.fits(ram_gib=ram, vram_gib=vram, has_gpu=has_gpu)]
    best = fitting[-1] if fitting else (catalog[0] if catalog else None)
    mode = "gpu" if has_gpu and best is not None and best.min_vram_gib is not None and vram >= best.min_vram_gib else "cpu"

    return {
        "best": best.name if best else None,
        "mode": mode,
        "fitting": [m.name for m in fitting],
    }


def resolve_install_targets(selection: Optional[str], catalog: Sequence[ModelEntry]) -> List[str]:
    """Turn the --install-models argument into the list of names to pull.

    ``all`` expands to the whole catalog; anything else is one name, pulled as
    given whether or not the catalog knows it.
    """

    if selection is None:
        return []
    value = selection.strip()
    if not value:
        return []
    if value.lower() == ALL_MODELS:
        return [m.name for m in catalog]
    if value not in {m.name for m in catalog}:
        logger.info("Model %s is not in the catalog; attempting it anyway", value)
    return [value]
