"""Writers for rasterised terrain products and their metadata."""

from __future__ import annotations

import json
from pathlib import Path
import shutil
from typing import Any

import numpy as np
from PIL import Image


def output_dir_for(out_root: str | Path, seed_label: str, width: int, height: int) -> Path:
    return Path(out_root) / seed_label / f"{width}x{height}"


def prepare_output_dir(target: Path, *, overwrite: bool) -> Path:
    """Create `target`, refusing to reuse a populated directory unless `overwrite` is set."""

    if target.is_dir() and next(target.iterdir(), None) is not None and not overwrite:
        raise FileExistsError(f"{target} already holds terrain outputs; pass --overwrite to replace them")
    target.mkdir(parents=True, exist_ok=True)
    return target


def replace_contents(stage_dir: Path, target: Path, *, out_root: Path) -> None:
    """Swap the staged files into `target`, which must live under `out_root`."""

    resolved = target.resolve()
    resolved.relative_to(out_root.resolve())

    for stale in resolved.iterdir():
        if stale.is_dir() and not stale.is_symlink():
            shutil.rmtree(stale)
        else:
            stale.unlink()
    for staged in stage_dir.iterdir():
        shutil.move(str(staged), str(resolved / staged.name))


def write_elevation(path: str | Path, elevation: np.ndarray) -> None:
    np.save(Path(path), elevation.astype(np.float32), allow_pickle=False)


def write_png(path: str | Path, raster: np.ndarray) -> None:
    """Save an 8- or 16-bit grayscale raster."""

    if raster.dtype not in (np.uint8, np.uint16):
        raise ValueError(f"PNG rasters must be uint8 or uint16, got {raster.dtype}")
    Image.fromarray(raster).save(Path(path))


def write_json(path: str | Path, payload: dict[str, Any]) -> None:
    Path(path).write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
