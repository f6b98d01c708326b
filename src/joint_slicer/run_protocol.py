"""
Run folders for slicing jobs.

Each run gets its own directory under the runs root:

    <stamp>_<job>/
        input/                         copy of the frame network
        artifacts/slices/joint_XX/     one STL per emitted (joint, layer)
        artifacts/outlines.json        optional slice outlines
        manifest.json, metrics.json, summary.md
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import trimesh

from joint_slicer.contracts import SliceRunResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunPaths:
    run_id: str
    run_dir: Path

    @property
    def input_dir(self) -> Path:
        return self.run_dir / "input"

    @property
    def artifacts_dir(self) -> Path:
        return self.run_dir / "artifacts"

    @property
    def slices_dir(self) -> Path:
        return self.artifacts_dir / "slices"

    @property
    def outlines_path(self) -> Path:
        return self.artifacts_dir / "outlines.json"

    @property
    def manifest_path(self) -> Path:
        return self.run_dir / "manifest.json"

    @property
    def metrics_path(self) -> Path:
        return self.run_dir / "metrics.json"

    @property
    def summary_path(self) -> Path:
        return self.run_dir / "summary.md"

    def slice_path(self, joint_index: int, layer_index: int) -> Path:
        return self.slices_dir / f"joint_{joint_index:02d}" / f"layer_{layer_index:04d}.stl"


def slugify(job_name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", job_name.lower()).strip("-")
    return slug or "run"


def prepare_run_dir(runs_root: str, job_name: str, now: Optional[datetime] = None) -> RunPaths:
    """Create a fresh run directory; a numeric suffix keeps same-second runs apart."""
    root = Path(runs_root)
    root.mkdir(parents=True, exist_ok=True)
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d_%H%M%S")
    base = f"{stamp}_{slugify(job_name)}"

    run_dir = root / base
    suffix = 1
    while True:
        try:
            run_dir.mkdir()
            break
        except FileExistsError:
            suffix += 1
            run_dir = root / f"{base}-{suffix}"

    paths = RunPaths(run_id=run_dir.name, run_dir=run_dir)
    paths.input_dir.mkdir()
    paths.artifacts_dir.mkdir()
    return paths


def copy_input_file(source_path: str, paths: RunPaths) -> Path:
    target = paths.input_dir / Path(source_path).name
    shutil.copy2(source_path, target)
    return target


def export_slices(paths: RunPaths, result: SliceRunResult) -> List[str]:
    """Write one STL per (joint, layer); several meshes on a path are concatenated."""
    written: List[str] = []
    for (joint, layer), meshes in result.meshes.items():
        target = paths.slice_path(joint, layer)
        target.parent.mkdir(parents=True, exist_ok=True)
        parts = [m.to_trimesh() for m in meshes]
        mesh = parts[0] if len(parts) == 1 else trimesh.util.concatenate(parts)
        mesh.export(str(target))
        written.append(str(target))
    logger.info("Exported %d slice meshes to %s", len(written), paths.slices_dir)
    return written


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, default=_to_builtin), encoding="utf-8")


def write_metrics(paths: RunPaths, result: SliceRunResult, elapsed_s: float) -> None:
    write_json(paths.metrics_path, {
        "run_id": paths.run_id,
        "elapsed_s": round(elapsed_s, 3),
        "summary": result.summary(),
        "joints": [r.to_dict() for r in result.reports],
    })


def write_summary(
    paths: RunPaths,
    result: SliceRunResult,
    elapsed_s: float,
    stl_count: int,
) -> None:
    summary = result.summary()
    lines = [
        f"# Run {paths.run_id}",
        "",
        f"- Duration: {elapsed_s:.2f}s",
        f"- Joints: {summary['joints']}",
        f"- Slices: {summary['slices']}",
        f"- Quads: {summary['faces']}",
        f"- STL files: {stl_count}",
        "",
        "## Joints",
    ]
    if not result.reports:
        lines.append("- None")
    for r in result.reports:
        note = f": {r.message}" if r.message else ""
        lines.append(
            f"- Joint {r.joint_index} [{r.status}] {r.slices_emitted} slices / "
            f"{r.layers_visited} layers{note}"
        )
    paths.summary_path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def point_latest(runs_root: str, paths: RunPaths) -> Path:
    """Repoint runs_root/latest at this run.

    Falls back to a latest.txt holding the run id where symlinks are refused.
    """
    root = Path(runs_root)
    link = root / "latest"
    staged = root / f".latest-{paths.run_id}"
    try:
        staged.symlink_to(paths.run_dir.name)
        os.replace(staged, link)
        return link
    except OSError:
        if staged.is_symlink():
            staged.unlink()
        pointer = root / "latest.txt"
        pointer.write_text(paths.run_id + "\n", encoding="utf-8")
        return pointer


def _to_builtin(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    raise TypeError(f"Not JSON serialisable: {type(value).__name__}")
