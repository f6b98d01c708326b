"""JSON loading and saving of frame networks and print jobs."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path as FilePath
from typing import Any, Dict, List, Union

from joint_slicer.contracts import PrintParameters, SlicerConfig
from joint_slicer.errors import DegenerateGeometryError
from joint_slicer.geometry_kernel import Plane
from joint_slicer.path_tree import PathTree

PathLike = Union[str, FilePath]


@dataclass
class PrintJob:
    """A frame network plus the parameters to slice it with."""

    frames: PathTree[Plane]
    params: PrintParameters = field(default_factory=PrintParameters)
    slicer: SlicerConfig = field(default_factory=SlicerConfig)


def frame_from_payload(payload: Dict[str, Any]) -> Plane:
    try:
        origin = payload["origin"]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Frame is missing 'origin': {payload!r}") from exc
    x_axis = payload.get("x_axis", (1.0, 0.0, 0.0))
    y_axis = payload.get("y_axis", (0.0, 1.0, 0.0))
    try:
        return Plane.from_axes(origin, x_axis, y_axis)
    except DegenerateGeometryError as exc:
        raise ValueError(f"Invalid frame axes at {origin}: {exc}") from exc


def frame_to_payload(frame: Plane) -> Dict[str, List[float]]:
    return {
        "origin": [float(c) for c in frame.origin],
        "x_axis": [float(c) for c in frame.x_axis],
        "y_axis": [float(c) for c in frame.y_axis],
    }


def frame_tree_from_payload(payload: Dict[str, Any]) -> PathTree[Plane]:
    branches = payload.get("branches")
    if not isinstance(branches, list):
        raise ValueError("Frame payload needs a 'branches' list")
    tree: PathTree[Plane] = PathTree()
    for i, entry in enumerate(branches):
        if not isinstance(entry, dict):
            raise ValueError(f"Branch {i} must be an object, got {type(entry).__name__}")
        if "path" not in entry or "frames" not in entry:
            raise ValueError(f"Branch {i} needs 'path' and 'frames'")
        tree.append_range(entry["path"], (frame_from_payload(f) for f in entry["frames"]))
    return tree


def frame_tree_to_payload(tree: PathTree[Plane]) -> Dict[str, Any]:
    return {
        "branches": [
            {"path": list(path), "frames": [frame_to_payload(f) for f in frames]}
            for path, frames in tree.items()
        ]
    }


def load_frame_tree(path: PathLike) -> PathTree[Plane]:
    return load_print_job(path).frames


def load_print_job(path: PathLike) -> PrintJob:
    """Read a job file: branches plus optional 'print' and 'slicer' sections."""
    with FilePath(path).open("r", encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return PrintJob(
        frames=frame_tree_from_payload(payload),
        params=PrintParameters.from_dict(payload.get("print", {})),
        slicer=SlicerConfig.from_dict(payload.get("slicer", {})),
    )


def save_frame_tree(path: PathLike, tree: PathTree[Plane]) -> None:
    target = FilePath(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as f:
        json.dump(frame_tree_to_payload(tree), f, indent=2)
