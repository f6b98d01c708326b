"""Contracts for the joint slicing engine: parameters, configs and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from joint_slicer.errors import InvalidParameterError
from joint_slicer.geometry_kernel import INTERSECTION_TOLERANCE, Plane
from joint_slicer.mesh_emitter import SliceMesh
from joint_slicer.path_tree import PathTree
from joint_slicer.slice_classifier import CLASSIFIERS

STATUS_COMPLETED = "completed"
STATUS_SKIPPED = "skipped"
STATUS_DEGENERATE = "degenerate"
STATUS_LAYER_CAP = "layer_cap"
STATUS_CANCELLED = "cancelled"


@dataclass(frozen=True)
class PrintParameters:
    """Per-run print settings shared by every joint (units: mm)."""

    layer_height: float = 1.0
    resolution: float = 1.0
    grid_width: float = 40.0
    grid_depth: float = 40.0
    merge_radius: float = 3.0

    def validate(self) -> None:
        for name in ("layer_height", "resolution", "grid_width", "grid_depth"):
            value = getattr(self, name)
            if not np.isfinite(value) or value <= 0:
                raise InvalidParameterError(f"{name} must be > 0, got {value}")
        # Zero radius is allowed: nothing is accepted but layers still advance
        if not np.isfinite(self.merge_radius) or self.merge_radius < 0:
            raise InvalidParameterError(
                f"merge_radius must be >= 0, got {self.merge_radius}"
            )

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "PrintParameters":
        known = {k: float(v) for k, v in payload.items() if k in cls.__dataclass_fields__}
        unknown = sorted(set(payload) - set(known))
        if unknown:
            raise ValueError(f"Unknown print parameters: {unknown}")
        return cls(**known)


@dataclass(frozen=True)
class SlicerConfig:
    """Engine behaviour that is not part of the physical print."""

    intersection_tolerance: float = INTERSECTION_TOLERANCE
    max_layers: Optional[int] = 10000  # safety cap; None = geometry-driven only
    classifier: str = "brute"           # "brute" | "kdtree"
    max_workers: int = 1
    keep_points: bool = True

    def validate(self) -> None:
        if self.intersection_tolerance < 0:
            raise InvalidParameterError(
                f"intersection_tolerance must be >= 0, got {self.intersection_tolerance}"
            )
        if self.max_layers is not None and self.max_layers < 1:
            raise InvalidParameterError(f"max_layers must be >= 1, got {self.max_layers}")
        if self.classifier not in CLASSIFIERS:
            raise InvalidParameterError(
                f"classifier must be one of {CLASSIFIERS}, got {self.classifier!r}"
            )
        if self.max_workers < 1:
            raise InvalidParameterError(f"max_workers must be >= 1, got {self.max_workers}")

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SlicerConfig":
        unknown = sorted(set(payload) - set(cls.__dataclass_fields__))
        if unknown:
            raise ValueError(f"Unknown slicer options: {unknown}")
        return cls(**payload)


@dataclass
class JointReport:
    """Outcome of slicing one joint."""

    joint_index: int
    status: str = STATUS_COMPLETED
    layers_visited: int = 0
    slices_emitted: int = 0
    intersection_count: int = 0
    member_count: int = 0
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "joint_index": self.joint_index,
            "status": self.status,
            "layers_visited": self.layers_visited,
            "slices_emitted": self.slices_emitted,
            "intersection_count": self.intersection_count,
            "member_count": self.member_count,
            "message": self.message,
        }


@dataclass
class SliceRunResult:
    """Slices keyed (joint, layer), their points and layer planes, and per-joint reports."""

    meshes: PathTree[SliceMesh] = field(default_factory=PathTree)
    points: PathTree[np.ndarray] = field(default_factory=PathTree)
    planes: PathTree[Plane] = field(default_factory=PathTree)
    reports: List[JointReport] = field(default_factory=list)

    @property
    def slice_count(self) -> int:
        return self.meshes.item_count()

    def joint_report(self, joint_index: int) -> Optional[JointReport]:
        for report in self.reports:
            if report.joint_index == joint_index:
                return report
        return None

    def layer_indices(self, joint_index: int) -> List[int]:
        return self.meshes.values_at_depth((joint_index,), 1)

    def summary(self) -> Dict[str, Any]:
        counts: Dict[str, int] = {}
        for report in self.reports:
            counts[report.status] = counts.get(report.status, 0) + 1
        return {
            "joints": len(self.reports),
            "slices": self.slice_count,
            "faces": sum(m.face_count for _, ms in self.meshes.items() for m in ms),
            "status_counts": counts,
        }
