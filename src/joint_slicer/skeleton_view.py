"""
Read-only per-joint access to skeleton curves.

Two sources are supported:
- frames keyed (joint, member): each member's frame origins are interpolated
  into a curve and the base plane is the joint's first member's first frame.
- curves grouped by joint index: the base plane is the perpendicular frame
  at the start of the joint's first curve.
"""
import logging
import threading
from typing import Dict, List, Optional

from joint_slicer.errors import EmptySkeletonError, SlicerError
from joint_slicer.geometry_kernel import (
    Plane,
    SkeletonCurve,
    interpolate_curve,
    perpendicular_frame_at,
)
from joint_slicer.path_tree import Path, PathTree

logger = logging.getLogger(__name__)


class SkeletonView:
    """Per-joint view over member curves and base planes."""

    def __init__(
        self,
        frames: Optional[PathTree[Plane]] = None,
        curves: Optional[PathTree[SkeletonCurve]] = None,
        degree: int = 3,
    ) -> None:
        if (frames is None) == (curves is None):
            raise ValueError("SkeletonView needs exactly one of frames or curves")
        self._frames = frames
        self._curves = curves
        self._degree = degree
        self._cache: Dict[int, Dict[Path, SkeletonCurve]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_frames(cls, frames: PathTree[Plane], degree: int = 3) -> "SkeletonView":
        return cls(frames=frames, degree=degree)

    @classmethod
    def from_curves(cls, curves: PathTree[SkeletonCurve]) -> "SkeletonView":
        return cls(curves=curves)

    @property
    def curve_mode(self) -> bool:
        return self._curves is not None

    def _source(self) -> PathTree:
        return self._curves if self._curves is not None else self._frames

    def joint_indices(self) -> List[int]:
        return self._source().values_at_depth((), 0)

    def member_count(self, joint_index: int) -> int:
        if self.curve_mode:
            return len(self._joint_paths(joint_index))
        return self._frames.count_at_depth((joint_index,), 1)

    def _joint_paths(self, joint_index: int) -> List[Path]:
        return [p for p in self._source().paths() if p and p[0] == joint_index]

    def member_curves(self, joint_index: int) -> List[SkeletonCurve]:
        """All curves of a joint, in path order.

        Raises:
            EmptySkeletonError: the joint has no members.
            DegenerateGeometryError: a member cannot be interpolated.
        """
        return list(self._joint_curves(joint_index).values())

    def _joint_curves(self, joint_index: int) -> Dict[Path, SkeletonCurve]:
        with self._lock:
            cached = self._cache.get(joint_index)
        if cached is not None:
            return cached

        paths = self._joint_paths(joint_index)
        built: Dict[Path, SkeletonCurve] = {}
        if self.curve_mode:
            for path in paths:
                for i, curve in enumerate(self._curves.branch(path)):
                    built[path + (i,)] = curve
        else:
            for path in paths:
                origins = [frame.origin for frame in self._frames.branch(path)]
                built[path] = interpolate_curve(origins, degree=self._degree)

        if not built:
            raise EmptySkeletonError(f"Joint {joint_index} has no skeleton curves")

        logger.debug("Joint %d: %d skeleton curves", joint_index, len(built))
        with self._lock:
            self._cache[joint_index] = built
        return built

    def base_plane(self, joint_index: int) -> Plane:
        """Starting cutting plane for a joint."""
        if self.curve_mode:
            curves = self.member_curves(joint_index)
            return perpendicular_frame_at(curves[0], curves[0].domain[0])
        members = self._frames.values_at_depth((joint_index,), 1)
        if not members:
            raise EmptySkeletonError(f"Joint {joint_index} has no members")
        return self._frames.item_at((joint_index, members[0]), 0)

    def curves_tree(self) -> PathTree[SkeletonCurve]:
        """Every buildable curve keyed like its source; failing joints are left out."""
        tree: PathTree[SkeletonCurve] = PathTree()
        for joint_index in self.joint_indices():
            try:
                curves = self._joint_curves(joint_index)
            except SlicerError as exc:
                logger.warning("Joint %d curves unavailable: %s", joint_index, exc)
                continue
            for path, curve in curves.items():
                tree.append(path[:-1] if self.curve_mode else path, curve)
        return tree
