"""Public API for the joint slicer."""

from joint_slicer.contracts import JointReport, PrintParameters, SlicerConfig, SliceRunResult
from joint_slicer.engine import ContourSliceEngine, slice_joints
from joint_slicer.geometry_kernel import Frame, Plane, SkeletonCurve, interpolate_curve
from joint_slicer.path_tree import PathTree
from joint_slicer.skeleton_view import SkeletonView

__all__ = [
    "ContourSliceEngine",
    "Frame",
    "JointReport",
    "PathTree",
    "Plane",
    "PrintParameters",
    "SkeletonCurve",
    "SkeletonView",
    "SliceRunResult",
    "SlicerConfig",
    "interpolate_curve",
    "slice_joints",
]
