"""
Contour slice engine.

For every joint the cutting plane starts at the joint's base plane and is
stepped along its own normal by the layer height. Each step intersects the
plane with all of the joint's skeleton curves. While intersections exist,
the plane is grid-sampled, the samples within merge radius of an
intersection are kept, and the kept samples are emitted as a quad mesh.
The first layer without intersections ends the joint.

Joints are independent: a joint with no curves is skipped and a joint with
degenerate geometry is abandoned, while the remaining joints still run.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import numpy as np

from joint_slicer.contracts import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_DEGENERATE,
    STATUS_LAYER_CAP,
    STATUS_SKIPPED,
    JointReport,
    PrintParameters,
    SlicerConfig,
    SliceRunResult,
)
from joint_slicer.errors import DegenerateGeometryError, EmptySkeletonError
from joint_slicer.geometry_kernel import (
    Plane,
    SkeletonCurve,
    intersect_curve_plane,
    translate_plane,
)
from joint_slicer.grid_sampler import sample_grid
from joint_slicer.mesh_emitter import build_slice_mesh
from joint_slicer.skeleton_view import SkeletonView
from joint_slicer.slice_classifier import classify

logger = logging.getLogger(__name__)


class ContourSliceEngine:
    """Layer-by-layer slicer for the joints of a skeleton."""

    def __init__(
        self,
        params: PrintParameters,
        config: Optional[SlicerConfig] = None,
    ) -> None:
        if config is None:
            config = SlicerConfig()
        params.validate()
        config.validate()
        self.params = params
        self.config = config

    def run(
        self,
        skeleton: SkeletonView,
        cancel_event: Optional[threading.Event] = None,
    ) -> SliceRunResult:
        """Slice every joint of *skeleton*.

        Output meshes are keyed (joint, layer). Per-joint outcomes are
        reported rather than raised, so one bad joint never aborts the run.
        """
        started = time.perf_counter()
        joints = skeleton.joint_indices()
        result = SliceRunResult()

        if self.config.max_workers > 1 and len(joints) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                outputs = list(pool.map(
                    lambda j: self.slice_joint(skeleton, j, cancel_event), joints,
                ))
        else:
            outputs = [self.slice_joint(skeleton, j, cancel_event) for j in joints]

        # Private per-joint results are merged in joint order
        for joint_result in outputs:
            result.reports.extend(joint_result.reports)
            result.meshes.merge(joint_result.meshes)
            result.points.merge(joint_result.points)
            result.planes.merge(joint_result.planes)

        logger.info(
            "Sliced %d joints into %d slices in %.2fs",
            len(joints), result.slice_count, time.perf_counter() - started,
        )
        return result

    def slice_joint(
        self,
        skeleton: SkeletonView,
        joint_index: int,
        cancel_event: Optional[threading.Event] = None,
    ) -> SliceRunResult:
        """Run the layer loop for one joint into a private result."""
        report = JointReport(joint_index=joint_index)
        out = SliceRunResult(reports=[report])

        try:
            report.member_count = skeleton.member_count(joint_index)
            curves = skeleton.member_curves(joint_index)
            plane = skeleton.base_plane(joint_index)
        except EmptySkeletonError as exc:
            report.status = STATUS_SKIPPED
            report.message = str(exc)
            logger.warning("Skipping joint %d: %s", joint_index, exc)
            return out
        except DegenerateGeometryError as exc:
            report.status = STATUS_DEGENERATE
            report.message = str(exc)
            logger.warning("Joint %d has degenerate geometry: %s", joint_index, exc)
            return out

        try:
            self._layer_loop(joint_index, curves, plane, out, cancel_event)
        except DegenerateGeometryError as exc:
            report.status = STATUS_DEGENERATE
            report.message = f"layer {report.layers_visited}: {exc}"
            logger.warning(
                "Joint %d abandoned at layer %d: %s",
                joint_index, report.layers_visited, exc,
            )

        logger.info(
            "Joint %d: %s after %d layers, %d slices",
            joint_index, report.status, report.layers_visited, report.slices_emitted,
        )
        return out

    def _layer_loop(
        self,
        joint_index: int,
        curves: List[SkeletonCurve],
        plane: Plane,
        out: SliceRunResult,
        cancel_event: Optional[threading.Event],
    ) -> None:
        p = self.params
        report = out.reports[0]
        step = plane.normal * p.layer_height
        layer_index = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                report.status = STATUS_CANCELLED
                report.message = f"cancelled before layer {layer_index}"
                return

            plane = translate_plane(plane, step)
            hits = self.intersect(curves, plane)
            if not hits:
                report.status = STATUS_COMPLETED
                return
            # Capped only while geometry would still produce a layer
            if self.config.max_layers is not None and layer_index >= self.config.max_layers:
                report.status = STATUS_LAYER_CAP
                report.message = f"stopped at safety cap of {self.config.max_layers} layers"
                logger.warning(
                    "Joint %d hit the %d layer cap with intersections remaining",
                    joint_index, self.config.max_layers,
                )
                return

            report.layers_visited += 1
            report.intersection_count += len(hits)

            grid = sample_grid(plane, p.grid_width, p.grid_depth, p.resolution)
            accepted = classify(grid, hits, p.merge_radius, method=self.config.classifier)
            if len(accepted):
                path = (joint_index, layer_index)
                out.meshes.append(path, build_slice_mesh(plane, accepted, p.resolution))
                out.planes.append(path, plane)
                if self.config.keep_points:
                    out.points.append(path, accepted)
                report.slices_emitted += 1

            logger.debug(
                "Joint %d layer %d: %d intersections, %d accepted",
                joint_index, layer_index, len(hits), len(accepted),
            )
            layer_index += 1

    def intersect(self, curves: List[SkeletonCurve], plane: Plane) -> List[np.ndarray]:
        """Intersection points of every curve with *plane*, curve by curve."""
        hits: List[np.ndarray] = []
        for curve in curves:
            hits.extend(intersect_curve_plane(curve, plane, self.config.intersection_tolerance))
        return hits


def slice_joints(
    skeleton: SkeletonView,
    params: PrintParameters,
    config: Optional[SlicerConfig] = None,
    cancel_event: Optional[threading.Event] = None,
) -> SliceRunResult:
    """Validate parameters and slice every joint of *skeleton*."""
    return ContourSliceEngine(params, config).run(skeleton, cancel_event)
