"""Slicing pipeline: frame network JSON -> joint slices -> run artifacts."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

from joint_slicer.contracts import PrintParameters, SlicerConfig, SliceRunResult
from joint_slicer.engine import ContourSliceEngine
from joint_slicer.frame_io import load_print_job, save_frame_tree
from joint_slicer.mesh_emitter import outline_to_coords
from joint_slicer.node_extraction import NodeSkeleton, build_node_skeleton
from joint_slicer.run_protocol import (
    copy_input_file,
    export_slices,
    point_latest,
    prepare_run_dir,
    write_json,
    write_metrics,
    write_summary,
)
from joint_slicer.skeleton_view import SkeletonView

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    runs_dir: str = "runs"
    export_stl: bool = True
    export_outlines: bool = False
    extract_nodes: bool = False
    trim_length_base: int = 5
    trim_length_top: int = 5
    params: Optional[PrintParameters] = None   # overrides the job file
    slicer: Optional[SlicerConfig] = None       # overrides the job file


@dataclass
class PipelineResult:
    run_id: str
    run_dir: str
    manifest_path: str
    metrics_path: str
    summary_path: str
    frames_input_path: str
    stl_paths: List[str] = field(default_factory=list)
    outlines_path: Optional[str] = None
    node_skeleton: Optional[NodeSkeleton] = None
    slice_result: Optional[SliceRunResult] = None


def run_slicing_pipeline(
    frames_path: str,
    job_name: str = "joints",
    config: Optional[PipelineConfig] = None,
) -> PipelineResult:
    """Slice a frame network and write a run folder.

    Parameters and trim lengths are checked before the run folder is created,
    so a rejected job leaves nothing behind.
    """
    if not os.path.isfile(frames_path):
        raise FileNotFoundError(f"Frame file not found: {frames_path}")

    if config is None:
        config = PipelineConfig()

    started = time.perf_counter()
    job = load_print_job(frames_path)
    params = config.params or job.params
    slicer = config.slicer or job.slicer
    engine = ContourSliceEngine(params, slicer)

    node_skeleton = None
    frames = job.frames
    if config.extract_nodes:
        node_skeleton = build_node_skeleton(
            frames, config.trim_length_base, config.trim_length_top,
        )
        frames = node_skeleton.trimmed_nodes
        logger.info("Slicing %d trimmed nodes", node_skeleton.node_count)

    paths = prepare_run_dir(config.runs_dir, job_name)
    copied = copy_input_file(frames_path, paths)
    if node_skeleton is not None:
        save_frame_tree(paths.artifacts_dir / "trimmed_nodes.json", node_skeleton.trimmed_nodes)
        save_frame_tree(paths.artifacts_dir / "stems.json", node_skeleton.stems)

    result = engine.run(SkeletonView.from_frames(frames))

    stl_paths: List[str] = export_slices(paths, result) if config.export_stl else []

    outlines_path = None
    if config.export_outlines:
        outlines_path = str(paths.outlines_path)
        write_json(paths.outlines_path, {
            "units": "mm",
            "frame": "layer plane (u, v)",
            "slices": _slice_outlines(result),
        })

    elapsed = time.perf_counter() - started
    write_metrics(paths, result, elapsed)
    write_summary(paths, result, elapsed, len(stl_paths))
    write_json(paths.manifest_path, {
        "run_id": paths.run_id,
        "strategy": "contour_slice",
        "job_name": job_name,
        "input_frames": str(copied),
        "created_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": {
            "pipeline": {k: v for k, v in asdict(config).items() if k not in ("params", "slicer")},
            "print": asdict(params),
            "slicer": asdict(slicer),
        },
        "artifacts": {
            "metrics": str(paths.metrics_path),
            "summary": str(paths.summary_path),
            "slices": stl_paths,
            "outlines": outlines_path,
        },
    })
    point_latest(config.runs_dir, paths)

    return PipelineResult(
        run_id=paths.run_id,
        run_dir=str(paths.run_dir),
        manifest_path=str(paths.manifest_path),
        metrics_path=str(paths.metrics_path),
        summary_path=str(paths.summary_path),
        frames_input_path=str(copied),
        stl_paths=stl_paths,
        outlines_path=outlines_path,
        node_skeleton=node_skeleton,
        slice_result=result,
    )


def _slice_outlines(result: SliceRunResult) -> List[Dict[str, object]]:
    entries: List[Dict[str, object]] = []
    for (joint, layer), meshes in result.meshes.items():
        plane = result.planes.item_at((joint, layer), 0)
        for mesh in meshes:
            outline = mesh.outline(plane)
            entries.append({
                "joint": joint,
                "layer": layer,
                "area_mm2": round(float(outline.area), 4),
                "rings": outline_to_coords(outline),
            })
    return entries
