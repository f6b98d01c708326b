#!/usr/bin/env python3
"""
Slice the joints of a branching structure into printable layer meshes.

Reads a frame network (JSON), optionally extracts and trims nodes from a flat
branch list, slices every joint layer by layer and writes a run folder with
per-slice STL files, metrics and a summary.

Usage:
    python scripts/slice_joints.py --frames joints.json
    python scripts/slice_joints.py --frames branches.json --extract-nodes --trim-base 5 --trim-top 5
    python scripts/slice_joints.py --frames joints.json --layer-height 0.5 --resolution 0.5 --outlines -v
"""
import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from joint_slicer.errors import InvalidParameterError
from joint_slicer.frame_io import load_print_job
from joint_slicer.pipeline import PipelineConfig, run_slicing_pipeline
from joint_slicer.slice_classifier import CLASSIFIERS


def main():
    parser = argparse.ArgumentParser(
        description="Slice branching-structure joints into printable layer meshes",
    )
    parser.add_argument("--frames", required=True, help="Path to frame network JSON")
    parser.add_argument("--name", type=str, default="joints", help="Job name")
    parser.add_argument("--runs-dir", type=str, default="runs", help="Run output root")

    # Print parameters (override the job file)
    parser.add_argument("--layer-height", type=float, default=None, help="Layer height in mm")
    parser.add_argument("--resolution", type=float, default=None, help="Grid spacing in mm")
    parser.add_argument("--grid-width", type=float, default=None, help="Footprint width in mm")
    parser.add_argument("--grid-depth", type=float, default=None, help="Footprint depth in mm")
    parser.add_argument("--merge-radius", type=float, default=None, help="Merge radius in mm")

    # Node extraction
    parser.add_argument(
        "--extract-nodes", action="store_true",
        help="Treat input as a flat branch list and slice the extracted nodes",
    )
    parser.add_argument("--trim-base", type=int, default=5, help="Node base length in frames (default: 5)")
    parser.add_argument("--trim-top", type=int, default=5, help="Node top length in frames (default: 5)")

    # Engine options
    parser.add_argument("--workers", type=int, default=None, help="Joints sliced in parallel")
    parser.add_argument(
        "--classifier", type=str, default=None, choices=list(CLASSIFIERS),
        help="Grid classification method (default: brute)",
    )
    parser.add_argument(
        "--max-layers", type=int, default=None,
        help="Safety cap on layers per joint (0 disables the cap)",
    )

    # Outputs
    parser.add_argument("--no-stl", action="store_true", help="Skip STL export")
    parser.add_argument("--outlines", action="store_true", help="Write slice outlines JSON")
    parser.add_argument("-v", "--verbose", action="store_true")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not Path(args.frames).is_file():
        parser.error(f"Frame file not found: {args.frames}")

    try:
        job = load_print_job(args.frames)
    except ValueError as exc:
        parser.error(f"Invalid frame file: {exc}")

    overrides = {
        "layer_height": args.layer_height,
        "resolution": args.resolution,
        "grid_width": args.grid_width,
        "grid_depth": args.grid_depth,
        "merge_radius": args.merge_radius,
    }
    params = replace(job.params, **{k: v for k, v in overrides.items() if v is not None})

    slicer = job.slicer
    if args.workers is not None:
        slicer = replace(slicer, max_workers=args.workers)
    if args.classifier is not None:
        slicer = replace(slicer, classifier=args.classifier)
    if args.max_layers is not None:
        slicer = replace(slicer, max_layers=args.max_layers or None)

    config = PipelineConfig(
        runs_dir=args.runs_dir,
        export_stl=not args.no_stl,
        export_outlines=args.outlines,
        extract_nodes=args.extract_nodes,
        trim_length_base=args.trim_base,
        trim_length_top=args.trim_top,
        params=params,
        slicer=slicer,
    )

    try:
        result = run_slicing_pipeline(args.frames, job_name=args.name, config=config)
    except InvalidParameterError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    print(f"Run ID: {result.run_id}")
    print(f"Run dir: {result.run_dir}")
    slices = result.slice_result
    for report in slices.reports:
        print(
            f"  joint {report.joint_index}: {report.status}, "
            f"{report.slices_emitted} slices over {report.layers_visited} layers"
        )
    print(f"Slices: {slices.slice_count}, STL files: {len(result.stl_paths)}")


if __name__ == "__main__":
    main()
