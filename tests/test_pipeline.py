from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import pytest

from joint_slicer.contracts import PrintParameters
from joint_slicer.errors import InvalidParameterError
from joint_slicer.pipeline import PipelineConfig, run_slicing_pipeline
from joint_slicer.run_protocol import point_latest, prepare_run_dir, slugify, write_json


def test_pipeline_creates_run_folder_structure(frames_file: str, tmp_path: Path):
    runs_dir = tmp_path / "runs"
    config = PipelineConfig(runs_dir=str(runs_dir), export_outlines=True)

    result = run_slicing_pipeline(frames_file, job_name="Vertical Joint", config=config)

    run_dir = Path(result.run_dir)
    assert run_dir.exists()
    assert run_dir.name.endswith("vertical-joint")
    assert (run_dir / "input" / "joints.json").exists()
    assert (run_dir / "manifest.json").exists()
    assert (run_dir / "metrics.json").exists()
    assert (run_dir / "summary.md").exists()

    slices_dir = run_dir / "artifacts" / "slices" / "joint_00"
    stl_files = sorted(slices_dir.glob("layer_*.stl"))
    assert len(stl_files) == 10
    assert len(result.stl_paths) == 10

    manifest = json.loads((run_dir / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["strategy"] == "contour_slice"
    assert manifest["run_id"] == result.run_id
    assert manifest["config"]["print"]["layer_height"] == pytest.approx(10.0)

    metrics = json.loads((run_dir / "metrics.json").read_text(encoding="utf-8"))
    assert metrics["summary"]["slices"] == 10
    assert metrics["joints"][0]["status"] == "completed"

    outlines = json.loads(Path(result.outlines_path).read_text(encoding="utf-8"))
    assert len(outlines["slices"]) == 10
    assert outlines["slices"][0]["area_mm2"] == pytest.approx(21 * 4.0)

    assert (runs_dir / "latest").exists() or (runs_dir / "latest.txt").exists()


def test_pipeline_without_stl(frames_file: str, tmp_path: Path):
    config = PipelineConfig(runs_dir=str(tmp_path / "runs"), export_stl=False)
    result = run_slicing_pipeline(frames_file, config=config)
    assert result.stl_paths == []
    assert result.outlines_path is None
    assert result.slice_result.slice_count == 10


def test_pipeline_extracts_nodes(branches_file: str, tmp_path: Path):
    config = PipelineConfig(runs_dir=str(tmp_path / "runs"), extract_nodes=True)
    result = run_slicing_pipeline(branches_file, job_name="fork", config=config)

    assert result.node_skeleton is not None
    assert result.node_skeleton.node_count == 1
    artifacts = Path(result.run_dir) / "artifacts"
    assert (artifacts / "trimmed_nodes.json").exists()
    assert (artifacts / "stems.json").exists()
    assert result.slice_result.joint_report(0).member_count == 3
    assert result.slice_result.slice_count > 0


def test_pipeline_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        run_slicing_pipeline(str(tmp_path / "missing.json"))


def test_rejected_parameters_leave_no_run_folder(frames_file: str, tmp_path: Path):
    runs_dir = tmp_path / "runs"
    config = PipelineConfig(runs_dir=str(runs_dir), params=PrintParameters(layer_height=0.0))
    with pytest.raises(InvalidParameterError):
        run_slicing_pipeline(frames_file, config=config)
    assert not runs_dir.exists()


def test_rejected_trim_length_leaves_no_run_folder(branches_file: str, tmp_path: Path):
    runs_dir = tmp_path / "runs"
    config = PipelineConfig(runs_dir=str(runs_dir), extract_nodes=True, trim_length_base=0)
    with pytest.raises(InvalidParameterError):
        run_slicing_pipeline(branches_file, config=config)
    assert not runs_dir.exists()


def test_same_second_runs_get_suffix(tmp_path: Path):
    stamp = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    first = prepare_run_dir(str(tmp_path), "Tree Joint", now=stamp)
    second = prepare_run_dir(str(tmp_path), "Tree Joint", now=stamp)
    assert first.run_id == "20260102_030405_tree-joint"
    assert second.run_id == "20260102_030405_tree-joint-2"
    assert first.input_dir.exists()
    assert second.artifacts_dir.exists()


def test_slice_path_layout(tmp_path: Path):
    paths = prepare_run_dir(str(tmp_path), "job")
    assert paths.slice_path(3, 12) == (
        paths.run_dir / "artifacts" / "slices" / "joint_03" / "layer_0012.stl"
    )


def test_write_json_accepts_numpy_values(tmp_path: Path):
    target = tmp_path / "out" / "values.json"
    write_json(target, {"count": np.int64(4), "origin": np.array([1.0, 2.0, 3.0])})
    payload = json.loads(target.read_text(encoding="utf-8"))
    assert payload == {"count": 4, "origin": [1.0, 2.0, 3.0]}


def test_latest_pointer_follows_newest_run(tmp_path: Path):
    first = prepare_run_dir(str(tmp_path), "first")
    second = prepare_run_dir(str(tmp_path), "second")
    point_latest(str(tmp_path), first)
    pointer = point_latest(str(tmp_path), second)
    if pointer.is_symlink():
        assert pointer.resolve() == second.run_dir.resolve()
    else:
        assert pointer.read_text(encoding="utf-8").strip() == second.run_id


def test_slugify():
    assert slugify("  Tree Joint #3 ") == "tree-joint-3"
    assert slugify("***") == "run"
