"""
Shared test fixtures for joint slicer tests.
"""
import json
import sys
from pathlib import Path

import numpy as np
import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from joint_slicer.contracts import PrintParameters
from joint_slicer.frame_io import frame_tree_to_payload
from joint_slicer.geometry_kernel import Plane
from joint_slicer.path_tree import PathTree


def vertical_frames(x=0.0, y=0.0, z_start=0.0, z_end=100.0, count=11):
    """Ground-parallel frames stacked along a vertical line."""
    return [
        Plane.world_xy((x, y, z))
        for z in np.linspace(z_start, z_end, count)
    ]


def frames_along(points):
    """World-XY oriented frames at each point."""
    return [Plane.world_xy(p) for p in points]


@pytest.fixture
def scenario_params():
    """Layer 10, radius 5, 20x20mm grid at 2mm resolution."""
    return PrintParameters(
        layer_height=10.0,
        resolution=2.0,
        grid_width=20.0,
        grid_depth=20.0,
        merge_radius=5.0,
    )


@pytest.fixture
def vertical_joint():
    """One joint with a single 100mm vertical member."""
    tree = PathTree()
    tree.append_range((0, 0), vertical_frames())
    return tree


@pytest.fixture
def forked_joint():
    """One joint with two members sharing the origin: vertical and leaning."""
    tree = PathTree()
    tree.append_range((0, 0), vertical_frames(z_end=50.0, count=6))
    tree.append_range((0, 1), frames_along([(0.0, 0.0, 0.0), (5.0, 0.0, 25.0), (10.0, 0.0, 50.0)]))
    return tree


@pytest.fixture
def branch_network():
    """Flat branch list: a trunk from the ground forking into two branches."""
    tree = PathTree()
    tree.append_range((0,), vertical_frames(z_end=100.0, count=11))
    tree.append_range((1,), frames_along(
        [(0.0, 0.0, 100.0 + 10.0 * i) for i in range(12)]
    ))
    tree.append_range((2,), frames_along(
        [(10.0 * i, 0.0, 100.0 + 10.0 * i) for i in range(12)]
    ))
    return tree


@pytest.fixture
def frames_file(tmp_path: Path, vertical_joint) -> str:
    """A print job JSON with the vertical joint and scenario parameters."""
    payload = frame_tree_to_payload(vertical_joint)
    payload["print"] = {
        "layer_height": 10.0,
        "resolution": 2.0,
        "grid_width": 20.0,
        "grid_depth": 20.0,
        "merge_radius": 5.0,
    }
    path = tmp_path / "joints.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


@pytest.fixture
def branches_file(tmp_path: Path, branch_network) -> str:
    """A flat branch network JSON for node extraction."""
    payload = frame_tree_to_payload(branch_network)
    payload["print"] = {"layer_height": 5.0, "resolution": 2.0, "merge_radius": 3.0}
    path = tmp_path / "branches.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)
