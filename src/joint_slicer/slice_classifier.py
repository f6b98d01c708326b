"""
Grid point classification against a layer's intersection points.

A grid point belongs to the printed cross-section when at least one
intersection point lies strictly closer than the merge radius. The footprint
is the union of those disks: a point covered by several disks is still kept
only once, and grid order is preserved.
"""
import logging
from typing import Sequence

import numpy as np
from scipy.spatial import KDTree

from joint_slicer.grid_sampler import flatten_grid

logger = logging.getLogger(__name__)

CLASSIFIERS = ("brute", "kdtree")


def classify_mask(
    grid_points: np.ndarray,
    intersection_points: Sequence[np.ndarray],
    merge_radius: float,
    method: str = "brute",
) -> np.ndarray:
    """Boolean acceptance mask over the flattened grid."""
    grid = flatten_grid(grid_points)
    if len(grid) == 0 or len(intersection_points) == 0:
        return np.zeros(len(grid), dtype=bool)

    centres = np.asarray(intersection_points, dtype=float).reshape(-1, 3)

    if method == "brute":
        # (N, M) distance table; any() stops counting at the first disk hit
        dists = np.linalg.norm(grid[:, None, :] - centres[None, :, :], axis=2)
        return np.any(dists < merge_radius, axis=1)

    if method == "kdtree":
        nearest, _ = KDTree(centres).query(grid, k=1)
        return nearest < merge_radius

    raise ValueError(f"Unknown classifier: {method!r} (expected one of {CLASSIFIERS})")


def classify(
    grid_points: np.ndarray,
    intersection_points: Sequence[np.ndarray],
    merge_radius: float,
    method: str = "brute",
) -> np.ndarray:
    """Accepted grid points as an (M, 3) array, in grid order.

    Returns an empty (0, 3) array when there are no intersections or the
    grid is empty.
    """
    grid = flatten_grid(grid_points)
    mask = classify_mask(grid, intersection_points, merge_radius, method)
    accepted = grid[mask]
    logger.debug(
        "Classified %d/%d grid points against %d intersections",
        len(accepted), len(grid), len(intersection_points),
    )
    return accepted
