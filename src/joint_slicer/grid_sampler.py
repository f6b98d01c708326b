"""Regular sample grids on a cutting plane."""
import math

import numpy as np

from joint_slicer.geometry_kernel import Plane


def grid_shape(width: float, depth: float, resolution: float):
    """(num_x, num_y) sample counts for a footprint; zero when an extent < resolution."""
    return (int(math.floor(width / resolution)), int(math.floor(depth / resolution)))


def sample_grid(plane: Plane, width: float, depth: float, resolution: float) -> np.ndarray:
    """Sample a (num_x, num_y, 3) point grid centred on the plane origin.

    Point (x, y) sits at origin + X*(-width/2 + x*res) + Y*(-depth/2 + y*res).
    Flattening in C order yields the row-major (x, y) sample order.
    """
    num_x, num_y = grid_shape(width, depth, resolution)
    us = -width / 2.0 + np.arange(num_x, dtype=float) * resolution
    vs = -depth / 2.0 + np.arange(num_y, dtype=float) * resolution
    uu, vv = np.meshgrid(us, vs, indexing="ij")  # (num_x, num_y)
    return (
        plane.origin[None, None, :]
        + uu[:, :, None] * plane.x_axis[None, None, :]
        + vv[:, :, None] * plane.y_axis[None, None, :]
    )


def flatten_grid(grid: np.ndarray) -> np.ndarray:
    return np.asarray(grid, dtype=float).reshape(-1, 3)
