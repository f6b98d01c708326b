"""
Geometry kernel for joint slicing.

Provides the plain value types the slicer works with (Plane, SkeletonCurve)
and the narrow set of operations it needs: curve-plane intersection, plane
translation, point distance, perpendicular frames and interpolated curves.
Built on numpy for vector math and scipy for splines and root finding.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.interpolate import splev, splprep
from scipy.optimize import brentq

from joint_slicer.errors import DegenerateGeometryError

INTERSECTION_TOLERANCE = 0.01
_EPS = 1e-12


@dataclass(frozen=True, eq=False)
class Plane:
    """An oriented plane: origin plus orthonormal X, Y and normal axes.

    Also used as the local coordinate frame of a branch member.
    """
    origin: np.ndarray   # (3,)
    x_axis: np.ndarray   # (3,) unit
    y_axis: np.ndarray   # (3,) unit
    normal: np.ndarray   # (3,) unit, x_axis cross y_axis

    @classmethod
    def from_axes(
        cls,
        origin: Sequence[float],
        x_axis: Sequence[float],
        y_axis: Sequence[float],
    ) -> "Plane":
        """Build a plane, orthonormalising Y against X."""
        o = _as_point(origin)
        x = _as_point(x_axis)
        y = _as_point(y_axis)
        x_len = float(np.linalg.norm(x))
        if x_len < _EPS:
            raise DegenerateGeometryError("Plane X axis has zero length")
        x = x / x_len
        y = y - float(y @ x) * x
        y_len = float(np.linalg.norm(y))
        if y_len < _EPS:
            raise DegenerateGeometryError("Plane Y axis is parallel to X axis")
        y = y / y_len
        n = np.cross(x, y)
        return cls(origin=o, x_axis=x, y_axis=y, normal=n / np.linalg.norm(n))

    @classmethod
    def world_xy(cls, origin: Sequence[float] = (0.0, 0.0, 0.0)) -> "Plane":
        return cls.from_axes(origin, (1.0, 0.0, 0.0), (0.0, 1.0, 0.0))

    def signed_distance(self, points: np.ndarray) -> np.ndarray:
        """Signed distance of (N, 3) points along the plane normal."""
        return (np.asarray(points, dtype=float) - self.origin) @ self.normal

    def to_local(self, point: np.ndarray) -> Tuple[float, float]:
        """Project a 3D point into this plane's (u, v) coordinates."""
        d = np.asarray(point, dtype=float) - self.origin
        return (float(d @ self.x_axis), float(d @ self.y_axis))

    def to_world(self, u: float, v: float) -> np.ndarray:
        return self.origin + u * self.x_axis + v * self.y_axis


# Frames are planes; the alias keeps call sites readable.
Frame = Plane


@dataclass(frozen=True, eq=False)
class SkeletonCurve:
    """Interpolating B-spline through an ordered point list, domain [0, 1].

    Parameterised by chord length. Immutable once built.
    """
    control_points: np.ndarray       # (N, 3) interpolated points
    tck: tuple = field(repr=False)   # scipy spline representation
    degree: int = 3

    @property
    def domain(self) -> Tuple[float, float]:
        return (0.0, 1.0)

    def point_at(self, t):
        """Evaluate at a scalar or array of parameters."""
        values = np.array(splev(np.clip(t, 0.0, 1.0), self.tck), dtype=float)
        return values.T

    def tangent_at(self, t: float) -> np.ndarray:
        """Unit tangent at parameter *t*."""
        d = np.array(splev(float(np.clip(t, 0.0, 1.0)), self.tck, der=1), dtype=float)
        length = float(np.linalg.norm(d))
        if not np.isfinite(length) or length < _EPS:
            raise DegenerateGeometryError(f"Curve has no tangent at t={t}")
        return d / length

    @property
    def start(self) -> np.ndarray:
        return self.control_points[0].copy()

    def sample_parameters(self, samples_per_span: int = 32) -> np.ndarray:
        spans = max(1, len(self.control_points) - 1)
        count = max(64, samples_per_span * spans) + 1
        return np.linspace(0.0, 1.0, count)

    def length(self, samples: int = 512) -> float:
        pts = self.point_at(np.linspace(0.0, 1.0, samples))
        return float(np.sum(np.linalg.norm(np.diff(pts, axis=0), axis=1)))


# ─── Kernel operations ───────────────────────────────────────────────────────

def interpolate_curve(points: Sequence[Sequence[float]], degree: int = 3) -> SkeletonCurve:
    """Build an interpolated curve through *points*.

    Consecutive duplicate points are dropped. The spline degree is lowered
    to len(points) - 1 when there are too few points for *degree*.

    Raises:
        DegenerateGeometryError: fewer than two distinct points or
            non-finite coordinates.
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 3)
    if not np.all(np.isfinite(pts)):
        raise DegenerateGeometryError("Curve points contain non-finite values")

    kept = [pts[0]] if len(pts) else []
    for p in pts[1:]:
        if np.linalg.norm(p - kept[-1]) > _EPS:
            kept.append(p)
    if len(kept) < 2:
        raise DegenerateGeometryError(
            f"Curve needs two distinct points, got {len(kept)}"
        )

    pts = np.array(kept)
    k = int(min(degree, len(pts) - 1))
    chords = np.linalg.norm(np.diff(pts, axis=0), axis=1)
    u = np.concatenate([[0.0], np.cumsum(chords)])
    u /= u[-1]
    try:
        tck, _ = splprep(pts.T, u=u, s=0, k=k)
    except (ValueError, TypeError) as exc:
        raise DegenerateGeometryError(f"Curve interpolation failed: {exc}") from exc
    return SkeletonCurve(control_points=pts, tck=tck, degree=k)


def intersect_curve_plane(
    curve: SkeletonCurve,
    plane: Plane,
    tolerance: float = INTERSECTION_TOLERANCE,
) -> List[np.ndarray]:
    """Points where *curve* crosses *plane*.

    The signed distance is sampled densely along the curve. Sign changes are
    refined with Brent's method; runs of samples lying within *tolerance* of
    the plane collapse to a single point, so an endpoint resting on the
    plane (within tolerance) counts as a crossing. May return an empty list.
    """
    ts = curve.sample_parameters()
    d = plane.signed_distance(curve.point_at(ts))
    if not np.all(np.isfinite(d)):
        raise DegenerateGeometryError("Curve/plane distance is not finite")

    def signed(t: float) -> float:
        return float(plane.signed_distance(curve.point_at(t)))

    candidates: List[float] = []
    near = np.abs(d) <= tolerance
    candidates.extend(float(t) for t in ts[near])

    crossing = np.nonzero(d[:-1] * d[1:] < 0.0)[0]
    for i in crossing:
        try:
            candidates.append(brentq(signed, ts[i], ts[i + 1], xtol=1e-12))
        except ValueError:
            # Bracket lost its sign change under re-evaluation
            candidates.append(float(ts[i] if abs(d[i]) <= abs(d[i + 1]) else ts[i + 1]))

    if not candidates:
        return []

    # Merge candidates from adjacent samples into one crossing each
    step = float(ts[1] - ts[0])
    candidates.sort()
    clusters: List[List[float]] = [[candidates[0]]]
    for t in candidates[1:]:
        if t - clusters[-1][-1] <= step * 1.5:
            clusters[-1].append(t)
        else:
            clusters.append([t])

    points = []
    for cluster in clusters:
        best = min(cluster, key=lambda t: abs(signed(t)))
        points.append(curve.point_at(best))
    return points


def translate_plane(plane: Plane, vector: Sequence[float]) -> Plane:
    """Return a copy of *plane* moved by *vector*; axes are unchanged."""
    return Plane(
        origin=plane.origin + _as_point(vector),
        x_axis=plane.x_axis,
        y_axis=plane.y_axis,
        normal=plane.normal,
    )


def distance(point_a: Sequence[float], point_b: Sequence[float]) -> float:
    return float(np.linalg.norm(np.asarray(point_a, dtype=float) - np.asarray(point_b, dtype=float)))


def perpendicular_frame_at(curve: SkeletonCurve, t: float) -> Plane:
    """Frame at *t* whose normal follows the curve tangent."""
    normal = curve.tangent_at(t)
    u, v = _make_2d_basis(normal)
    return Plane(origin=curve.point_at(t), x_axis=u, y_axis=v, normal=np.cross(u, v))


# ─── Internal helpers ────────────────────────────────────────────────────────

def _as_point(values: Optional[Sequence[float]]) -> np.ndarray:
    arr = np.asarray(values, dtype=float).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"Expected 3 coordinates, got shape {arr.shape}")
    return arr


def _make_2d_basis(normal: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Build an orthonormal (u, v) basis perpendicular to normal."""
    n = normal / np.linalg.norm(normal)
    if abs(n[2]) < 0.9:
        ref = np.array([0.0, 0.0, 1.0])
    else:
        ref = np.array([1.0, 0.0, 0.0])
    u = np.cross(n, ref)
    u /= np.linalg.norm(u)
    v = np.cross(n, u)
    v /= np.linalg.norm(v)
    return u, v
