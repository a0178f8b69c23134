"""Geometric algorithms shared by the odometry pipeline."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from slamkit.lie import SE3


def triangulation(poses: Sequence[SE3], points) -> np.ndarray | None:
    """Linear SVD triangulation of one point seen from several poses.

    ``points`` are the observations on each camera's normalised image plane.
    Returns the point in the world frame, or ``None`` when the smallest
    singular value is not small against the next one (an unreliable solution).
    """
    if len(poses) != len(points):
        raise ValueError("need exactly one observation per pose")
    if len(poses) < 2:
        raise ValueError("triangulation needs at least two poses")
    rows = []
    for pose, point in zip(poses, points):
        m = pose.matrix3x4()
        rows.append(point[0] * m[2] - m[0])
        rows.append(point[1] * m[2] - m[1])
    _, singular, vh = np.linalg.svd(np.array(rows), full_matrices=False)
    v = vh[-1]
    pt_world = (v / v[3])[:3]
    if singular[3] / singular[2] < 1e-2:
        return pt_world
    return None


def to_vec2(point) -> np.ndarray:
    """2-vector from a point with ``x``/``y`` attributes or a pair of numbers."""
    if hasattr(point, "x") and hasattr(point, "y"):
        return np.array([float(point.x), float(point.y)])
    x, y = point
    return np.array([float(x), float(y)])