"""Building and filtering point clouds from stereo and RGB-D images."""

from __future__ import annotations

import numpy as np
from scipy.spatial import cKDTree

from slamkit.lie import SE3

MAX_DISPARITY = 96.0


def undistort(image, k1, k2, p1, p2, fx, fy, cx, cy) -> np.ndarray:
    """Remove radial-tangential distortion from a grey image by nearest-neighbour lookup.

    Pixels whose distorted position falls outside the image become 0.
    """
    img = np.asarray(image)
    if img.ndim != 2:
        raise ValueError("image must be a single-channel 2D array")
    rows, cols = img.shape
    v, u = np.mgrid[0:rows, 0:cols].astype(float)
    x = (u - cx) / fx
    y = (v - cy) / fy
    r2 = x * x + y * y
    radial = 1 + k1 * r2 + k2 * r2 * r2
    x_d = x * radial + 2 * p1 * x * y + p2 * (r2 + 2 * x * x)
    y_d = y * radial + p1 * (r2 + 2 * y * y) + 2 * p2 * x * y
    u_d = fx * x_d + cx
    v_d = fy * y_d + cy
    valid = (u_d >= 0) & (v_d >= 0) & (u_d < cols) & (v_d < rows)
    out = np.zeros_like(img)
    out[valid] = img[v_d[valid].astype(int), u_d[valid].astype(int)]
    return out


def stereo_point_cloud(left, disparity, fx, fy, cx, cy, baseline) -> np.ndarray:
    """Points ``(x, y, z, intensity)`` from a grey left image and its disparity map.

    Pixels with disparity outside ``(0, 96)`` are skipped; intensity is scaled to ``[0, 1]``.
    """
    grey = np.asarray(left, dtype=float)
    disp = np.asarray(disparity, dtype=float)
    if grey.ndim != 2 or grey.shape != disp.shape:
        raise ValueError("left image and disparity must be 2D arrays of the same shape")
    vs, us = np.nonzero((disp > 0.0) & (disp < MAX_DISPARITY))
    d = disp[vs, us]
    depth = fx * baseline / d
    points = np.empty((vs.size, 4))
    points[:, 0] = (us - cx) / fx * depth
    points[:, 1] = (vs - cy) / fy * depth
    points[:, 2] = depth
    points[:, 3] = grey[vs, us] / 255.0
    return points


def read_poses(stream, count) -> list[SE3]:
    """``count`` poses of seven numbers ``tx ty tz qx qy qz qw`` each."""
    if count < 0:
        raise ValueError("count must not be negative")
    tokens = stream.read().split()
    if len(tokens) < 7 * count:
        raise ValueError(f"expected {count} poses, found values for {len(tokens) // 7}")
    poses = []
    for start in range(0, 7 * count, 7):
        tx, ty, tz, qx, qy, qz, qw = (float(v) for v in tokens[start:start + 7])
        poses.append(SE3.from_quaternion([qw, qx, qy, qz], [tx, ty, tz]))
    return poses


def rgbd_point_cloud(color, depth, pose: SE3, fx, fy, cx, cy, depth_scale) -> np.ndarray:
    """World points ``(x, y, z, r, g, b)`` from an RGB image and its depth image.

    ``pose`` maps camera coordinates to world coordinates. Zero depth means
    no measurement and is skipped.
    """
    rgb = np.asarray(color)
    raw = np.asarray(depth)
    if rgb.ndim != 3 or rgb.shape[2] < 3:
        raise ValueError("color must be an H x W x 3 array")
    if raw.shape != rgb.shape[:2]:
        raise ValueError("depth must have the same height and width as color")
    vs, us = np.nonzero(raw != 0)
    z = raw[vs, us].astype(float) / depth_scale
    camera = np.column_stack([(us - cx) * z / fx, (vs - cy) * z / fy, z])
    world = pose @ camera if camera.size else np.empty((0, 3))
    return np.hstack([world, rgb[vs, us, :3].astype(float)])


def statistical_outlier_removal(points, mean_k=50, stddev_mul=1.0) -> np.ndarray:
    """Drop points whose mean distance to their ``mean_k`` nearest neighbours is too large.

    The limit is the mean of those distances over all points plus
    ``stddev_mul`` standard deviations. Only the first three columns are
    used as coordinates; all columns are kept.
    """
    if mean_k < 1:
        raise ValueError("mean_k must be at least 1")
    pts = np.asarray(points, dtype=float)
    if pts.ndim != 2 or pts.shape[1] < 3:
        raise ValueError("points must be an N x 3 (or wider) array")
    n = pts.shape[0]
    if n < 3:
        return pts.copy()
    k = min(mean_k, n - 1)
    dists, _ = cKDTree(pts[:, :3]).query(pts[:, :3], k=k + 1)
    mean_dist = dists[:, 1:].mean(axis=1)
    threshold = mean_dist.mean() + stddev_mul * mean_dist.std(ddof=1)
    return pts[mean_dist <= threshold]


def voxel_filter(points, resolution) -> np.ndarray:
    """Replace the points in each cubic voxel by their centroid (all columns averaged)."""
    if resolution <= 0:
        raise ValueError("resolution must be positive")
    pts = np.asarray(points, dtype=float)
    if pts.ndim != 2 or pts.shape[1] < 3:
        raise ValueError("points must be an N x 3 (or wider) array")
    if pts.shape[0] == 0:
        return pts.copy()
    cells = np.floor(pts[:, :3] / resolution).astype(np.int64)
    keys, inverse = np.unique(cells, axis=0, return_inverse=True)
    inverse = np.asarray(inverse).reshape(-1)
    sums = np.zeros((len(keys), pts.shape[1]))
    np.add.at(sums, inverse, pts)
    counts = np.bincount(inverse, minlength=len(keys))
    return sums / counts[:, None]