"""Dense monocular depth estimation along a known camera trajectory.

Every reference pixel keeps a Gaussian depth estimate. Each new image is
searched along the epipolar line with zero-mean normalised cross-correlation.
The matched pixel is triangulated, and the result is fused into the estimate.
"""

from __future__ import annotations

import logging
import math
import os
import sys

import numpy as np
from PIL import Image

from slamkit.lie import SE3

logger = logging.getLogger(__name__)

BORDER = 20
WIDTH = 640
HEIGHT = 480
FX = 481.2
FY = -480.0
CX = 319.5
CY = 239.5
NCC_WINDOW_SIZE = 3
NCC_AREA = (2 * NCC_WINDOW_SIZE + 1) ** 2
MIN_COV = 0.1
MAX_COV = 10.0
INIT_DEPTH = 3.0
INIT_COV2 = 3.0
NCC_THRESHOLD = 0.85
SEARCH_STEP = 0.7
MAX_HALF_LENGTH = 100.0

TRAJECTORY_FILE = "first_200_frames_traj_over_table_input_sequence.txt"
DEPTH_FILE = os.path.join("depthmaps", "scene_000.depth")

_OFFSETS = np.arange(-NCC_WINDOW_SIZE, NCC_WINDOW_SIZE + 1, dtype=float)
_OFF_X, _OFF_Y = (a.ravel() for a in np.meshgrid(_OFFSETS, _OFFSETS, indexing="ij"))


def px2cam(px) -> np.ndarray:
    """Pixel to a point on the normalised image plane (z = 1)."""
    u, v = np.asarray(px, dtype=float)
    return np.array([(u - CX) / FX, (v - CY) / FY, 1.0])


def cam2px(p_cam) -> np.ndarray:
    """Camera-frame point to pixel."""
    x, y, z = np.asarray(p_cam, dtype=float)
    return np.array([x * FX / z + CX, y * FY / z + CY])


def inside(pt) -> bool:
    """Whether a pixel lies inside the image, away from the border."""
    x, y = np.asarray(pt, dtype=float)
    return bool(x >= BORDER and y >= BORDER and x + BORDER < WIDTH and y + BORDER <= HEIGHT)


def _normalized(v: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(v))
    return v / norm if norm > 0 else v


def _bilinear_many(image, xs, ys) -> np.ndarray:
    img = np.asarray(image, dtype=float)
    rows, cols = img.shape[:2]
    ix = np.asarray(xs, dtype=float).astype(int)
    iy = np.asarray(ys, dtype=float).astype(int)
    xx = xs - np.floor(xs)
    yy = ys - np.floor(ys)
    ix1 = np.minimum(ix + 1, cols - 1)
    iy1 = np.minimum(iy + 1, rows - 1)
    value = (
        (1 - xx) * (1 - yy) * img[iy, ix]
        + xx * (1 - yy) * img[iy, ix1]
        + (1 - xx) * yy * img[iy1, ix]
        + xx * yy * img[iy1, ix1]
    )
    return value / 255.0


def bilinear(image, pt) -> float:
    """Bilinearly interpolated grey value at ``pt = (x, y)``, scaled to ``[0, 1]``."""
    x, y = np.asarray(pt, dtype=float)
    return float(_bilinear_many(image, np.array([x]), np.array([y]))[0])


def ncc(ref, curr, pt_ref, pt_curr) -> float:
    """Zero-mean normalised cross-correlation of the windows around two pixels."""
    rx, ry = np.asarray(pt_ref, dtype=float)
    cx, cy = np.asarray(pt_curr, dtype=float)
    ref_arr = np.asarray(ref, dtype=float)
    values_ref = ref_arr[(_OFF_Y + ry).astype(int), (_OFF_X + rx).astype(int)] / 255.0
    values_curr = _bilinear_many(curr, _OFF_X + cx, _OFF_Y + cy)
    mean_ref = values_ref.sum() / NCC_AREA
    mean_curr = values_curr.sum() / NCC_AREA
    dr = values_ref - mean_ref
    dc = values_curr - mean_curr
    numerator = float(dr @ dc)
    denominator = float(dr @ dr) * float(dc @ dc)
    return numerator / math.sqrt(denominator + 1e-10)


def epipolar_search(ref, curr, T_C_R: SE3, pt_ref, depth_mu, depth_cov):
    """Search the epipolar segment for the best match of ``pt_ref``.

    Returns ``(pt_curr, epipolar_direction)``, or ``None`` when no candidate
    reaches the correlation threshold.
    """
    f_ref = _normalized(px2cam(pt_ref))
    p_ref = f_ref * depth_mu

    px_mean_curr = cam2px(T_C_R @ p_ref)
    d_min = max(depth_mu - 3 * depth_cov, 0.1)
    d_max = depth_mu + 3 * depth_cov
    px_min_curr = cam2px(T_C_R @ (f_ref * d_min))
    px_max_curr = cam2px(T_C_R @ (f_ref * d_max))

    epipolar_line = px_max_curr - px_min_curr
    epipolar_direction = _normalized(epipolar_line)
    half_length = min(0.5 * float(np.linalg.norm(epipolar_line)), MAX_HALF_LENGTH)

    best_ncc = -1.0
    best_px_curr = None
    step = -half_length
    while step <= half_length:
        px_curr = px_mean_curr + step * epipolar_direction
        step += SEARCH_STEP
        if not inside(px_curr):
            continue
        score = ncc(ref, curr, pt_ref, px_curr)
        if score > best_ncc:
            best_ncc = score
            best_px_curr = px_curr
    if best_ncc < NCC_THRESHOLD:
        return None
    return best_px_curr, epipolar_direction


def update_depth_filter(pt_ref, pt_curr, T_C_R: SE3, epipolar_direction, depth, depth_cov2):
    """Triangulate a match and fuse it into the depth maps at ``pt_ref``.

    ``depth`` and ``depth_cov2`` are updated in place; the fused mean and
    variance are returned.
    """
    t_r_c = T_C_R.inverse()
    f_ref = _normalized(px2cam(pt_ref))
    f_curr = _normalized(px2cam(pt_curr))

    t = t_r_c.translation
    f2 = t_r_c.rotation @ f_curr
    b = np.array([t @ f_ref, t @ f2])
    a01 = -float(f_ref @ f2)
    A = np.array([[float(f_ref @ f_ref), a01], [-a01, -float(f2 @ f2)]])
    ans = np.linalg.inv(A) @ b
    xm = ans[0] * f_ref
    xn = t + ans[1] * f2
    p_esti = (xm + xn) / 2.0
    depth_estimation = float(np.linalg.norm(p_esti))

    # uncertainty from a one-pixel error along the epipolar line
    t_norm = float(np.linalg.norm(t))
    with np.errstate(invalid="ignore", divide="ignore"):
        alpha = float(np.arccos(f_ref @ t / t_norm))
        f_curr_prime = _normalized(px2cam(np.asarray(pt_curr, dtype=float) + epipolar_direction))
        beta_prime = float(np.arccos(f_curr_prime @ -t / t_norm))
        gamma = math.pi - alpha - beta_prime
        p_prime = t_norm * math.sin(beta_prime) / math.sin(gamma)
    d_cov = p_prime - depth_estimation
    d_cov2 = d_cov * d_cov

    x, y = (int(v) for v in np.asarray(pt_ref, dtype=float))
    mu = float(depth[y, x])
    sigma2 = float(depth_cov2[y, x])
    mu_fuse = (d_cov2 * mu + sigma2 * depth_estimation) / (sigma2 + d_cov2)
    sigma_fuse2 = (sigma2 * d_cov2) / (sigma2 + d_cov2)
    depth[y, x] = mu_fuse
    depth_cov2[y, x] = sigma_fuse2
    return mu_fuse, sigma_fuse2


def update(ref, curr, T_C_R: SE3, depth, depth_cov2) -> int:
    """Update every unconverged pixel of the depth maps in place.

    Returns the number of pixels that found a match and were fused.
    """
    for name, arr in (("depth", depth), ("depth_cov2", depth_cov2)):
        if np.shape(arr) != (HEIGHT, WIDTH):
            raise ValueError(f"{name} must have shape {(HEIGHT, WIDTH)}")
    region = depth_cov2[BORDER:HEIGHT - BORDER, BORDER:WIDTH - BORDER]
    active = (region >= MIN_COV) & (region <= MAX_COV)
    updated = 0
    for x_off, y_off in np.argwhere(active.T):
        x, y = int(x_off) + BORDER, int(y_off) + BORDER
        found = epipolar_search(
            ref, curr, T_C_R, (x, y), float(depth[y, x]), math.sqrt(depth_cov2[y, x])
        )
        if found is None:
            continue
        pt_curr, direction = found
        update_depth_filter((x, y), pt_curr, T_C_R, direction, depth, depth_cov2)
        updated += 1
    return updated


def evaluate_depth(depth_truth, depth_estimate):
    """Mean squared error and mean error inside the border; returns ``(squared, mean)``."""
    truth = np.asarray(depth_truth, dtype=float)
    estimate = np.asarray(depth_estimate, dtype=float)
    if truth.shape != estimate.shape:
        raise ValueError("depth maps must have the same shape")
    rows, cols = truth.shape
    error = (truth - estimate)[BORDER:rows - BORDER, BORDER:cols - BORDER]
    if error.size == 0:
        raise ValueError("depth maps are too small to evaluate")
    return float(np.mean(error * error)), float(np.mean(error))


def read_dataset_files(path):
    """Image paths, ``T_WC`` poses and the reference depth map of a dataset.

    Trajectory records are an image name followed by ``tx ty tz qx qy qz qw``.
    Depth values are stored in centimetres; missing values read as zero.
    """
    path = str(path)
    trajectory = os.path.join(path, TRAJECTORY_FILE)
    try:
        with open(trajectory, encoding="utf-8") as fin:
            tokens = fin.read().split()
    except FileNotFoundError:
        raise FileNotFoundError(f"cannot find {trajectory}") from None

    color_image_files = []
    poses = []
    for start in range(0, len(tokens) - 7, 8):
        image, *values = tokens[start:start + 8]
        tx, ty, tz, qx, qy, qz, qw = (float(v) for v in values)
        color_image_files.append(os.path.join(path, "images", image))
        poses.append(SE3.from_quaternion([qw, qx, qy, qz], [tx, ty, tz]))

    depth_path = os.path.join(path, DEPTH_FILE)
    try:
        with open(depth_path, encoding="utf-8") as fin:
            values = np.array([float(v) for v in fin.read().split()[:HEIGHT * WIDTH]])
    except FileNotFoundError:
        raise FileNotFoundError(f"cannot find {depth_path}") from None
    flat = np.zeros(HEIGHT * WIDTH)
    flat[:values.size] = values / 100.0
    return color_image_files, poses, flat.reshape(HEIGHT, WIDTH)


def _read_gray(path):
    with Image.open(path) as img:
        return np.asarray(img.convert("L"))


def main(argv=None):
    """Estimate the depth of the first image of a dataset and save it as depth.png."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print("Usage: dense_mapping path_to_test_dataset")
        return 1
    try:
        color_image_files, poses_twc, ref_depth = read_dataset_files(args[0])
    except (FileNotFoundError, ValueError):
        print("Reading image files failed!")
        return 1
    if not color_image_files:
        print("Reading image files failed!")
        return 1
    print(f"read total {len(color_image_files)} files.")

    ref = _read_gray(color_image_files[0])
    pose_ref_twc = poses_twc[0]
    depth = np.full((HEIGHT, WIDTH), INIT_DEPTH)
    depth_cov2 = np.full((HEIGHT, WIDTH), INIT_COV2)

    for index in range(1, len(color_image_files)):
        print(f"*** loop {index} ***")
        try:
            curr = _read_gray(color_image_files[index])
        except OSError:
            continue
        pose_t_c_r = poses_twc[index].inverse() @ pose_ref_twc
        update(ref, curr, pose_t_c_r, depth, depth_cov2)
        squared, mean = evaluate_depth(ref_depth, depth)
        print(f"Average squared error = {squared}, average error: {mean}")

    print("estimation returns, saving depth map ...")
    Image.fromarray(np.clip(np.rint(depth), 0, 255).astype(np.uint8)).save("depth.png")
    print("done.")
    return 0