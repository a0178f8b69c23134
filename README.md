# slamkit

Building blocks for visual SLAM on top of NumPy and SciPy.

| Module | What it holds |
| --- | --- |
| `slamkit.lie` | `SO3` and `SE3` with `exp`, `log`, `hat`, `vee`, `inverse`, composition and point transforms with `@`; `SE3.adjoint`, `matrix`, `matrix3x4`; helpers `quaternion_to_matrix`, `quaternion_from_matrix`, `angle_axis_to_matrix`, `euler_angles_zyx` |
| `slamkit.algorithm` | `triangulation` (linear SVD triangulation) and `to_vec2` |
| `slamkit.camera` | `Camera`, a pinhole camera converting between world, camera and pixel coordinates |
| `slamkit.curve_fitting` | `model`, `generate_data`, `gauss_newton`, `levenberg_marquardt` and `FitResult` for fitting `y = exp(a x² + b x + c)` |
| `slamkit.entities` | `Feature`, `Frame` and `MapPoint` |
| `slamkit.keymap` | `Map`, key frames and landmarks with a sliding window of active key frames |
| `slamkit.pose_graph` | `Vertex`, `Edge`, `PoseGraph`: read, optimise and write SE(3) pose graphs |
| `slamkit.config` | `Config`, process-wide settings loaded from a YAML file |
| `slamkit.dataset` | `Dataset` and `parse_calibration` for KITTI-style stereo sequences |
| `slamkit.dense_mapping` | dense monocular depth estimation by epipolar search, NCC and Gaussian depth fusion |
| `slamkit.trajectory` | `parse_trajectory`, `read_trajectory` and `rmse` |
| `slamkit.pointcloud` | `undistort`, `stereo_point_cloud`, `read_poses`, `rgbd_point_cloud`, `statistical_outlier_removal`, `voxel_filter` |

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Conventions

- Quaternions are `(w, x, y, z)`, real part first. File formats that store
  `qx qy qz qw` are reordered when read.
- SE(3) tangent vectors are ordered translation first, rotation second:
  `xi = (rho, phi)`.
- Poses compose and act on points with `@`; an `(N, 3)` array of points is
  transformed row by row.

## Lie groups and cameras

```python
import numpy as np
from slamkit.lie import SE3, SO3, angle_axis_to_matrix
from slamkit.camera import Camera

# 90 degrees about Z, then 1 along X.
R = SO3(angle_axis_to_matrix(np.pi / 2, [0.0, 0.0, 1.0]))
T = SE3(R, [1.0, 0.0, 0.0])

xi = T.log()
assert np.allclose(SE3.exp(xi).matrix(), T.matrix())
assert np.allclose(SE3.vee(SE3.hat(xi)), xi)

# Left-multiplicative update with a small perturbation.
T_updated = SE3.exp([1e-4, 0, 0, 0, 0, 0]) @ T

camera = Camera(fx=718.856, fy=718.856, cx=607.19, cy=185.22, baseline=0.537)
pixel = camera.world2pixel([1.0, 2.0, 10.0], T)
back = camera.pixel2world(pixel, T, depth=camera.world2camera([1.0, 2.0, 10.0], T)[2])
```

`SO3(matrix)` raises `ValueError` if the matrix is not a proper rotation.

## Triangulation

`triangulation(poses, points)` takes camera-from-world poses and the matching
observations on each camera's normalised image plane. It returns the world
point, or `None` when the solution is judged unreliable. Mismatched lengths or
fewer than two poses raise `ValueError`.

## Curve fitting

```python
from slamkit.curve_fitting import generate_data, gauss_newton, levenberg_marquardt

x, y = generate_data(1.0, 2.0, 1.0, n=100, sigma=1.0, seed=0)
result = gauss_newton(x, y, initial=(2.0, -1.0, 5.0))
print(result.params, result.cost, result.iterations)
result = levenberg_marquardt(x, y)
```

Gauss-Newton stops as soon as the cost stops decreasing or the update is NaN.

## Map entities

`Frame.create()` and `MapPoint.create()` hand out increasing ids, and
`Frame.set_keyframe()` assigns the next key-frame id. Features refer to their
frame and map point weakly. `MapPoint.add_observation` and
`remove_observation` keep `observed_times` up to date.

`Map(num_active_keyframes=7)` keeps every key frame and map point. Once the
active window is too large, `insert_keyframe` retires one key frame. If some
key frame lies within 0.2 of the current one (the norm of the relative pose's
`log`), the closest is retired; otherwise the farthest is. Its observations
are removed, and `clean_map()` then drops active landmarks that are no longer
observed and returns how many it dropped.

## Pose graphs

`PoseGraph.read(stream)` parses `VERTEX_SE3:QUAT` and `EDGE_SE3:QUAT` records,
each pose written as `tx ty tz qx qy qz qw`. An edge may carry the upper
triangle of its 6x6 information matrix. Other records are ignored, and
vertex 0 is fixed. `optimize(iterations)` runs Levenberg-Marquardt over the
free vertices and returns the final `chi2()`. `write(stream)` saves the graph
in the same format.

## Configuration and datasets

```python
from slamkit.config import Config
from slamkit.dataset import Dataset

Config.set_parameter_file("config/default.yaml")
dataset = Dataset(Config.get("dataset_dir"))
dataset.init()                  # reads calib.txt: four cameras, intrinsics halved
left_camera = dataset.camera(0)
frame = dataset.next_frame()    # image_0/ and image_1/ at half resolution, or None at the end
```

A leading `%YAML` directive line and `!!opencv-matrix` entries (`rows`,
`cols`, `data`) are accepted in settings files. A missing file raises
`FileNotFoundError`. Unparsable content raises `slamkit.config.ConfigError`.
An unknown key raises `KeyError`, and `get` before any file is loaded raises
`RuntimeError`.

## Point clouds

- `undistort` removes radial-tangential distortion from a grey image.
- `stereo_point_cloud` builds `(x, y, z, intensity)` points from a left image
  and its disparity map, keeping disparities in `(0, 96)`.
- `read_poses` reads `count` poses of `tx ty tz qx qy qz qw`.
- `rgbd_point_cloud` builds world `(x, y, z, r, g, b)` points from a colour
  image, a depth image and a camera-to-world pose, skipping zero depth.
- `statistical_outlier_removal` and `voxel_filter` thin the result.

## Command-line tools

Fit the curve to generated samples and print the estimate. The options are
`--method gn|lm`, `--samples`, `--sigma` and `--seed`:

```
slamkit-curve-fit --method lm --seed 1
```

Optimise a pose graph and save it. The output goes to `result_lie.g2o` unless
`--output` is given, and `--iterations` defaults to 30:

```
slamkit-pose-graph sphere.g2o
```

Compare two trajectories and print `RMSE = ...`. The paths default to
`./example/groundtruth.txt` and `./example/estimated.txt`:

```
slamkit-trajectory-error groundtruth.txt estimated.txt
```

Estimate the depth of the first image of a dataset:

```
slamkit-dense-mapping path/to/dataset
```

The dataset directory must hold
`first_200_frames_traj_over_table_input_sequence.txt`, the `images/` it names
and `depthmaps/scene_000.depth`. Images must be 640x480 and match the fixed
intrinsics in `slamkit.dense_mapping`. After each image the tool prints the
error against the reference depth. At the end it writes `depth.png`, with the
depth values rounded and clipped to 0–255. This tool takes exactly one
argument and has no `--help`.

## What the package does not do

- There is no complete visual odometry loop. Nothing detects or tracks
  features, triangulates new landmarks frame by frame, or runs a background
  bundle-adjustment thread. `Frame`, `MapPoint`, `Map`, `Camera`,
  `triangulation` and `Dataset` are the parts such a loop would be built from.
- Nothing is displayed. There are no trajectory, point-cloud or image viewers,
  and no plots.
- Stereo disparity is not computed; `stereo_point_cloud` expects it as input.
- Point clouds are returned as NumPy arrays. They are not written to PCD,
  occupancy octree or mesh files.
- There is no bag-of-words vocabulary or loop-closure detection.