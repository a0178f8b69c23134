"""Reading stereo sequences laid out as a KITTI odometry dataset."""

from __future__ import annotations

import logging
import os

import numpy as np
from PIL import Image

from slamkit.camera import Camera
from slamkit.entities import Frame
from slamkit.lie import SE3, SO3

logger = logging.getLogger(__name__)

_NUM_CAMERAS = 4


def parse_calibration(stream) -> list[Camera]:
    """Cameras from the first four projection-matrix records of a calibration file.

    Each record is a name followed by the 12 entries of a 3x4 projection
    matrix. The images are used at half resolution, so the intrinsics are
    halved; the translation is expressed in metres via ``K^-1``.
    """
    cameras = []
    for line in stream:
        tokens = line.split()
        if not tokens:
            continue
        if len(tokens) < 13:
            raise ValueError(f"calibration record {tokens[0]!r} needs 12 values")
        projection = np.array([float(v) for v in tokens[1:13]]).reshape(3, 4)
        k = projection[:, :3]
        t = np.linalg.inv(k) @ projection[:, 3]
        k = k * 0.5
        cameras.append(
            Camera(k[0, 0], k[1, 1], k[0, 2], k[1, 2], float(np.linalg.norm(t)), SE3(SO3(), t))
        )
        logger.info("Camera %d extrinsics: %s", len(cameras) - 1, t)
        if len(cameras) == _NUM_CAMERAS:
            break
    if len(cameras) < _NUM_CAMERAS:
        raise ValueError(f"calibration holds {len(cameras)} cameras, {_NUM_CAMERAS} expected")
    return cameras


def _load_half_gray(path):
    with Image.open(path) as img:
        arr = np.asarray(img.convert("L"))
    rows = int(round(arr.shape[0] * 0.5))
    cols = int(round(arr.shape[1] * 0.5))
    return np.ascontiguousarray(arr[::2, ::2][:rows, :cols])


class Dataset:
    """A stereo sequence: calibration plus numbered left and right images."""

    def __init__(self, dataset_path):
        self.dataset_path = str(dataset_path)
        self.current_image_index = 0
        self._cameras: list[Camera] = []

    def init(self) -> None:
        """Read the camera calibration and rewind to the first image."""
        calib = os.path.join(self.dataset_path, "calib.txt")
        try:
            with open(calib, encoding="utf-8") as fin:
                self._cameras = parse_calibration(fin)
        except FileNotFoundError:
            logger.error("cannot find %s!", calib)
            raise FileNotFoundError(f"cannot find {calib}!") from None
        self.current_image_index = 0

    def _image_path(self, camera: int) -> str:
        return os.path.join(
            self.dataset_path, f"image_{camera}", f"{self.current_image_index:06d}.png"
        )

    def next_frame(self):
        """The next stereo frame at half resolution, or ``None`` at the end."""
        try:
            left = _load_half_gray(self._image_path(0))
            right = _load_half_gray(self._image_path(1))
        except OSError:
            logger.warning("cannot find images at index %d", self.current_image_index)
            return None
        frame = Frame.create()
        frame.left_img = left
        frame.right_img = right
        self.current_image_index += 1
        return frame

    def camera(self, camera_id: int) -> Camera:
        """The camera with the given index."""
        if not 0 <= camera_id < len(self._cameras):
            raise IndexError(f"no camera {camera_id}")
        return self._cameras[camera_id]