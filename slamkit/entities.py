"""Frames, 2D features and 3D map points of the visual odometry map."""

from __future__ import annotations

import itertools
import threading
import weakref

import numpy as np

from slamkit.algorithm import to_vec2
from slamkit.lie import SE3


class Feature:
    """A 2D keypoint in one image; linked to a map point once triangulated."""

    def __init__(self, frame=None, position=(0.0, 0.0)):
        self._frame = weakref.ref(frame) if frame is not None else None
        self.position = to_vec2(position)
        self._map_point = None
        self.is_outlier = False
        self.is_on_left_image = True

    @property
    def frame(self):
        """The frame holding this feature, or ``None`` once it is gone."""
        return self._frame() if self._frame is not None else None

    @property
    def map_point(self):
        """The associated map point, or ``None``."""
        return self._map_point() if self._map_point is not None else None

    @map_point.setter
    def map_point(self, value):
        self._map_point = weakref.ref(value) if value is not None else None

    def __repr__(self) -> str:
        return f"Feature(position={self.position.tolist()}, left={self.is_on_left_image})"


class Frame:
    """A stereo frame; every frame gets an id, key frames also a key-frame id."""

    _frame_ids = itertools.count()
    _keyframe_ids = itertools.count()

    def __init__(self, id=0, time_stamp=0.0, pose=None, left_img=None, right_img=None):
        self.id = id
        self.keyframe_id = 0
        self.is_keyframe = False
        self.time_stamp = time_stamp
        self._pose = pose if pose is not None else SE3()
        self._pose_lock = threading.Lock()
        self.left_img = left_img
        self.right_img = right_img
        self.features_left: list[Feature] = []
        self.features_right: list[Feature | None] = []

    @property
    def pose(self) -> SE3:
        """Camera-from-world pose ``T_cw``."""
        with self._pose_lock:
            return self._pose

    @pose.setter
    def pose(self, value: SE3) -> None:
        with self._pose_lock:
            self._pose = value

    @classmethod
    def create(cls) -> "Frame":
        """A new frame with the next frame id."""
        frame = cls()
        frame.id = next(Frame._frame_ids)
        return frame

    def set_keyframe(self) -> None:
        """Mark as key frame and assign the next key-frame id."""
        self.is_keyframe = True
        self.keyframe_id = next(Frame._keyframe_ids)

    def __repr__(self) -> str:
        return f"Frame(id={self.id}, keyframe_id={self.keyframe_id}, is_keyframe={self.is_keyframe})"


class MapPoint:
    """A triangulated 3D landmark and the features observing it."""

    _ids = itertools.count()

    def __init__(self, id=0, position=None):
        self.id = id
        self.is_outlier = False
        self._pos = np.zeros(3) if position is None else np.asarray(position, dtype=float).copy()
        self._lock = threading.Lock()
        self.observed_times = 0
        self._observations: list[weakref.ref] = []

    @property
    def pos(self) -> np.ndarray:
        """Position in the world frame."""
        with self._lock:
            return self._pos.copy()

    @pos.setter
    def pos(self, value) -> None:
        with self._lock:
            self._pos = np.asarray(value, dtype=float).copy()

    @classmethod
    def create(cls) -> "MapPoint":
        """A new map point with the next id."""
        point = cls()
        point.id = next(MapPoint._ids)
        return point

    def add_observation(self, feature: Feature) -> None:
        with self._lock:
            self._observations.append(weakref.ref(feature))
            self.observed_times += 1

    def remove_observation(self, feature: Feature) -> None:
        """Drop the first observation by ``feature`` and unlink it from this point."""
        with self._lock:
            for index, ref in enumerate(self._observations):
                if ref() is feature:
                    del self._observations[index]
                    feature.map_point = None
                    self.observed_times -= 1
                    break

    def observations(self) -> list[Feature]:
        """Features still alive that observe this point."""
        with self._lock:
            return [f for f in (ref() for ref in self._observations) if f is not None]

    def __repr__(self) -> str:
        return f"MapPoint(id={self.id}, pos={self._pos.tolist()}, observed_times={self.observed_times})"