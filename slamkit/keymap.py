"""The map of key frames and landmarks, with a sliding window of active ones."""

from __future__ import annotations

import logging
import threading

import numpy as np

logger = logging.getLogger(__name__)

_MIN_DISTANCE_THRESHOLD = 0.2


class Map:
    """Key frames and map points; the newest ones form the active window."""

    def __init__(self, num_active_keyframes=7):
        self.num_active_keyframes = num_active_keyframes
        self._lock = threading.RLock()
        self._landmarks: dict = {}
        self._active_landmarks: dict = {}
        self._keyframes: dict = {}
        self._active_keyframes: dict = {}
        self._current_frame = None

    def insert_keyframe(self, frame) -> None:
        """Add a key frame, retiring an old one when the window is full."""
        with self._lock:
            self._current_frame = frame
            self._keyframes[frame.keyframe_id] = frame
            self._active_keyframes[frame.keyframe_id] = frame
            if len(self._active_keyframes) > self.num_active_keyframes:
                self._remove_old_keyframe()

    def insert_map_point(self, map_point) -> None:
        with self._lock:
            self._landmarks[map_point.id] = map_point
            self._active_landmarks[map_point.id] = map_point

    def all_map_points(self) -> dict:
        with self._lock:
            return dict(self._landmarks)

    def all_keyframes(self) -> dict:
        with self._lock:
            return dict(self._keyframes)

    def active_map_points(self) -> dict:
        with self._lock:
            return dict(self._active_landmarks)

    def active_keyframes(self) -> dict:
        with self._lock:
            return dict(self._active_keyframes)

    def _remove_old_keyframe(self) -> None:
        current = self._current_frame
        if current is None:
            return
        max_dis, min_dis = 0.0, 9999.0
        max_kf_id, min_kf_id = 0, 0
        twc = current.pose.inverse()
        for kf_id, kf in self._active_keyframes.items():
            if kf is current:
                continue
            dis = float(np.linalg.norm((kf.pose @ twc).log()))
            if dis > max_dis:
                max_dis, max_kf_id = dis, kf_id
            if dis < min_dis:
                min_dis, min_kf_id = dis, kf_id

        if min_dis < _MIN_DISTANCE_THRESHOLD:
            frame_to_remove = self._keyframes[min_kf_id]
        else:
            frame_to_remove = self._keyframes[max_kf_id]

        logger.info("remove keyframe %s", frame_to_remove.keyframe_id)
        self._active_keyframes.pop(frame_to_remove.keyframe_id, None)
        for feat in frame_to_remove.features_left:
            point = feat.map_point
            if point is not None:
                point.remove_observation(feat)
        for feat in frame_to_remove.features_right:
            if feat is None:
                continue
            point = feat.map_point
            if point is not None:
                point.remove_observation(feat)
        self.clean_map()

    def clean_map(self) -> int:
        """Drop active landmarks no longer observed; returns how many were dropped."""
        with self._lock:
            unobserved = [
                key for key, point in self._active_landmarks.items() if point.observed_times == 0
            ]
            for key in unobserved:
                del self._active_landmarks[key]
        logger.info("Removed %d active landmarks", len(unobserved))
        return len(unobserved)