"""Keypoint marker pool driven by the live tracker."""

from typing import List

import numpy as np

from .landmarker import NUM_KEYPOINTS


class Marker:
    def __init__(self, index: int):
        self.index = index
        self.position = np.zeros(3)
        self.visible = False

    def __repr__(self):
        return f"Marker({self.index}, visible={self.visible}, position={self.position.tolist()})"


class HandPreview:
    """Fixed pool of markers, one per keypoint; created once, never reallocated."""

    def __init__(self, num_keypoints: int = NUM_KEYPOINTS):
        self.markers = [Marker(i) for i in range(num_keypoints)]
        self.active = False

    def set_active(self, active: bool):
        self.active = active

    def set_keypoint(self, index: int, visible: bool, position=None):
        marker = self.markers[index]
        marker.visible = visible
        # hidden markers keep their last position
        if position is not None and visible:
            marker.position = np.asarray(position, dtype=np.float64).copy()

    def active_keypoints(self) -> List[Marker]:
        if not self.active:
            return []
        return [m for m in self.markers if m.visible]

    def positions(self) -> np.ndarray:
        return np.stack([m.position for m in self.markers])
