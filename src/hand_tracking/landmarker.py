"""Landmark estimator stage: 224x224 rotated crop -> 21 keypoints."""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .blaze_utils import mul, sample_image_affine

LANDMARK_INPUT_SIZE = 224
NUM_KEYPOINTS = 21

LANDMARK_OUTPUT = "Identity"
PRESENCE_OUTPUT = "Identity_1"
HANDEDNESS_OUTPUT = "Identity_2"


@dataclass
class HandLandmarks:
    tensor_points: np.ndarray  # (21, 3) in landmark-tensor pixels
    image_points: np.ndarray  # (21, 2) in source-image pixels
    presence: Optional[float] = None
    handedness: Optional[float] = None


class HandLandmarker:
    def __init__(self, worker, input_size: int = LANDMARK_INPUT_SIZE):
        self.worker = worker
        self.input_size = input_size

    def estimate(self, image: np.ndarray, crop_matrix: np.ndarray) -> HandLandmarks:
        """crop_matrix maps landmark-tensor pixels to image pixels."""
        tensor = sample_image_affine(image, crop_matrix, self.input_size)
        outputs = self.worker(tensor)

        landmarks = self._output(LANDMARK_OUTPUT)
        if landmarks is None:
            landmarks = outputs[0] if isinstance(outputs, (list, tuple)) else outputs

        flat = landmarks.reshape(-1).cpu().numpy().astype(np.float32)
        if flat.size < 3 * NUM_KEYPOINTS:
            raise RuntimeError(f"Landmark output has {flat.size} values, expected {3 * NUM_KEYPOINTS}")
        points = flat[:3 * NUM_KEYPOINTS].reshape(NUM_KEYPOINTS, 3)

        return HandLandmarks(
            tensor_points=points,
            image_points=mul(crop_matrix, points[:, :2]),
            presence=self._scalar(PRESENCE_OUTPUT),
            handedness=self._scalar(HANDEDNESS_OUTPUT),
        )

    def _output(self, name):
        peek = getattr(self.worker, "peek_output", None)
        return peek(name) if peek is not None else None

    def _scalar(self, name) -> Optional[float]:
        value = self._output(name)
        if value is None:
            return None
        return float(value.reshape(-1)[0].cpu())
