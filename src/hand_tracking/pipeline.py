"""
Two-stage hand tracking pipeline.
- Stage 1: palm detector (192x192, 2016 anchors), best anchor only
- Stage 2: landmark estimator (224x224 rotated crop, 21 keypoints)
Landmarks come back in source-image pixels.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import cv2
import numpy as np
import torch

from shared.ort_wrapper import OrtWrapper

from .blaze_utils import detection_to_crop, generate_anchors, load_anchors, mul
from .detector import DETECTOR_INPUT_SIZE, NUM_ANCHORS, PalmDetection, PalmDetector
from .landmarker import LANDMARK_INPUT_SIZE, HandLandmarker, HandLandmarks

ROOT = Path(__file__).resolve().parents[2]
MODEL_DIR = ROOT / "assets" / "models"

DETECTOR_MODEL = "hand_detector.onnx"
LANDMARK_MODEL = "hand_landmark.onnx"
ANCHORS_CSV = "anchors.csv"

# Hand connections (21 keypoints) - MediaPipe format
HAND_CONNECTIONS = [
    (0, 1), (1, 2), (2, 3), (3, 4),  # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),  # Index
    (0, 9), (9, 10), (10, 11), (11, 12),  # Middle
    (0, 13), (13, 14), (14, 15), (15, 16),  # Ring
    (0, 17), (17, 18), (18, 19), (19, 20),  # Pinky
    (5, 9), (9, 13), (13, 17),  # Palm
]


@dataclass
class HandResult:
    detection: PalmDetection
    landmarks: HandLandmarks
    crop_matrix: np.ndarray  # landmark tensor -> image pixels

    @property
    def score(self) -> float:
        return self.detection.score

    @property
    def points(self) -> np.ndarray:
        return self.landmarks.image_points


def draw_landmarks(frame: np.ndarray, landmarks: np.ndarray, color=(0, 255, 0)):
    """Draw hand landmarks on frame."""
    for pt in landmarks:
        x, y = int(pt[0]), int(pt[1])
        cv2.circle(frame, (x, y), 4, color, -1)
    for i, j in HAND_CONNECTIONS:
        if i < len(landmarks) and j < len(landmarks):
            pt1 = (int(landmarks[i, 0]), int(landmarks[i, 1]))
            pt2 = (int(landmarks[j, 0]), int(landmarks[j, 1]))
            cv2.line(frame, pt1, pt2, color, 2)


def draw_crop(frame: np.ndarray, crop_matrix: np.ndarray, size: int = LANDMARK_INPUT_SIZE,
              color=(255, 0, 0)):
    """Draw the rotated landmark crop as a quad."""
    corners = np.array([[0, 0], [size, 0], [size, size], [0, size]], dtype=np.float32)
    quad = mul(crop_matrix, corners).astype(np.int32)
    cv2.polylines(frame, [quad.reshape(-1, 1, 2)], True, color, 2)


class HandTrackingPipeline:
    """Palm detector + landmark estimator on ONNX Runtime."""

    def __init__(self,
                 detector_path=MODEL_DIR / DETECTOR_MODEL,
                 landmark_path=MODEL_DIR / LANDMARK_MODEL,
                 anchors_path=None,
                 device='cuda' if torch.cuda.is_available() else 'cpu',
                 precision: str = 'fp32',
                 score_threshold: float = 0.65,
                 anchors: Optional[np.ndarray] = None,
                 detector_worker=None,
                 landmark_worker=None):
        self.detector_path = Path(detector_path)
        self.landmark_path = Path(landmark_path)
        self.device = torch.device(device)
        self.precision = precision

        print(f"[Pipeline] Initializing on {self.device} (Precision: {precision})")

        if anchors is None:
            anchors = self._load_anchors(anchors_path)
        if detector_worker is None:
            detector_worker = OrtWrapper(self._model_path(self.detector_path), self.device, precision)
        if landmark_worker is None:
            landmark_worker = OrtWrapper(self._model_path(self.landmark_path), self.device, precision)

        self.detector = PalmDetector(detector_worker, anchors, DETECTOR_INPUT_SIZE, score_threshold)
        self.landmarker = HandLandmarker(landmark_worker, LANDMARK_INPUT_SIZE)

    @property
    def score_threshold(self) -> float:
        return self.detector.score_threshold

    @score_threshold.setter
    def score_threshold(self, value: float):
        self.detector.score_threshold = value

    @staticmethod
    def _model_path(path: Path) -> Path:
        if not path.exists():
            raise FileNotFoundError(f"Missing model file {path}. Place the ONNX models in {MODEL_DIR} "
                                    f"or pass explicit paths.")
        return path

    def _load_anchors(self, anchors_path=None) -> np.ndarray:
        """Explicit CSV, else anchors.csv beside the detector, else generated."""
        if anchors_path is not None:
            csv_path = Path(anchors_path)
            if not csv_path.exists():
                raise FileNotFoundError(f"Missing anchors file {csv_path}")
        else:
            csv_path = self.detector_path.parent / ANCHORS_CSV
            if not csv_path.exists():
                print(f"[Pipeline] {csv_path} not found, generating palm anchors")
                return generate_anchors(DETECTOR_INPUT_SIZE)

        print(f"[Pipeline] Loading anchors from {csv_path}")
        return load_anchors(csv_path.read_text(), NUM_ANCHORS)

    def process_frame(self, frame: np.ndarray) -> Optional[HandResult]:
        """
        Track the best hand in an RGB frame.
        Returns None when no palm scores above the threshold.
        """
        detection = self.detector.detect(frame)
        if detection is None:
            return None

        crop, _, _, _ = detection_to_crop(detection.anchor, detection.box,
                                          DETECTOR_INPUT_SIZE, LANDMARK_INPUT_SIZE)
        crop_matrix = mul(detection.matrix, crop)

        landmarks = self.landmarker.estimate(frame, crop_matrix)
        return HandResult(detection=detection, landmarks=landmarks, crop_matrix=crop_matrix)

    def print_stats(self):
        print("\n" + "=" * 50)
        print("Hand Tracking")
        print("=" * 50)
        print(f"Detector: {self.detector_path.name} ({DETECTOR_INPUT_SIZE}x{DETECTOR_INPUT_SIZE}, "
              f"{len(self.detector.anchors)} anchors)")
        print(f"Landmarks: {self.landmark_path.name} ({LANDMARK_INPUT_SIZE}x{LANDMARK_INPUT_SIZE}, 21 keypoints)")
        print(f"Device: {self.device} | Threshold: {self.score_threshold:.2f}")
        print("=" * 50 + "\n")

    def close(self):
        for worker in (self.detector.worker, self.landmarker.worker):
            close = getattr(worker, "close", None)
            if close is not None:
                close()
