"""Palm detector stage: letterboxed 192x192 input, single best anchor."""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import torch

from .blaze_utils import argmax_filtering, letterbox_matrix, sample_image_affine

DETECTOR_INPUT_SIZE = 192
NUM_ANCHORS = 2016


@dataclass
class PalmDetection:
    index: int
    score: float
    box: np.ndarray  # raw (18,) offsets in detector-tensor pixels
    anchor: np.ndarray  # (4,) normalized
    matrix: np.ndarray  # detector tensor -> image pixels


class PalmDetector:
    def __init__(self, worker, anchors: np.ndarray,
                 input_size: int = DETECTOR_INPUT_SIZE,
                 score_threshold: float = 0.65):
        self.worker = worker
        self.anchors = anchors
        self.input_size = input_size
        self.score_threshold = score_threshold

    def run(self, image: np.ndarray):
        """Best anchor (idx, score, box) tensors plus the detector matrix."""
        h, w = image.shape[:2]
        matrix = letterbox_matrix(w, h, self.input_size)
        tensor = sample_image_affine(image, matrix, self.input_size)

        outputs = self.worker(tensor)
        if not isinstance(outputs, (list, tuple)) or len(outputs) < 2:
            raise RuntimeError("Palm detector must return (boxes, scores)")
        raw_boxes, raw_scores = outputs[0], outputs[1]

        with torch.no_grad():
            idx, score, box = argmax_filtering(raw_boxes.float(), raw_scores.float())
        return idx, score, box, matrix

    def detect(self, image: np.ndarray) -> Optional[PalmDetection]:
        idx, score, box, matrix = self.run(image)

        # readback
        score = float(score.reshape(-1)[0].cpu())
        if score < self.score_threshold:
            return None

        index = int(idx.cpu())
        if index >= len(self.anchors):
            raise RuntimeError(f"Anchor index {index} out of range ({len(self.anchors)} anchors)")

        return PalmDetection(
            index=index,
            score=score,
            box=box.reshape(-1).cpu().numpy().astype(np.float32),
            anchor=self.anchors[index],
            matrix=matrix,
        )
