"""
Blaze helpers: 2x3 affine algebra, anchors and detector decoding.

All coordinates are image style (origin top-left, y down).
Matrices compose right-to-left: mul(A, B) maps a point through B first.
"""

import math

import cv2
import numpy as np
import torch

# Palm detector box layout: cx, cy, w, h + 7 keypoints (x, y)
BOX_SIZE = 18
WRIST_KEYPOINT = 0
MIDDLE_BASE_KEYPOINT = 2

# MediaPipe palm detection (192x192) anchor config
PALM_STRIDES = (8, 16, 16, 16)
PALM_ANCHORS_PER_CELL = 2

CROP_SHIFT = 0.5
CROP_SCALE = 2.6


def translation_matrix(t) -> np.ndarray:
    return np.array([[1.0, 0.0, t[0]],
                     [0.0, 1.0, t[1]]], dtype=np.float32)


def scale_matrix(s) -> np.ndarray:
    return np.array([[s[0], 0.0, 0.0],
                     [0.0, s[1], 0.0]], dtype=np.float32)


def rotation_matrix(theta: float) -> np.ndarray:
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[c, -s, 0.0],
                     [s, c, 0.0]], dtype=np.float32)


def mul(a: np.ndarray, b) -> np.ndarray:
    """
    Compose two affines, or apply `a` to point(s).

    b: (2, 3) matrix -> returns a∘b
       (2,) point or (N, 2) points -> returns transformed points
    """
    b = np.asarray(b, dtype=np.float32)
    if b.shape == (2, 3):
        out = a[:, :2] @ b
        out[:, 2] += a[:, 2]
        return out.astype(np.float32)
    return (b @ a[:, :2].T + a[:, 2]).astype(np.float32)


def invert_affine(m: np.ndarray) -> np.ndarray:
    return cv2.invertAffineTransform(m.astype(np.float64)).astype(np.float32)


def load_anchors(csv_text: str, num_anchors: int) -> np.ndarray:
    """Parse `x_center,y_center,w,h` rows into (num_anchors, 4)."""
    lines = [ln for ln in csv_text.splitlines() if ln.strip()]
    if len(lines) < num_anchors:
        raise ValueError(f"Anchor CSV has {len(lines)} rows, expected {num_anchors}")

    anchors = np.zeros((num_anchors, 4), dtype=np.float32)
    for i in range(num_anchors):
        values = lines[i].split(",")
        if len(values) < 4:
            raise ValueError(f"Anchor row {i} has {len(values)} values, expected 4")
        anchors[i] = [float(v) for v in values[:4]]
    return anchors


def generate_anchors(input_size: int = 192,
                     strides=PALM_STRIDES,
                     anchors_per_cell: int = PALM_ANCHORS_PER_CELL) -> np.ndarray:
    """SSD anchors with fixed size, same layout as the anchors CSV."""
    anchors = []
    layer = 0
    while layer < len(strides):
        # consecutive layers sharing a stride share one feature map
        stride = strides[layer]
        repeats = 0
        while layer < len(strides) and strides[layer] == stride:
            repeats += 1
            layer += 1

        cells = int(math.ceil(input_size / stride))
        for y in range(cells):
            for x in range(cells):
                for _ in range(repeats * anchors_per_cell):
                    anchors.append([(x + 0.5) / cells, (y + 0.5) / cells, 1.0, 1.0])
    return np.array(anchors, dtype=np.float32)


def score_filtering(raw_scores: torch.Tensor, limit: float = 100.0) -> torch.Tensor:
    return torch.sigmoid(torch.clamp(raw_scores, -limit, limit))


def argmax_filtering(raw_boxes: torch.Tensor, raw_scores: torch.Tensor):
    """
    Keep only the best anchor.

    raw_boxes: (1, N, 18), raw_scores: (1, N, 1)
    Returns (index (), score (1, 1, 1), box (1, 1, 18)).
    """
    scores = score_filtering(raw_scores)
    idx = torch.argmax(raw_scores.reshape(-1))
    box = torch.index_select(raw_boxes, 1, idx.reshape(1))
    score = torch.index_select(scores, 1, idx.reshape(1))
    return idx, score, box


def letterbox_matrix(width: int, height: int, input_size: int) -> np.ndarray:
    """Detector tensor pixels -> image pixels; longer side fills the tensor."""
    size = max(width, height)
    scale = size / float(input_size)
    offset = 0.5 * np.array([width - size, height - size], dtype=np.float32)
    return mul(translation_matrix(offset), scale_matrix((scale, scale)))


def detection_to_crop(anchor, box, input_size: int = 192, landmark_size: int = 224,
                      shift: float = CROP_SHIFT, scale: float = CROP_SCALE):
    """
    Build the landmark crop from one decoded detection.

    Returns (matrix, center, size, rotation) where matrix maps
    landmark-tensor pixels to detector-tensor pixels.
    """
    box = np.asarray(box, dtype=np.float32).reshape(-1)
    anchor_pos = input_size * np.array([anchor[0], anchor[1]], dtype=np.float32)

    center = anchor_pos + box[0:2]
    size = float(max(box[2], box[3]))

    kp0 = anchor_pos + box[4 + 2 * WRIST_KEYPOINT: 6 + 2 * WRIST_KEYPOINT]
    kp2 = anchor_pos + box[4 + 2 * MIDDLE_BASE_KEYPOINT: 6 + 2 * MIDDLE_BASE_KEYPOINT]
    delta = kp2 - kp0
    length = float(np.linalg.norm(delta))
    if length == 0:
        # degenerate keypoints: keep the crop upright
        delta = np.array([0.0, -1.0], dtype=np.float32)
        length = 1.0

    theta = math.atan2(delta[1], delta[0])
    # crop "up" (0, -1) must land on the wrist -> finger direction
    rotation = theta + 0.5 * math.pi

    center = center + shift * size * (delta / length)
    size *= scale

    origin = np.array([0.5 * landmark_size, 0.5 * landmark_size], dtype=np.float32)
    crop_scale = size / landmark_size
    matrix = mul(mul(mul(translation_matrix(center),
                         scale_matrix((crop_scale, crop_scale))),
                     rotation_matrix(rotation)),
                 translation_matrix(-origin))
    return matrix, center, size, rotation


def sample_image_affine(image: np.ndarray, matrix: np.ndarray, size: int) -> np.ndarray:
    """
    Sample a (1, size, size, 3) float tensor in [0, 1].

    Output pixel (x, y) reads the image at matrix * (x, y), bilinear,
    zero outside the image.
    """
    out = cv2.warpAffine(
        image, matrix.astype(np.float64), (size, size),
        flags=cv2.INTER_LINEAR | cv2.WARP_INVERSE_MAP,
        borderMode=cv2.BORDER_CONSTANT, borderValue=(0, 0, 0),
    )
    out = out.astype(np.float32)
    if image.dtype == np.uint8:
        out /= 255.0
    return out[np.newaxis]
