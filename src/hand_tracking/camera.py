"""
Passthrough camera access.
- Per-eye intrinsics and pose (JSON profile or FOV estimate)
- Pixel -> world ray (OpenCV camera frame: x right, y down, z forward)
- OpenCV capture as the texture provider
"""

import json
import math
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from .raycast import Ray

DEFAULT_RESOLUTION = (1280, 960)
DEFAULT_HFOV_DEG = 80.0


class CameraEye(Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass
class CameraIntrinsics:
    focal_length: tuple  # (fx, fy) pixels
    principal_point: tuple  # (cx, cy) pixels
    resolution: tuple  # (width, height)

    @classmethod
    def from_fov(cls, resolution=DEFAULT_RESOLUTION, hfov_deg: float = DEFAULT_HFOV_DEG):
        w, h = resolution
        f = 0.5 * w / math.tan(math.radians(hfov_deg) / 2)
        return cls(focal_length=(f, f), principal_point=(0.5 * w, 0.5 * h), resolution=(w, h))


@dataclass
class CameraPose:
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))  # camera -> world


def screen_point_to_ray(intrinsics: CameraIntrinsics, pose: CameraPose, pixel) -> Ray:
    """World ray through a camera pixel (origin top-left)."""
    fx, fy = intrinsics.focal_length
    cx, cy = intrinsics.principal_point
    direction_cam = np.array([(pixel[0] - cx) / fx, (pixel[1] - cy) / fy, 1.0])
    direction_world = np.asarray(pose.rotation, dtype=np.float64) @ direction_cam
    return Ray(pose.position, direction_world)


def image_to_camera_pixel(point, image_size, intrinsics: CameraIntrinsics):
    """Map a source-image pixel onto the camera resolution (rounded)."""
    per_x = point[0] / image_size[0]
    per_y = point[1] / image_size[1]
    res_w, res_h = intrinsics.resolution
    return int(round(per_x * res_w)), int(round(per_y * res_h))


def load_camera_profile(path) -> dict:
    """
    Load per-eye calibration from JSON.

    {"left": {"focal_length": [fx, fy], "principal_point": [cx, cy],
              "resolution": [w, h], "position": [x, y, z],
              "rotation": [[...], [...], [...]]}, "right": {...}}
    """
    data = json.loads(Path(path).read_text())
    profile = {}
    for eye in CameraEye:
        entry = data.get(eye.value)
        if entry is None:
            continue
        try:
            intrinsics = CameraIntrinsics(
                focal_length=tuple(float(v) for v in entry["focal_length"]),
                principal_point=tuple(float(v) for v in entry["principal_point"]),
                resolution=tuple(int(v) for v in entry["resolution"]),
            )
        except KeyError as e:
            raise ValueError(f"Camera profile '{eye.value}' is missing {e}") from e

        rotation = np.asarray(entry.get("rotation", np.eye(3)), dtype=np.float64)
        if rotation.shape != (3, 3):
            raise ValueError(f"Camera profile '{eye.value}' rotation must be 3x3")
        pose = CameraPose(position=np.asarray(entry.get("position", [0, 0, 0]), dtype=np.float64),
                          rotation=rotation)
        profile[eye] = (intrinsics, pose)
    return profile


class PassthroughTextureProvider:
    """Opens a camera for one eye and serves the latest RGB frame."""

    def __init__(self, eye: CameraEye = CameraEye.RIGHT, device=0, profile: Optional[dict] = None,
                 mirror: bool = False):
        self.eye = eye
        self.device = device
        self.mirror = mirror
        profile = profile or {}
        if eye in profile:
            self.intrinsics, self.pose = profile[eye]
        else:
            self.intrinsics, self.pose = CameraIntrinsics.from_fov(), CameraPose()

        self._cap = None
        self._lock = threading.Lock()
        self._frame = None

    @property
    def web_cam_texture(self) -> Optional[np.ndarray]:
        """Latest frame, None until the camera delivers one."""
        return self._frame

    def start(self) -> bool:
        w, h = self.intrinsics.resolution
        print(f"[Camera] Opening camera {self.device} ({self.eye.value} eye, {w}x{h})...")
        cap = cv2.VideoCapture(self.device)
        if not cap.isOpened():
            print(f"[Camera] ERROR: no camera device available at {self.device}")
            cap.release()
            return False

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        self._cap = cap
        print(f"[Camera] Camera {self.device} ready")
        return True

    def read(self) -> Optional[np.ndarray]:
        """Grab the next frame as RGB; None when the camera is not running."""
        with self._lock:
            if self._cap is None:
                return None
            ret, frame = self._cap.read()
        if not ret:
            return None

        if self.mirror:
            frame = frame[:, ::-1]
        self._frame = cv2.cvtColor(np.ascontiguousarray(frame), cv2.COLOR_BGR2RGB)
        return self._frame

    def stop(self):
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
        self._frame = None
