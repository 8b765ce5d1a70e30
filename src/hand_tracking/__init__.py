# Passthrough Hand Tracking
# - Palm detector (192x192, best anchor) + landmark estimator (224x224 crop, 21 keypoints)
# - Keypoints projected into world space by environment raycasting

from .pipeline import HandTrackingPipeline, HandResult, draw_landmarks, draw_crop
from .camera import CameraEye, CameraIntrinsics, CameraPose, PassthroughTextureProvider, load_camera_profile
from .raycast import Ray, Plane, EnvironmentRaycaster
from .preview import HandPreview
from .live import LiveHandTracker

__all__ = [
    "HandTrackingPipeline", "HandResult", "draw_landmarks", "draw_crop",
    "CameraEye", "CameraIntrinsics", "CameraPose", "PassthroughTextureProvider", "load_camera_profile",
    "Ray", "Plane", "EnvironmentRaycaster",
    "HandPreview", "LiveHandTracker",
]
