"""
Live hand tracking: camera frame -> landmarks -> world-space markers.

Each keypoint goes image pixel -> camera pixel -> world ray -> environment
hit. Misses either hide the marker or, with a fallback distance, pin it
along the ray.
"""

import threading
import time
from typing import Optional

import numpy as np

from .camera import image_to_camera_pixel, screen_point_to_ray


class LiveHandTracker:
    def __init__(self, texture_provider, raycaster, preview, pipeline,
                 fallback_distance: Optional[float] = None,
                 retry_delay: float = 1.0,
                 idle_delay: float = 0.01):
        self.texture_provider = texture_provider
        self.raycaster = raycaster
        self.preview = preview
        self.pipeline = pipeline
        self.fallback_distance = fallback_distance
        self.retry_delay = retry_delay
        self.idle_delay = idle_delay

        self.is_tracking = False
        self.last_result = None
        self.error_count = 0
        self._thread = None

    def _check_dependencies(self) -> bool:
        missing = [name for name in ("texture_provider", "raycaster", "preview", "pipeline")
                   if getattr(self, name) is None]
        if missing:
            print(f"[LiveTracker] ERROR: missing dependencies: {', '.join(missing)}")
            return False
        return True

    def start(self) -> bool:
        """Run the tracking loop on a background thread."""
        if not self._check_dependencies():
            return False
        self.is_tracking = True
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()
        print("[LiveTracker] Initialized. Hand tracking started.")
        return True

    def run(self):
        """Blocking tracking loop; returns after stop()."""
        if not self._check_dependencies():
            return
        self.is_tracking = True
        print("[LiveTracker] Initialized. Hand tracking started.")
        self._loop()

    def _loop(self):
        while self.is_tracking:
            try:
                frame = self.texture_provider.read()
                if frame is None:
                    self.preview.set_active(False)
                    time.sleep(self.idle_delay)
                    continue

                self.detect_and_track(frame)
            except Exception as e:
                self.error_count += 1
                print(f"[LiveTracker] Error during tracking: {e}")
                self.preview.set_active(False)
                time.sleep(self.retry_delay)

    def detect_and_track(self, frame):
        result = self.pipeline.process_frame(frame)
        self.last_result = result
        if result is None:
            self.preview.set_active(False)
            return None

        self.preview.set_active(True)

        provider = self.texture_provider
        h, w = frame.shape[:2]
        points = np.array(result.points, dtype=np.float32)
        if getattr(provider, "mirror", False):
            # intrinsics describe the raw sensor image, not the flipped frame
            points[:, 0] = (w - 1) - points[:, 0]

        for i, point in enumerate(points):
            pixel = image_to_camera_pixel(point, (w, h), provider.intrinsics)
            ray = screen_point_to_ray(provider.intrinsics, provider.pose, pixel)
            world_pos = self.raycaster.place_by_screen_pos(ray)

            if world_pos is not None:
                self.preview.set_keypoint(i, True, world_pos)
            elif self.fallback_distance is not None:
                self.preview.set_keypoint(i, True, ray.get_point(self.fallback_distance))
            else:
                self.preview.set_keypoint(i, False)
        return result

    def stop(self):
        self.is_tracking = False
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=max(self.retry_delay, 1.0) + 1.0)
        self._thread = None

    def close(self):
        self.stop()
        if self.pipeline is not None:
            self.pipeline.close()
        if self.texture_provider is not None:
            self.texture_provider.stop()
