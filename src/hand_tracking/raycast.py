"""Rays and a plane-based environment model for placing keypoints in 3D."""

from typing import Iterable, Optional

import numpy as np


class Ray:
    def __init__(self, origin, direction):
        self.origin = np.asarray(origin, dtype=np.float64)
        direction = np.asarray(direction, dtype=np.float64)
        norm = np.linalg.norm(direction)
        if norm == 0:
            raise ValueError("Ray direction must be non-zero")
        self.direction = direction / norm

    def get_point(self, distance: float) -> np.ndarray:
        return self.origin + distance * self.direction

    def __repr__(self):
        return f"Ray(origin={self.origin.tolist()}, direction={self.direction.tolist()})"


class Plane:
    def __init__(self, point, normal):
        self.point = np.asarray(point, dtype=np.float64)
        normal = np.asarray(normal, dtype=np.float64)
        self.normal = normal / np.linalg.norm(normal)

    def intersect(self, ray: Ray) -> Optional[float]:
        """Distance along the ray to the plane, None if parallel or behind."""
        denom = float(np.dot(self.normal, ray.direction))
        if abs(denom) < 1e-9:
            return None
        t = float(np.dot(self.normal, self.point - ray.origin)) / denom
        return t if t >= 0 else None


class EnvironmentRaycaster:
    """Nearest-hit raycast against a set of environment planes."""

    def __init__(self, planes: Iterable[Plane] = (), max_distance: float = 10.0):
        self.planes = list(planes)
        self.max_distance = max_distance

    def add_plane(self, plane: Plane):
        self.planes.append(plane)

    def raycast(self, ray: Ray) -> Optional[np.ndarray]:
        best = None
        for plane in self.planes:
            t = plane.intersect(ray)
            if t is None or t > self.max_distance:
                continue
            if best is None or t < best:
                best = t
        return None if best is None else ray.get_point(best)

    def place_by_screen_pos(self, ray: Ray) -> Optional[np.ndarray]:
        """World position for a marker along a screen ray, None on miss."""
        return self.raycast(ray)
