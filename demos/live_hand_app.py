"""
Live passthrough hand-tracking viewer.

- Tracking loop runs on a background thread (LiveHandTracker)
- Window shows the camera frame, landmark crop and 2D keypoints
- HUD lists how many keypoints landed on the environment planes

Run:
  python demos/live_hand_app.py --camera 0 --floor-height -1.2 --wall-distance 1.5
"""

import argparse
import time

import cv2
import numpy as np
import torch

from hand_tracking import (
    CameraEye,
    EnvironmentRaycaster,
    HandPreview,
    HandTrackingPipeline,
    LiveHandTracker,
    PassthroughTextureProvider,
    Plane,
    draw_crop,
    draw_landmarks,
    load_camera_profile,
)
from hand_tracking.pipeline import DETECTOR_MODEL, LANDMARK_MODEL, MODEL_DIR


def build_environment(floor_height, wall_distance, max_distance):
    """Planes in the camera's world frame (x right, y down, z forward)."""
    raycaster = EnvironmentRaycaster(max_distance=max_distance)
    if floor_height is not None:
        # floor is below the camera: positive y in a y-down frame
        raycaster.add_plane(Plane(point=[0.0, -floor_height, 0.0], normal=[0.0, -1.0, 0.0]))
    if wall_distance is not None:
        raycaster.add_plane(Plane(point=[0.0, 0.0, wall_distance], normal=[0.0, 0.0, -1.0]))
    return raycaster


def overlay_hud(frame, fps, result, preview):
    score = f"{result.score:.2f}" if result is not None else "-"
    cv2.putText(frame, f"{fps:.1f} FPS | score {score}",
                (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 0), 2)
    cv2.putText(frame, f"World keypoints: {len(preview.active_keypoints())}/{len(preview.markers)}  |  Quit: q / ESC",
                (10, 60), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2)


def run(args):
    profile = load_camera_profile(args.profile) if args.profile else None

    pipeline = HandTrackingPipeline(detector_path=args.detector, landmark_path=args.landmarks,
                                    anchors_path=args.anchors, device=args.device,
                                    precision=args.precision, score_threshold=args.threshold)
    pipeline.print_stats()

    # track on the raw sensor image; mirroring is display only
    provider = PassthroughTextureProvider(CameraEye(args.eye), device=args.camera, profile=profile)
    if not provider.start():
        pipeline.close()
        return

    preview = HandPreview()
    raycaster = build_environment(args.floor_height, args.wall_distance, args.max_distance)
    tracker = LiveHandTracker(provider, raycaster, preview, pipeline,
                              fallback_distance=args.fallback_distance)
    if not tracker.start():
        tracker.close()
        return

    fps_hist = []
    last_frame = None
    last_time = time.time()

    while True:
        frame = provider.web_cam_texture
        if frame is None or frame is last_frame:
            if cv2.waitKey(1) & 0xFF in (ord('q'), 27):
                break
            continue
        last_frame = frame

        now = time.time()
        fps_hist = (fps_hist + [1.0 / max(now - last_time, 1e-6)])[-30:]
        last_time = now

        vis = cv2.cvtColor(frame, cv2.COLOR_RGB2BGR)
        result = tracker.last_result
        if result is not None:
            draw_crop(vis, result.crop_matrix)
            draw_landmarks(vis, result.points)
        if not args.no_mirror:
            vis = vis[:, ::-1].copy()

        overlay_hud(vis, float(np.mean(fps_hist)), result, preview)
        cv2.imshow("Passthrough Hand Tracking", vis)

        key = cv2.waitKey(1) & 0xFF
        if key in (ord('q'), 27):
            break

    tracker.close()
    cv2.destroyAllWindows()


def main():
    parser = argparse.ArgumentParser(description="Live hand tracking with world-space keypoints.")
    parser.add_argument('--camera', type=int, default=0, help='Camera index (default: 0)')
    parser.add_argument('--eye', choices=[e.value for e in CameraEye], default='right')
    parser.add_argument('--profile', help='Camera calibration JSON (per-eye intrinsics/pose)')
    parser.add_argument('--detector', default=str(MODEL_DIR / DETECTOR_MODEL), help='Palm detector ONNX model')
    parser.add_argument('--landmarks', default=str(MODEL_DIR / LANDMARK_MODEL), help='Hand landmark ONNX model')
    parser.add_argument('--anchors', default=None,
                        help='Anchors CSV (default: anchors.csv next to the detector, else generated)')
    parser.add_argument('--device', default='cuda' if torch.cuda.is_available() else 'cpu')
    parser.add_argument('--precision', choices=['fp32', 'fp16'], default='fp32')
    parser.add_argument('--threshold', type=float, default=0.65, help='Palm score threshold (0-1)')
    parser.add_argument('--floor-height', type=float, default=None,
                        help='Floor plane height relative to the camera in meters (e.g. -1.2)')
    parser.add_argument('--wall-distance', type=float, default=None,
                        help='Wall plane distance in front of the camera in meters')
    parser.add_argument('--max-distance', type=float, default=10.0, help='Raycast range in meters')
    parser.add_argument('--fallback-distance', type=float, default=None,
                        help='Place missed keypoints this far along the ray instead of hiding them')
    parser.add_argument('--no-mirror', action='store_true', help='Disable horizontal flip of the display')
    args = parser.parse_args()

    run(args)


if __name__ == "__main__":
    main()
