"""
Inspect the hand-tracking ONNX models.

  python tools/inspect_models.py
  python tools/inspect_models.py --model-dir /path/to/models
"""

import argparse
from pathlib import Path

from hand_tracking.model_info import check_detector, check_landmarker, describe
from hand_tracking.pipeline import DETECTOR_MODEL, LANDMARK_MODEL, MODEL_DIR


def main():
    parser = argparse.ArgumentParser(description="Inspect hand-tracking ONNX models.")
    parser.add_argument('--model-dir', default=str(MODEL_DIR))
    args = parser.parse_args()

    model_dir = Path(args.model_dir)
    for filename, check in ((DETECTOR_MODEL, check_detector), (LANDMARK_MODEL, check_landmarker)):
        path = model_dir / filename
        if not path.exists():
            print(f"[Inspect] Missing {path}")
            continue

        info = describe(path)
        print(f"Inspecting {path}...")
        print("Inputs:")
        for name, dims in info["inputs"]:
            print(f"  {name}: {dims}")
        print("Outputs:")
        for name, dims in info["outputs"]:
            print(f"  {name}: {dims}")
        for problem in check(info):
            print(f"  WARNING: {problem}")
        print()


if __name__ == "__main__":
    main()
