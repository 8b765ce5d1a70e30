"""Static checks of the ONNX graphs against what the pipeline reads."""

import onnx

from .landmarker import LANDMARK_OUTPUT


def _dims(value_info):
    dims = []
    for d in value_info.type.tensor_type.shape.dim:
        dims.append(d.dim_param if d.dim_param else d.dim_value)
    return dims


def describe(model_path) -> dict:
    model = onnx.load(str(model_path))
    return {
        "inputs": [(i.name, _dims(i)) for i in model.graph.input],
        "outputs": [(o.name, _dims(o)) for o in model.graph.output],
    }


def _known(dim) -> bool:
    return isinstance(dim, int) and dim > 0


def check_detector(info) -> list:
    """Detector needs (boxes [.., 18], scores [.., 1]) in that order."""
    if len(info["outputs"]) < 2:
        return ["detector needs two outputs (boxes, scores)"]

    problems = []
    boxes, scores = info["outputs"][0][1], info["outputs"][1][1]
    if boxes and _known(boxes[-1]) and boxes[-1] != 18:
        problems.append(f"detector boxes last dim is {boxes[-1]}, expected 18")
    if scores and _known(scores[-1]) and scores[-1] != 1:
        problems.append(f"detector scores last dim is {scores[-1]}, expected 1")
    return problems


def check_landmarker(info) -> list:
    names = [name for name, _ in info["outputs"]]
    if not names:
        return ["landmark model has no outputs"]
    if LANDMARK_OUTPUT not in names:
        return [f"landmark model has no '{LANDMARK_OUTPUT}' output, '{names[0]}' will be used"]
    return []
