import numpy as np
import onnx
import pytest
import torch
from onnx import TensorProto, helper

from hand_tracking.camera import CameraIntrinsics, CameraPose


class FakeDetectorWorker:
    """Returns (boxes, scores) with one winning anchor."""

    def __init__(self, num_anchors, best_index, box, raw_score=5.0):
        self.num_anchors = num_anchors
        self.best_index = best_index
        self.box = np.asarray(box, dtype=np.float32)
        self.raw_score = raw_score
        self.inputs = []
        self.closed = False

    def __call__(self, x):
        self.inputs.append(x)
        boxes = torch.zeros((1, self.num_anchors, 18))
        scores = torch.full((1, self.num_anchors, 1), -10.0)
        boxes[0, self.best_index] = torch.from_numpy(self.box)
        scores[0, self.best_index, 0] = self.raw_score
        return [boxes, scores]

    def close(self):
        self.closed = True


class FakeLandmarkWorker:
    """Returns fixed landmark-tensor points as a flat (1, 63) output."""

    def __init__(self, points, presence=None):
        self.points = np.asarray(points, dtype=np.float32)
        self.presence = presence
        self.inputs = []
        self._outputs = {}
        self.closed = False

    def __call__(self, x):
        self.inputs.append(x)
        out = torch.from_numpy(self.points.reshape(1, -1).copy())
        self._outputs = {"Identity": out}
        if self.presence is not None:
            self._outputs["Identity_1"] = torch.tensor([[self.presence]])
        return out

    def peek_output(self, name):
        return self._outputs.get(name)

    def close(self):
        self.closed = True


def upright_box(size=40.0):
    """Palm box centred on its anchor, wrist below, middle finger base above."""
    box = np.zeros(18, dtype=np.float32)
    box[2] = box[3] = size
    box[4:6] = (0.0, size / 2)  # wrist
    box[8:10] = (0.0, -size / 2)  # middle finger base
    return box


@pytest.fixture
def centre_anchors():
    return np.array([[0.1, 0.1, 1.0, 1.0],
                     [0.5, 0.5, 1.0, 1.0],
                     [0.9, 0.9, 1.0, 1.0]], dtype=np.float32)


@pytest.fixture
def crop_points():
    """All keypoints at the crop centre, wrist at the bottom edge."""
    points = np.zeros((21, 3), dtype=np.float32)
    points[:, :2] = 112.0
    points[0, :2] = (112.0, 224.0)
    return points


@pytest.fixture
def intrinsics():
    return CameraIntrinsics(focal_length=(500.0, 500.0), principal_point=(320.0, 240.0),
                            resolution=(640, 480))


@pytest.fixture
def pose():
    return CameraPose()


def save_model(path, input_shape, outputs):
    """outputs: list of (name, op) applied to the single input 'x'."""
    x = helper.make_tensor_value_info("x", TensorProto.FLOAT, input_shape)
    nodes = [helper.make_node(op, ["x"], [name]) for name, op in outputs]
    graph_outputs = [helper.make_tensor_value_info(name, TensorProto.FLOAT, input_shape)
                     for name, _ in outputs]
    graph = helper.make_graph(nodes, "test", [x], graph_outputs)
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 13)])
    model.ir_version = 8
    onnx.save(model, str(path))
    return path
