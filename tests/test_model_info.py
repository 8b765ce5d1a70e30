import onnx
from onnx import TensorProto, helper

from hand_tracking.model_info import check_detector, check_landmarker, describe


def save_passthrough(path, tensors):
    """Graph whose outputs are Identity copies of same-shaped inputs."""
    inputs, outputs, nodes = [], [], []
    for i, (name, shape) in enumerate(tensors):
        inputs.append(helper.make_tensor_value_info(f"in{i}", TensorProto.FLOAT, shape))
        outputs.append(helper.make_tensor_value_info(name, TensorProto.FLOAT, shape))
        nodes.append(helper.make_node("Identity", [f"in{i}"], [name]))
    graph = helper.make_graph(nodes, "test", inputs, outputs)
    onnx.save(helper.make_model(graph), str(path))
    return path


def test_describe_and_check_detector(tmp_path):
    path = save_passthrough(tmp_path / "det.onnx", [("boxes", [1, 2016, 18]), ("scores", [1, 2016, 1])])
    info = describe(path)
    assert [name for name, _ in info["outputs"]] == ["boxes", "scores"]
    assert info["outputs"][0][1] == [1, 2016, 18]
    assert check_detector(info) == []


def test_detector_problems(tmp_path):
    swapped = describe(save_passthrough(tmp_path / "a.onnx", [("scores", [1, 2016, 1]), ("boxes", [1, 2016, 18])]))
    assert len(check_detector(swapped)) == 2

    single = describe(save_passthrough(tmp_path / "b.onnx", [("boxes", [1, 2016, 18])]))
    assert check_detector(single) == ["detector needs two outputs (boxes, scores)"]

    dynamic = describe(save_passthrough(tmp_path / "c.onnx", [("boxes", ["n", "k"]), ("scores", ["n", "k"])]))
    assert check_detector(dynamic) == []


def test_check_landmarker(tmp_path):
    ok = describe(save_passthrough(tmp_path / "lm.onnx", [("Identity", [1, 63]), ("Identity_1", [1, 1])]))
    assert check_landmarker(ok) == []

    other = describe(save_passthrough(tmp_path / "lm2.onnx", [("landmarks", [1, 63])]))
    problems = check_landmarker(other)
    assert len(problems) == 1 and "'landmarks'" in problems[0]
