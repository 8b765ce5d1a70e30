import numpy as np
import pytest
import torch

from shared.ort_wrapper import OrtWrapper, select_providers

from conftest import save_model


def test_missing_model(tmp_path):
    with pytest.raises(FileNotFoundError):
        OrtWrapper(tmp_path / "nope.onnx", "cpu")


def test_cpu_providers():
    assert select_providers("cpu") == ["CPUExecutionProvider"]


def test_single_output_returns_tensor(tmp_path):
    path = save_model(tmp_path / "identity.onnx", [1, 4, 4, 3], [("Identity", "Identity")])
    wrapper = OrtWrapper(path, "cpu")
    assert not wrapper.channels_first
    assert wrapper.output_names == ["Identity"]

    x = np.random.rand(1, 4, 4, 3)  # float64 gets cast
    out = wrapper(x)
    assert isinstance(out, torch.Tensor)
    assert out.dtype == torch.float32
    np.testing.assert_allclose(out.numpy(), x.astype(np.float32))

    assert wrapper.peek_output("Identity") is not None
    assert wrapper.peek_output("Identity_1") is None
    wrapper.close()
    assert wrapper.peek_output("Identity") is None


def test_closed_wrapper_refuses_to_run(tmp_path):
    path = save_model(tmp_path / "palm.onnx", [1, 2], [("Identity", "Identity")])
    wrapper = OrtWrapper(path, "cpu")
    wrapper.close()
    with pytest.raises(RuntimeError, match="palm is closed"):
        wrapper(np.zeros((1, 2), dtype=np.float32))


def test_multiple_outputs_and_torch_input(tmp_path):
    path = save_model(tmp_path / "two.onnx", [1, 2], [("boxes", "Identity"), ("scores", "Neg")])
    wrapper = OrtWrapper(path, "cpu")
    boxes, scores = wrapper(torch.tensor([[1.0, -2.0]]))
    assert torch.equal(boxes, torch.tensor([[1.0, -2.0]]))
    assert torch.equal(scores, torch.tensor([[-1.0, 2.0]]))


def test_channels_first_model_gets_transposed_input(tmp_path):
    path = save_model(tmp_path / "nchw.onnx", [1, 3, 4, 4], [("Identity", "Identity")])
    wrapper = OrtWrapper(path, "cpu")
    assert wrapper.channels_first

    x = np.zeros((1, 4, 4, 3), dtype=np.float32)
    x[0, 1, 2, 0] = 1.0
    out = wrapper(x)
    assert out.shape == (1, 3, 4, 4)
    assert float(out[0, 0, 1, 2]) == 1.0
