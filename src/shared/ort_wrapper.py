from pathlib import Path

import torch
import onnxruntime as ort
import numpy as np


class OrtWrapper:
    """ONNX Runtime worker with a PyTorch-facing interface."""

    def __init__(self, onnx_path, device, precision="fp32"):
        onnx_path = Path(onnx_path)
        if not onnx_path.exists():
            raise FileNotFoundError(f"Model not found: {onnx_path}")

        self.device = torch.device(device)
        self.precision = precision
        self.name = onnx_path.stem

        # Configure session options
        sess_options = ort.SessionOptions()
        sess_options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL

        self.session = ort.InferenceSession(str(onnx_path), sess_options,
                                            providers=select_providers(self.device))

        used_providers = self.session.get_providers()
        print(f"[OrtWrapper] {self.name}: active providers {used_providers}")

        if self.device.type == 'cuda' and 'CUDAExecutionProvider' not in used_providers:
            print(f"[OrtWrapper] WARN: CUDA requested but 'CUDAExecutionProvider' not active. "
                  f"Available: {ort.get_available_providers()}")
        elif self.device.type == 'mps' and 'CoreMLExecutionProvider' not in used_providers:
            print(f"[OrtWrapper] WARN: MPS requested but 'CoreMLExecutionProvider' not active. "
                  f"Available: {ort.get_available_providers()}")

        model_input = self.session.get_inputs()[0]
        self.input_name = model_input.name
        self.input_type = model_input.type  # e.g. 'tensor(float)'
        self.input_shape = list(model_input.shape)
        self.output_names = [o.name for o in self.session.get_outputs()]
        self._last_outputs = {}

    @property
    def channels_first(self) -> bool:
        """True for NCHW models (C == 3 in dim 1)."""
        return len(self.input_shape) == 4 and self.input_shape[1] == 3

    def __call__(self, x):
        if self.session is None:
            raise RuntimeError(f"{self.name} is closed")

        if isinstance(x, torch.Tensor):
            x = x.detach().cpu().numpy()

        # NHWC tensors from the samplers; transpose for NCHW graphs
        if self.channels_first and x.ndim == 4 and x.shape[-1] == 3:
            x = np.ascontiguousarray(x.transpose(0, 3, 1, 2))

        if self.input_type == 'tensor(float)' and x.dtype != np.float32:
            x = x.astype(np.float32)
        elif self.input_type == 'tensor(float16)' and x.dtype != np.float16:
            x = x.astype(np.float16)

        outputs = self.session.run(None, {self.input_name: x})

        torch_outs = [torch.from_numpy(np.asarray(o)).to(self.device) for o in outputs]
        self._last_outputs = dict(zip(self.output_names, torch_outs))

        if len(torch_outs) == 1:
            return torch_outs[0]
        return torch_outs

    def peek_output(self, name):
        """Named output of the last run, or None."""
        return self._last_outputs.get(name)

    def close(self):
        self._last_outputs = {}
        self.session = None


def select_providers(device) -> list:
    """CUDA for cuda devices, CoreML for mps, CPU always as fallback."""
    device = torch.device(device)
    providers = ['CPUExecutionProvider']
    available_providers = ort.get_available_providers()

    if device.type == 'cuda' and 'CUDAExecutionProvider' in available_providers:
        providers.insert(0, 'CUDAExecutionProvider')
    elif device.type == 'mps' and 'CoreMLExecutionProvider' in available_providers:
        providers.insert(0, 'CoreMLExecutionProvider')
    return providers
