from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import numpy as np

from ..policy import BackendPolicy, parse_backend_policy


PathLike = Union[str, Path]

# ORT element type -> NumPy dtype for the input tensor
_INPUT_DTYPES = {
    "tensor(uint8)": np.uint8,
    "tensor(float)": np.float32,
    "tensor(float16)": np.float16,
    "tensor(double)": np.float64,
}


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - policy: device policy, mapped to ORT execution providers in priority order
    """

    policy: BackendPolicy = parse_backend_policy("MULTI")


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend for single-input, single-output detectors.

    Takes a (1, C, H, W) uint8 blob and returns the first output as float32.
    Models declaring a floating-point input get the blob converted to that type.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        providers = cfg.policy.providers(ort.get_available_providers())
        sess_opts = ort.SessionOptions()
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=list(providers))

        inputs = self.session.get_inputs()
        outputs = self.session.get_outputs()
        if not inputs:
            raise RuntimeError("Model has no inputs.")
        if not outputs:
            raise RuntimeError("Model has no outputs.")

        self.input_name = inputs[0].name
        self.output_name = outputs[0].name
        self.input_shape = tuple(inputs[0].shape)
        self.output_shape = tuple(outputs[0].shape)

        input_type = inputs[0].type
        if input_type not in _INPUT_DTYPES:
            raise RuntimeError(f"Unsupported model input type: {input_type}")
        self.input_dtype = _INPUT_DTYPES[input_type]

    @property
    def providers_in_use(self) -> Tuple[str, ...]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    def infer(self, blob: np.ndarray) -> np.ndarray:
        x = blob if blob.dtype == self.input_dtype else blob.astype(self.input_dtype)
        outputs = self.session.run([self.output_name], {self.input_name: x})
        return np.asarray(outputs[0], dtype=np.float32)
