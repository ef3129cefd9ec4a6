"""
Inference backends for ssd_kit.

Backends are imported lazily so the codec and filter stay usable without an
inference runtime installed.

A backend exposes `input_shape`, `output_shape` (as reported by the runtime) and
`infer(blob) -> np.ndarray`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

from ..policy import BackendPolicy

PathLike = Union[str, Path]

__all__ = ["open_backend"]


def open_backend(model_path: PathLike, policy: BackendPolicy) -> Any:
    """
    Open `model_path` with the backend matching its file extension.
    """

    suffix = Path(model_path).suffix.lower()
    if suffix == ".onnx":
        from .onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        return OnnxRuntimeBackend(model_path, OnnxRuntimeBackendConfig(policy=policy))

    raise ValueError(f"Could not infer backend from extension '{suffix}'. Expected a .onnx model.")
