from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from .backends import open_backend
from .codec import MIN_CANDIDATE_STRIDE
from .policy import parse_backend_policy
from .types import ModelMetadata


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


class ErrorKind(enum.Enum):
    LOAD = "load"
    INFERENCE = "inference"
    NOT_READY = "not_ready"


@dataclass(frozen=True)
class SessionError:
    kind: ErrorKind
    message: str


def _static_dim(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
        raise RuntimeError(f"{what} must be a static positive dimension, got {value!r}")
    return int(value)


def metadata_from_shapes(input_shape: Sequence[Any], output_shape: Sequence[Any]) -> ModelMetadata:
    """
    Derive `ModelMetadata` from the first input (NCHW) and first output shapes.

    The output's last two dims are (max_candidates, candidate_stride), e.g. (1, 1, 100, 7).
    A dynamic candidate count is allowed and recorded as None.
    """

    if len(input_shape) != 4:
        raise RuntimeError(f"Expected an NCHW input, got shape {tuple(input_shape)}")
    if len(output_shape) < 2:
        raise RuntimeError(f"Expected output shape [..., candidates, stride], got {tuple(output_shape)}")

    raw_candidates = output_shape[-2]
    if isinstance(raw_candidates, (int, np.integer)) and raw_candidates > 0:
        max_candidates: Optional[int] = int(raw_candidates)
    else:
        max_candidates = None

    stride = _static_dim(output_shape[-1], "candidate stride")
    if stride < MIN_CANDIDATE_STRIDE:
        raise RuntimeError(f"candidate stride must be >= {MIN_CANDIDATE_STRIDE}, got {stride}")

    return ModelMetadata(
        channel_count=_static_dim(input_shape[1], "input channels"),
        input_height=_static_dim(input_shape[2], "input height"),
        input_width=_static_dim(input_shape[3], "input width"),
        max_candidates=max_candidates,
        candidate_stride=stride,
    )


class InferRequest:
    """
    One synchronous inference over a fresh pair of tensors.

    The input tensor is a writable uint8 buffer of `metadata.input_size` bytes; the
    output is exposed as a flat, read-only float32 view once `infer()` returns.
    Requests are not reused across frames.
    """

    def __init__(self, backend: Any, metadata: ModelMetadata):
        self._backend = backend
        self.metadata = metadata
        self.input_tensor = np.zeros(metadata.input_size, dtype=np.uint8)
        self._output: Optional[np.ndarray] = None

    def write_input(self, encoded: np.ndarray) -> None:
        data = np.asarray(encoded)
        if data.dtype != np.uint8:
            raise TypeError(f"Encoded input must be uint8, got {data.dtype}")
        if data.size != self.input_tensor.size:
            raise ValueError(f"Encoded input has {data.size} bytes, input tensor holds {self.input_tensor.size}")
        self.input_tensor[:] = data.reshape(-1)

    def infer(self) -> np.ndarray:
        md = self.metadata
        blob = self.input_tensor.reshape(1, md.channel_count, md.input_height, md.input_width)
        out = np.ascontiguousarray(self._backend.infer(blob), dtype=np.float32).reshape(-1)
        out.flags.writeable = False
        self._output = out
        return out

    @property
    def output(self) -> np.ndarray:
        if self._output is None:
            raise RuntimeError("infer() has not been called on this request.")
        return self._output


class InferenceSession:
    """
    Owns one loaded detection model and runs one inference per frame.

    Backend failures never escape: `initialize()` returns False and `run_inference()`
    returns None, with details in `last_error`.
    """

    def __init__(
        self,
        model_path: PathLike,
        backend_policy: str = "MULTI",
        device_priorities: Optional[Sequence[str]] = None,
    ):
        self.model_path = Path(model_path)
        self.backend_policy = backend_policy
        self.device_priorities = tuple(device_priorities) if device_priorities is not None else None
        self.last_error: Optional[SessionError] = None
        self._backend: Any = None
        self._metadata: Optional[ModelMetadata] = None

    @property
    def is_ready(self) -> bool:
        return self._backend is not None and self._metadata is not None

    @property
    def metadata(self) -> ModelMetadata:
        if self._metadata is None:
            raise RuntimeError("Session is not initialized.")
        return self._metadata

    @property
    def backend(self) -> Any:
        return self._backend

    def initialize(self) -> bool:
        try:
            policy = parse_backend_policy(self.backend_policy, self.device_priorities)
            backend = open_backend(self.model_path, policy)
            logger.info("Loaded inference backend %s (policy=%s)", type(backend).__name__, policy.name)

            metadata = metadata_from_shapes(backend.input_shape, backend.output_shape)
            logger.info("Loaded network %s", self.model_path)

            self._backend = backend
            self._metadata = metadata
            # Probe a request so allocation problems surface at load time
            self.create_request()
            logger.info(
                "Prepared inference request: input=%dx%dx%d candidates=%s stride=%d",
                metadata.channel_count,
                metadata.input_height,
                metadata.input_width,
                metadata.max_candidates,
                metadata.candidate_stride,
            )
        except Exception as e:
            self._backend = None
            self._metadata = None
            self._fail(ErrorKind.LOAD, e)
            return False

        self.last_error = None
        return True

    def create_request(self) -> InferRequest:
        if not self.is_ready:
            raise RuntimeError("Session is not initialized.")
        return InferRequest(self._backend, self.metadata)

    def run_inference(self, encoded: np.ndarray) -> Optional[np.ndarray]:
        if not self.is_ready:
            self.last_error = SessionError(ErrorKind.NOT_READY, "Session is not initialized.")
            logger.error(self.last_error.message)
            return None

        try:
            request = self.create_request()
            request.write_input(encoded)
            output = request.infer()
        except Exception as e:
            self._fail(ErrorKind.INFERENCE, e)
            return None

        self.last_error = None
        return output

    def input_hwc(self) -> Tuple[int, int, int]:
        md = self.metadata
        return md.input_height, md.input_width, md.channel_count

    def _fail(self, kind: ErrorKind, exc: Exception) -> None:
        self.last_error = SessionError(kind, f"{type(exc).__name__}: {exc}")
        logger.error("%s failure: %s", kind.value, self.last_error.message)
