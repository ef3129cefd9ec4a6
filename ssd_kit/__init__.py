"""
Single-shot detector runtime helpers.

Encodes camera frames into plane-major uint8 tensors, runs an SSD-style model
through ONNX Runtime and turns the DetectionOutput tensor into filtered,
pixel-space detections. Inference runtimes are imported lazily; the codec and
filter only need NumPy (and OpenCV for resizing).
"""

from .types import Candidate, Detection, ModelMetadata
from .codec import decode_candidates, encode_planar
from .postprocess import DetectionFilter, DetectionFilterConfig
from .policy import BackendPolicy, parse_backend_policy
from .session import ErrorKind, InferenceSession, InferRequest, SessionError
from .controller import InferenceController
from .config import DetectorConfig, load_detector_config
from .metadata import read_label_map, resolve_label_id
from .runtime import load_controller, resolve_path
from .log import setup_logging

__all__ = [
    "Candidate",
    "Detection",
    "ModelMetadata",
    "decode_candidates",
    "encode_planar",
    "DetectionFilter",
    "DetectionFilterConfig",
    "BackendPolicy",
    "parse_backend_policy",
    "ErrorKind",
    "InferenceSession",
    "InferRequest",
    "SessionError",
    "InferenceController",
    "DetectorConfig",
    "load_detector_config",
    "read_label_map",
    "resolve_label_id",
    "load_controller",
    "resolve_path",
    "setup_logging",
]
