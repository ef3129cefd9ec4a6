from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class DetectorConfig:
    schema_version: int
    model_path: str
    backend_policy: str = "MULTI"
    device_priorities: Optional[Tuple[str, ...]] = None
    confidence_threshold: float = 0.55
    target_label: int = 1
    # Resolved against labels_path when set; overrides target_label.
    target_class: Optional[str] = None
    labels_path: Optional[str] = None
    reference_size: Tuple[int, int] = (960, 720)
    min_corner_scale: float = 0.95
    max_corner_scale: float = 1.05

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ValueError("detector config schema_version must be 1")
        if not self.model_path:
            raise ValueError("model_path must not be empty")
        if not self.backend_policy:
            raise ValueError("backend_policy must not be empty")
        if self.device_priorities is not None and not self.device_priorities:
            raise ValueError("device_priorities must not be empty when given")
        if not 0.0 <= self.confidence_threshold < 1.0:
            raise ValueError("confidence_threshold must be in [0, 1)")
        if self.target_label < 0:
            raise ValueError("target_label must be >= 0")
        if self.target_class is not None and self.labels_path is None:
            raise ValueError("target_class requires labels_path")
        if len(self.reference_size) != 2 or any(v <= 0 for v in self.reference_size):
            raise ValueError("reference_size must be [width, height] with positive values")
        if self.min_corner_scale <= 0 or self.max_corner_scale <= 0:
            raise ValueError("corner scales must be > 0")


def _require_str(payload: Dict[str, Any], key: str) -> str:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    value = payload.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key} must be a string")
    return value


def load_detector_config(path: Path) -> DetectorConfig:
    if not path.exists():
        raise FileNotFoundError(f"Detector config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector config must be a JSON object")

    allowed = {
        "schema_version",
        "model_path",
        "backend_policy",
        "device_priorities",
        "confidence_threshold",
        "target_label",
        "target_class",
        "labels_path",
        "reference_size",
        "min_corner_scale",
        "max_corner_scale",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector config keys: {unknown}")

    priorities = payload.get("device_priorities")
    if priorities is not None:
        if not isinstance(priorities, list) or not all(isinstance(d, str) for d in priorities):
            raise ValueError("device_priorities must be a list of strings")
        priorities = tuple(priorities)

    reference_size = payload.get("reference_size", [960, 720])
    if (
        not isinstance(reference_size, list)
        or len(reference_size) != 2
        or any(isinstance(v, bool) or not isinstance(v, int) for v in reference_size)
    ):
        raise ValueError("reference_size must be [width, height] integers")

    target_label = payload.get("target_label", 1)
    if isinstance(target_label, bool) or not isinstance(target_label, int):
        raise ValueError("target_label must be an integer")

    return DetectorConfig(
        schema_version=_require_int(payload, "schema_version"),
        model_path=_require_str(payload, "model_path"),
        backend_policy=_optional_str(payload, "backend_policy") or "MULTI",
        device_priorities=priorities,
        confidence_threshold=_optional_number(payload, "confidence_threshold", 0.55),
        target_label=target_label,
        target_class=_optional_str(payload, "target_class"),
        labels_path=_optional_str(payload, "labels_path"),
        reference_size=(reference_size[0], reference_size[1]),
        min_corner_scale=_optional_number(payload, "min_corner_scale", 0.95),
        max_corner_scale=_optional_number(payload, "max_corner_scale", 1.05),
    )
