"""
Backend policy parsing.

A policy is either a single device name ("CPU", "GPU", ...) or "MULTI", which
spreads execution over a priority-ordered device list ("MULTI:GPU,CPU").
Devices are mapped onto ONNX Runtime execution providers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

MULTI = "MULTI"
DEFAULT_MULTI_PRIORITIES: Tuple[str, ...] = ("GPU", "CPU")

DEVICE_PROVIDERS = {
    "CPU": "CPUExecutionProvider",
    "GPU": "CUDAExecutionProvider",
    "CUDA": "CUDAExecutionProvider",
    "TENSORRT": "TensorrtExecutionProvider",
    "OPENVINO": "OpenVINOExecutionProvider",
    "DML": "DmlExecutionProvider",
    "COREML": "CoreMLExecutionProvider",
}


@dataclass(frozen=True)
class BackendPolicy:
    name: str
    devices: Tuple[str, ...]

    @property
    def is_multi(self) -> bool:
        return self.name == MULTI

    def providers(self, available: Sequence[str]) -> Tuple[str, ...]:
        """
        Execution providers for this policy, in priority order.

        Multi-device keeps whichever devices are available; a single device must be.
        """

        wanted = []
        for device in self.devices:
            provider = DEVICE_PROVIDERS[device]
            if provider not in wanted:
                wanted.append(provider)

        present = tuple(p for p in wanted if p in available)
        if not present:
            raise RuntimeError(f"No device of {list(self.devices)} is available (providers: {list(available)}).")
        return present


def parse_backend_policy(text: str, device_priorities: Optional[Sequence[str]] = None) -> BackendPolicy:
    if not isinstance(text, str) or not text.strip():
        raise ValueError("backend_policy must be a non-empty string")

    head, _, inline = text.strip().partition(":")
    name = head.strip().upper()

    if name == MULTI:
        if device_priorities is not None:
            devices = [d.strip().upper() for d in device_priorities]
        elif inline:
            devices = [d.strip().upper() for d in inline.split(",")]
        else:
            devices = list(DEFAULT_MULTI_PRIORITIES)
        devices = [d for d in devices if d]
        if not devices:
            raise ValueError("MULTI backend policy requires a device priority list")
        unknown = [d for d in devices if d not in DEVICE_PROVIDERS]
        if unknown:
            raise ValueError(f"Unknown devices in priority list: {unknown}")
        return BackendPolicy(name=MULTI, devices=tuple(devices))

    if inline:
        raise ValueError(f"Device priorities are only valid with MULTI, got {text!r}")
    if name not in DEVICE_PROVIDERS:
        raise ValueError(f"Unsupported backend policy: {text!r}")
    return BackendPolicy(name=name, devices=(name,))
