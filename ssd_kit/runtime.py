from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from .config import DetectorConfig
from .controller import InferenceController
from .metadata import read_label_map, resolve_label_id
from .postprocess import DetectionFilterConfig


PathLike = Union[str, Path]


def _project_root() -> Path:
    cwd = Path.cwd().resolve()
    return next((d for d in (cwd, *cwd.parents) if (d / "pyproject.toml").exists()), cwd)


def resolve_path(path: PathLike, root: Optional[PathLike] = None) -> Path:
    """
    Absolute paths pass through; relative ones resolve against `root`, or the
    nearest directory above the cwd holding a pyproject.toml.
    """

    p = Path(path)
    if p.is_absolute():
        return p
    base = Path(root).resolve() if root is not None else _project_root()
    return (base / p).resolve()


def filter_config_from(cfg: DetectorConfig, root: Optional[PathLike] = None) -> DetectionFilterConfig:
    target_label = cfg.target_label
    if cfg.target_class is not None and cfg.labels_path is not None:
        labels = read_label_map(resolve_path(cfg.labels_path, root=root))
        target_label = resolve_label_id(labels, cfg.target_class)

    return DetectionFilterConfig(
        conf_threshold=cfg.confidence_threshold,
        target_label=target_label,
        reference_size=cfg.reference_size,
        min_corner_scale=cfg.min_corner_scale,
        max_corner_scale=cfg.max_corner_scale,
    )


def load_controller(cfg: DetectorConfig, *, root: Optional[PathLike] = None) -> InferenceController:
    """
    Build an `InferenceController` from a detector config.

    The controller is not started; call `start()` and check its result before
    feeding frames.

    Typical usage:
        controller = load_controller(load_detector_config(Path("configs/detector.json")))
        if controller.start():
            detections = controller.process_frames(frame)
    """

    return InferenceController(
        resolve_path(cfg.model_path, root=root),
        cfg.backend_policy,
        device_priorities=cfg.device_priorities,
        filter_cfg=filter_config_from(cfg, root=root),
    )
