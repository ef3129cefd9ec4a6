from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from .codec import encode_planar
from .postprocess import DetectionFilter, DetectionFilterConfig
from .session import InferenceSession
from .types import Detection


PathLike = Union[str, Path]

DEFAULT_MODEL_PATH = "models/ssd_mobilenet_v2_coco.onnx"

logger = logging.getLogger(__name__)


class InferenceController:
    """
    Frame -> detections: encode, infer, decode and filter.

    Not reentrant. Use one controller per worker thread; the list returned by
    `process_frames` is replaced on the next call.
    """

    def __init__(
        self,
        model_path: PathLike = DEFAULT_MODEL_PATH,
        backend_policy: str = "MULTI",
        *,
        device_priorities: Optional[Sequence[str]] = None,
        filter_cfg: DetectionFilterConfig = DetectionFilterConfig(),
        session: Optional[InferenceSession] = None,
    ):
        self.session = session or InferenceSession(model_path, backend_policy, device_priorities)
        self.filter = DetectionFilter(filter_cfg)
        self._results: List[Detection] = []

    @property
    def results(self) -> List[Detection]:
        return self._results

    def start(self) -> bool:
        ok = self.session.initialize()
        if not ok:
            logger.error("Could not start inference controller for %s", self.session.model_path)
        return ok

    def process_frames(self, color: np.ndarray, depth: Optional[np.ndarray] = None) -> List[Detection]:
        """
        Run detection on one color frame.

        `depth` is accepted for the depth-fusion stage and not used here. A failed
        frame yields an empty list.
        """

        self._results = []
        if not self.session.is_ready:
            logger.error("Inference controller is not started; dropping frame")
            return self._results

        height, width, channels = self.session.input_hwc()
        try:
            encoded = encode_planar(color, height, width, channels)
        except Exception as e:
            logger.error("Could not encode frame: %s", e)
            return self._results

        output = self.session.run_inference(encoded)
        if output is None:
            return self._results

        try:
            self._results = self.filter.process(output, self.session.metadata)
        except Exception as e:
            logger.error("Could not decode inference output: %s", e)
            self._results = []
            return self._results

        logger.info("Inferred a frame: %d detections", len(self._results))
        return self._results
