import math
from dataclasses import dataclass
from typing import Iterable, List, Tuple

import numpy as np

from .codec import decode_candidates
from .types import Candidate, Detection, ModelMetadata


@dataclass
class DetectionFilterConfig:
    """
    Filter policy applied to decoded candidates.

    The reference size and corner scales are tuned for the deployment camera
    (960x720 frames) and do not follow the actual input frame size.
    """

    conf_threshold: float = 0.55
    # Single class of interest; 1 is "person" in the COCO SSD label map.
    target_label: int = 1
    # (width, height) of the pixel space boxes are mapped into.
    reference_size: Tuple[int, int] = (960, 720)
    # Min corner is pulled inward, max corner pushed outward.
    min_corner_scale: float = 0.95
    max_corner_scale: float = 1.05


class DetectionFilter:
    """
    Turn raw SSD candidates into pixel-space `Detection`s.

    Per candidate, in decode order:
    - drop if confidence <= conf_threshold or label != target_label
    - scale normalized corners into reference_size, truncating toward zero
    - clip into [0, width] x [0, height]

    Order is preserved and overlapping boxes are passed through (no NMS).
    """

    def __init__(self, cfg: DetectionFilterConfig = DetectionFilterConfig()):
        self.cfg = cfg

    def process(self, output: np.ndarray, metadata: ModelMetadata) -> List[Detection]:
        candidates = decode_candidates(output, metadata.max_candidates, metadata.candidate_stride)
        return self.apply(candidates)

    def apply(self, candidates: Iterable[Candidate]) -> List[Detection]:
        detections: List[Detection] = []
        for cand in candidates:
            if not self._accept(cand):
                continue
            detections.append(self._to_detection(cand))
        return detections

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _accept(self, cand: Candidate) -> bool:
        # Compare at the output tensor's precision so a threshold-valued score is rejected.
        # NaN scores fail this comparison and are rejected.
        if not np.float32(cand.confidence) > np.float32(self.cfg.conf_threshold):
            return False
        if cand.label != self.cfg.target_label:
            return False
        return all(math.isfinite(v) for v in (cand.xmin, cand.ymin, cand.xmax, cand.ymax))

    def _to_detection(self, cand: Candidate) -> Detection:
        ref_w, ref_h = self.cfg.reference_size
        lo = self.cfg.min_corner_scale
        hi = self.cfg.max_corner_scale

        xmin = int(lo * cand.xmin * ref_w)
        ymin = int(lo * cand.ymin * ref_h)
        xmax = int(hi * cand.xmax * ref_w)
        ymax = int(hi * cand.ymax * ref_h)

        return Detection(
            xmin=_clip(xmin, ref_w),
            ymin=_clip(ymin, ref_h),
            xmax=_clip(xmax, ref_w),
            ymax=_clip(ymax, ref_h),
            label=cand.label,
            distance=0.0,
        )


def _clip(value: int, upper: int) -> int:
    return max(0, min(value, upper))
