"""
Tensor codec for single-shot detectors.

Encode: HWC camera frame -> flat plane-major (CHW) uint8 buffer.
Decode: flat float32 output of a DetectionOutput-style head -> `Candidate` records.

Each output slot holds `candidate_stride` floats:
    [image_id, label, confidence, xmin, ymin, xmax, ymax, ...]
with coordinates normalized to [0, 1]. A negative image_id terminates the list.
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from .types import Candidate

IMAGE_ID = 0
LABEL = 1
CONFIDENCE = 2
XMIN = 3
YMIN = 4
XMAX = 5
YMAX = 6

MIN_CANDIDATE_STRIDE = 7


def encode_planar(image: np.ndarray, input_height: int, input_width: int, channel_count: int) -> np.ndarray:
    """
    Resize `image` to (input_height, input_width) and re-layout it plane-major.

    Output byte `c * H * W + p` is channel `c` of pixel `p` (row-major pixel index).
    Channel order is kept as-is; BGR frames stay BGR.

    Returns:
        1-D uint8 array of exactly `channel_count * input_height * input_width` bytes.
    """

    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array.")

    img = np.asarray(image)
    if img.ndim == 2:
        img = img[:, :, None]
    if img.ndim != 3:
        raise ValueError(f"Expected image shape (H, W, C) or (H, W), got {img.shape}")
    if img.shape[2] != channel_count:
        raise ValueError(f"Model expects {channel_count} channels, image has {img.shape[2]}")

    if img.shape[:2] != (input_height, input_width):
        try:
            import cv2  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("OpenCV is required for resizing. Install with `pip install opencv-python`.") from e

        img = cv2.resize(img, (input_width, input_height), interpolation=cv2.INTER_LINEAR)
        # OpenCV drops a trailing singleton channel axis
        if img.ndim == 2:
            img = img[:, :, None]

    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)

    # HWC -> CHW, then flatten
    planar = np.ascontiguousarray(np.transpose(img, (2, 0, 1)))
    return planar.reshape(-1)


def decode_candidates(output: np.ndarray, max_candidates: Optional[int], candidate_stride: int) -> List[Candidate]:
    """
    Parse the raw output buffer into candidates, in ascending slot order.

    Stops at the first slot with image_id < 0. Without a terminator, at most
    `max_candidates` slots are read (never more than the buffer holds; None
    means every slot in the buffer).
    """

    if candidate_stride < MIN_CANDIDATE_STRIDE:
        raise ValueError(f"candidate_stride must be >= {MIN_CANDIDATE_STRIDE}, got {candidate_stride}")
    if max_candidates is not None and max_candidates < 0:
        raise ValueError("max_candidates must be >= 0")

    flat = np.asarray(output, dtype=np.float32).reshape(-1)
    count = flat.size // candidate_stride
    if max_candidates is not None:
        count = min(count, max_candidates)
    rows = flat[: count * candidate_stride].reshape(count, candidate_stride)

    candidates: List[Candidate] = []
    for row in rows:
        if row[IMAGE_ID] < 0:
            break
        # A slot without a usable class id cannot become a candidate
        if not np.isfinite(row[LABEL]):
            continue
        candidates.append(
            Candidate(
                image_id=float(row[IMAGE_ID]),
                label=int(row[LABEL]),
                confidence=float(row[CONFIDENCE]),
                xmin=float(row[XMIN]),
                ymin=float(row[YMIN]),
                xmax=float(row[XMAX]),
                ymax=float(row[YMAX]),
            )
        )
    return candidates
