from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass
class Detection:
    """
    One filtered detection in reference-resolution pixel coordinates.

    `distance` is reserved for depth fusion and stays 0.0 here.
    """

    xmin: int
    ymin: int
    xmax: int
    ymax: int
    label: int
    distance: float = 0.0

    def as_xyxy(self) -> Tuple[int, int, int, int]:
        return self.xmin, self.ymin, self.xmax, self.ymax


@dataclass
class Candidate:
    """
    Raw record for one output slot, before any filtering.

    Coordinates are normalized to [0, 1] as emitted by the network.
    """

    image_id: float
    label: int
    confidence: float
    xmin: float
    ymin: float
    xmax: float
    ymax: float


@dataclass(frozen=True)
class ModelMetadata:
    channel_count: int
    input_height: int
    input_width: int
    # None when the runtime reports a dynamic candidate count
    max_candidates: Optional[int]
    candidate_stride: int

    @property
    def input_size(self) -> int:
        return self.channel_count * self.input_height * self.input_width
