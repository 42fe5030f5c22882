from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class Keypoint:
    """
    One anatomical landmark in source-image pixel coordinates.

    `z` is model-specific depth (only some models emit it), `visibility` is the
    model confidence in [0, 1].
    """

    x: float
    y: float
    z: Optional[float] = None
    visibility: Optional[float] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class PoseResult:
    """
    Result of one detection call.

    Keypoint order follows the active model's topology (17 or 33 points) and is
    never reordered or filtered here; downstream code indexes into it.
    """

    keypoints: List[Keypoint] = field(default_factory=list)
    keypoints_3d: List[Keypoint] = field(default_factory=list)
    timestamp: Optional[float] = None

    @classmethod
    def empty(cls, timestamp: Optional[float] = None) -> "PoseResult":
        return cls(keypoints=[], keypoints_3d=[], timestamp=timestamp)

    @property
    def is_empty(self) -> bool:
        return not self.keypoints
