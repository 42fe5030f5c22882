from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np

from ..config import DetectorOptions
from ..types import PoseResult


class PoseModelAdapter(ABC):
    """
    One pose model family behind a common load/run/dispose contract.

    Adapters are stateless: everything a loaded model needs lives in the handle
    returned by `load`, so one adapter instance can serve several detectors.
    Frames are BGR images (H, W, 3 uint8); results are in frame pixels.
    """

    model_id: str = ""
    num_keypoints: int = 0

    @abstractmethod
    def load(self, options: DetectorOptions) -> Any: ...

    @abstractmethod
    def run(self, handle: Any, frame: np.ndarray, timestamp: Optional[float] = None) -> PoseResult: ...

    @abstractmethod
    def dispose(self, handle: Any) -> None: ...


def frame_size(frame: np.ndarray) -> tuple:
    """(width, height) of an HWC frame."""
    if frame is None or not hasattr(frame, "shape"):
        raise TypeError("frame must be a NumPy array (BGR).")
    if frame.ndim != 3 or frame.shape[2] != 3:
        raise ValueError(f"Expected frame shape (H, W, 3), got {getattr(frame, 'shape', None)}")
    h, w = frame.shape[:2]
    return int(w), int(h)
