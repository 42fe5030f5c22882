from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np


@dataclass(frozen=True)
class LetterboxGeometry:
    """
    Aspect-fit placement of a source image inside a square model input.

    dx/dy are the left/top padding in model-input pixels.
    """

    scale: float
    resized_width: int
    resized_height: int
    dx: int
    dy: int
    size: int

    @property
    def resized(self) -> Tuple[int, int]:
        return self.resized_width, self.resized_height

    def to_model(self, x: float, y: float) -> Tuple[float, float]:
        return x * self.scale + self.dx, y * self.scale + self.dy

    def to_source(self, x: float, y: float) -> Tuple[float, float]:
        return (x - self.dx) / self.scale, (y - self.dy) / self.scale

    def to_source_array(self, xy: np.ndarray) -> np.ndarray:
        """Inverse-map an (N, 2) array of model-input pixel coordinates."""
        out = np.asarray(xy, dtype=np.float64).copy()
        out[:, 0] = (out[:, 0] - self.dx) / self.scale
        out[:, 1] = (out[:, 1] - self.dy) / self.scale
        return out


def compute_letterbox(source_width: int, source_height: int, size: int = 640) -> LetterboxGeometry:
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Source dimensions must be positive, got {source_width}x{source_height}")
    if size <= 0:
        raise ValueError(f"Letterbox size must be positive, got {size}")

    scale = min(size / source_width, size / source_height)
    # Half-up rounding, not round()'s half-to-even.
    resized_w = min(size, max(1, int(math.floor(source_width * scale + 0.5))))
    resized_h = min(size, max(1, int(math.floor(source_height * scale + 0.5))))
    dx = (size - resized_w) // 2
    dy = (size - resized_h) // 2
    return LetterboxGeometry(
        scale=scale,
        resized_width=resized_w,
        resized_height=resized_h,
        dx=dx,
        dy=dy,
        size=size,
    )


def letterbox(
    image: np.ndarray,
    size: int = 640,
    color: Union[int, Tuple[int, int, int]] = 0,
) -> Tuple[np.ndarray, LetterboxGeometry]:
    """
    Resize (bilinear) and pad an HWC image into a `size` x `size` canvas.

    Returns:
        padded: canvas with the resized image placed at (dx, dy)
        geometry: the transform needed to map model coordinates back
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python`.") from e

    h, w = image.shape[:2]
    geom = compute_letterbox(w, h, size)

    if (w, h) != geom.resized:
        image = cv2.resize(image, geom.resized, interpolation=cv2.INTER_LINEAR)

    canvas = np.empty((size, size) + image.shape[2:], dtype=image.dtype)
    canvas[...] = color
    canvas[geom.dy : geom.dy + geom.resized_height, geom.dx : geom.dx + geom.resized_width] = image
    return canvas, geom


def to_blob(padded_bgr: np.ndarray) -> np.ndarray:
    # BGR -> RGB, normalize, HWC -> CHW, add batch
    blob = padded_bgr[:, :, ::-1].astype(np.float32) / 255.0
    return np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])
