from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .letterbox import LetterboxGeometry
from .nms import NMSConfig, nms
from .topology import KEYPOINT_NAMES_17
from .types import Keypoint, PoseResult

logger = logging.getLogger(__name__)

COORDS_PIXEL = "pixel"
COORDS_NORMALIZED = "normalized"
COORDS_AUTO = "auto"
KEYPOINT_COORDS = (COORDS_PIXEL, COORDS_NORMALIZED, COORDS_AUTO)


@dataclass(frozen=True)
class PoseDecodeConfig:
    """
    Post-processing settings for detector-style pose exports.

    `keypoint_coords` declares how the model emits keypoint x/y:
    - "pixel": model-input pixels (YOLOv8/YOLO11-pose exports)
    - "normalized": [0, 1] relative to the model input
    - "auto": per keypoint, treat x <= 1 and y <= 1 as normalized. A pixel-space
      keypoint in the top-left 1x1 corner is misread, so only use this for
      artifacts of unknown provenance.
    """

    input_size: int = 640
    num_keypoints: int = 17
    iou_threshold: float = 0.45
    score_threshold: float = 0.3
    max_detections: int = 50
    keypoint_coords: str = COORDS_PIXEL

    def __post_init__(self) -> None:
        if self.input_size <= 0:
            raise ValueError("input_size must be > 0")
        if self.num_keypoints <= 0:
            raise ValueError("num_keypoints must be > 0")
        if self.keypoint_coords not in KEYPOINT_COORDS:
            raise ValueError(f"keypoint_coords must be one of {KEYPOINT_COORDS}, got {self.keypoint_coords!r}")

    @property
    def channels(self) -> int:
        return 5 + 3 * self.num_keypoints


class PoseDecoder:
    """
    Decoder for single-class pose detector outputs.

    Layout (per image), C = 5 + 3K:
    - (N, C): [cx, cy, w, h, obj, kp1_x, kp1_y, kp1_v, ..., kpK_x, kpK_y, kpK_v]
    - (C, N): the same, channels first (e.g. 56 x 8400 for YOLOv8-pose)
    - either of the above with a leading batch axis of 1

    Only the top-scoring detection after NMS is returned.
    """

    def __init__(self, cfg: PoseDecodeConfig = PoseDecodeConfig()):
        self.cfg = cfg
        self._nms_cfg = NMSConfig(
            iou_threshold=cfg.iou_threshold,
            score_threshold=cfg.score_threshold,
            max_detections=cfg.max_detections,
        )
        self._names = KEYPOINT_NAMES_17 if cfg.num_keypoints == 17 else None

    def decode(
        self,
        preds: np.ndarray,
        geometry: LetterboxGeometry,
        timestamp: Optional[float] = None,
    ) -> PoseResult:
        rows = self._rows(preds)
        boxes, scores, kpts = self._decode_rows(rows)
        if boxes.shape[0] == 0:
            return PoseResult.empty(timestamp)

        keep = nms(boxes, scores, self._nms_cfg)
        if keep.size == 0:
            return PoseResult.empty(timestamp)

        best = int(keep[0])
        keypoints = self._restore(kpts[best], geometry)
        return PoseResult(keypoints=keypoints, keypoints_3d=[], timestamp=timestamp)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _rows(self, preds: np.ndarray) -> np.ndarray:
        """Normalize the raw output to (N, C) rows."""

        p = np.asarray(preds, dtype=np.float32)
        if p.ndim == 3:
            if p.shape[0] != 1:
                raise ValueError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
            p = p[0]
        if p.ndim != 2:
            raise ValueError(f"Unsupported pose output shape: {p.shape}")

        c = self.cfg.channels
        if p.shape[1] == c:
            return p
        if p.shape[0] == c:
            return p.T
        raise ValueError(f"Expected {c} channels (5 + 3 * {self.cfg.num_keypoints}), got shape {p.shape}")

    def _decode_rows(self, rows: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Split rows into xyxy boxes, scores and (N, K, 3) keypoints, dropping unusable rows."""

        cx, cy, w, h, score = (rows[:, i] for i in range(5))
        valid = np.isfinite(rows[:, :5]).all(axis=1) & (w > 0) & (h > 0)
        dropped = int(rows.shape[0] - np.count_nonzero(valid))
        if dropped:
            logger.debug("Dropped %d degenerate pose candidates", dropped)

        cx, cy, w, h, score = cx[valid], cy[valid], w[valid], h[valid], score[valid]
        x1 = cx - w / 2
        y1 = cy - h / 2
        boxes = np.stack([x1, y1, x1 + w, y1 + h], axis=1)
        kpts = rows[valid, 5:].reshape(-1, self.cfg.num_keypoints, 3)
        return boxes, score, kpts

    def _restore(self, kpts: np.ndarray, geometry: LetterboxGeometry) -> List[Keypoint]:
        """Map one detection's keypoints from model input space to source pixels."""

        xy = kpts[:, :2].astype(np.float64)
        mode = self.cfg.keypoint_coords
        if mode == COORDS_NORMALIZED:
            xy = xy * geometry.size
        elif mode == COORDS_AUTO:
            normalized = (xy[:, 0] <= 1.0) & (xy[:, 1] <= 1.0)
            xy[normalized] *= geometry.size

        src = geometry.to_source_array(xy)
        out: List[Keypoint] = []
        for i, ((x, y), v) in enumerate(zip(src, kpts[:, 2])):
            out.append(
                Keypoint(
                    x=float(x),
                    y=float(y),
                    visibility=float(v),
                    name=self._names[i] if self._names else None,
                )
            )
        return out
