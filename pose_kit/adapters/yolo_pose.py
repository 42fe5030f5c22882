from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from ..config import MODEL_YOLO_POSE, DetectorOptions, resolve_path
from ..decode import PoseDecodeConfig, PoseDecoder
from ..letterbox import letterbox, to_blob
from ..types import PoseResult
from .base import PoseModelAdapter, frame_size

DEFAULT_MODEL_PATH = "models/yolov8n-pose.onnx"
DEFAULT_INPUT_SIZE = 640


@dataclass
class YoloPoseHandle:
    backend: Any
    decoder: PoseDecoder

    @property
    def input_size(self) -> int:
        return self.decoder.cfg.input_size


class YoloPoseAdapter(PoseModelAdapter):
    """
    Generic detector-plus-keypoints model (YOLOv8/YOLO11-pose style exports).

    Pipeline per frame: letterbox -> blob -> inference -> PoseDecoder.
    """

    model_id = MODEL_YOLO_POSE
    num_keypoints = 17

    def load(self, options: DetectorOptions) -> YoloPoseHandle:
        from ..backends import load_backend

        path = resolve_path(options.model_path or DEFAULT_MODEL_PATH)
        backend = load_backend(path, backend=options.backend)
        decoder = PoseDecoder(
            PoseDecodeConfig(
                input_size=options.input_size or DEFAULT_INPUT_SIZE,
                num_keypoints=self.num_keypoints,
                keypoint_coords=options.keypoint_coords,
            )
        )
        return YoloPoseHandle(backend=backend, decoder=decoder)

    def run(self, handle: YoloPoseHandle, frame: np.ndarray, timestamp: Optional[float] = None) -> PoseResult:
        frame_size(frame)
        padded = blob = preds = None
        try:
            padded, geom = letterbox(frame, handle.input_size)
            blob = to_blob(padded)
            preds = handle.backend.infer(blob)
            return handle.decoder.decode(preds, geom, timestamp)
        finally:
            del padded, blob, preds

    def dispose(self, handle: YoloPoseHandle) -> None:
        handle.backend.close()
