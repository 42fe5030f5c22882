from __future__ import annotations

from typing import Optional

import numpy as np

from ..config import MODEL_MOVENET_LIGHTNING, DetectorOptions, resolve_path
from ..letterbox import letterbox
from ..topology import KEYPOINT_NAMES_17
from ..types import Keypoint, PoseResult
from .base import PoseModelAdapter, frame_size

DEFAULT_MODEL_PATH = "models/movenet_singlepose_lightning.onnx"
DEFAULT_INPUT_SIZE = 192


class MoveNetHandle:
    def __init__(self, backend, input_size: int):
        self.backend = backend
        self.input_size = input_size


class MoveNetAdapter(PoseModelAdapter):
    """
    MoveNet SinglePose (Lightning) exported to ONNX.

    The model takes an int32 NHWC RGB image and already emits one pose as
    [1, 1, 17, 3] rows of (y, x, score), normalized to the model input. Only the
    letterbox needs undoing here.
    """

    model_id = MODEL_MOVENET_LIGHTNING
    num_keypoints = 17

    def load(self, options: DetectorOptions) -> MoveNetHandle:
        from ..backends import RUNTIME_ONNX, load_backend

        path = resolve_path(options.model_path or DEFAULT_MODEL_PATH)
        backend = load_backend(path, backend=options.backend, runtime=RUNTIME_ONNX)
        return MoveNetHandle(backend, options.input_size or DEFAULT_INPUT_SIZE)

    def run(self, handle: MoveNetHandle, frame: np.ndarray, timestamp: Optional[float] = None) -> PoseResult:
        frame_size(frame)
        padded, geom = letterbox(frame, handle.input_size)
        blob = np.ascontiguousarray(padded[:, :, ::-1], dtype=np.int32)[None, ...]
        try:
            out = np.asarray(handle.backend.infer(blob), dtype=np.float64).reshape(-1, 3)
        finally:
            del padded, blob

        if out.shape[0] != self.num_keypoints:
            raise ValueError(f"Expected {self.num_keypoints} MoveNet keypoints, got {out.shape[0]}")

        keypoints = []
        for i, (y, x, score) in enumerate(out):
            sx, sy = geom.to_source(x * geom.size, y * geom.size)
            keypoints.append(Keypoint(x=sx, y=sy, visibility=float(score), name=KEYPOINT_NAMES_17[i]))
        return PoseResult(keypoints=keypoints, keypoints_3d=[], timestamp=timestamp)

    def dispose(self, handle: MoveNetHandle) -> None:
        handle.backend.close()
