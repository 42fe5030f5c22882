from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np

from ..config import MODEL_BLAZEPOSE_LITE, DetectorOptions, resolve_path
from ..topology import KEYPOINT_NAMES_33
from ..types import Keypoint, PoseResult
from .base import PoseModelAdapter, frame_size

DEFAULT_SOLUTION_PATH = "models/pose_landmarker_lite.task"


@dataclass
class BlazePoseHandle:
    mp: Any
    landmarker: Any


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


class BlazePoseAdapter(PoseModelAdapter):
    """
    BlazePose (lite) through the MediaPipe Tasks PoseLandmarker.

    Notes:
    - MediaPipe returns normalized image landmarks; they are scaled to frame pixels
      (z uses the same scale as x).
    - World landmarks (metres, hip-centred) become `keypoints_3d`.
    - The runtime is self-contained, so the `backend` option is ignored.
    """

    model_id = MODEL_BLAZEPOSE_LITE
    num_keypoints = 33

    def load(self, options: DetectorOptions) -> BlazePoseHandle:
        try:
            import mediapipe as mp  # type: ignore
            from mediapipe.tasks.python.core.base_options import BaseOptions  # type: ignore
            from mediapipe.tasks.python.vision import PoseLandmarker, PoseLandmarkerOptions, RunningMode  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "mediapipe is required for the BlazePose model. Install it with `pip install mediapipe`."
            ) from e

        solution = resolve_path(options.solution_path or DEFAULT_SOLUTION_PATH)
        if not solution.exists():
            raise FileNotFoundError(str(solution))

        lm_options = PoseLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(solution)),
            running_mode=RunningMode.IMAGE,
            num_poses=1,
        )
        return BlazePoseHandle(mp=mp, landmarker=PoseLandmarker.create_from_options(lm_options))

    def run(self, handle: BlazePoseHandle, frame: np.ndarray, timestamp: Optional[float] = None) -> PoseResult:
        w, h = frame_size(frame)
        rgb = np.ascontiguousarray(frame[:, :, ::-1])
        image = handle.mp.Image(image_format=handle.mp.ImageFormat.SRGB, data=rgb)
        result = handle.landmarker.detect(image)
        if not result or not result.pose_landmarks:
            return PoseResult.empty(timestamp)

        keypoints: List[Keypoint] = []
        for i, lm in enumerate(result.pose_landmarks[0]):
            keypoints.append(
                Keypoint(
                    x=float(lm.x) * w,
                    y=float(lm.y) * h,
                    z=float(lm.z) * w,
                    visibility=_optional_float(getattr(lm, "visibility", None)),
                    name=KEYPOINT_NAMES_33[i] if i < len(KEYPOINT_NAMES_33) else None,
                )
            )

        keypoints_3d: List[Keypoint] = []
        world = getattr(result, "pose_world_landmarks", None)
        if world:
            for i, lm in enumerate(world[0]):
                keypoints_3d.append(
                    Keypoint(
                        x=float(lm.x),
                        y=float(lm.y),
                        z=float(lm.z),
                        visibility=_optional_float(getattr(lm, "visibility", None)),
                        name=KEYPOINT_NAMES_33[i] if i < len(KEYPOINT_NAMES_33) else None,
                    )
                )

        return PoseResult(keypoints=keypoints, keypoints_3d=keypoints_3d, timestamp=timestamp)

    def dispose(self, handle: BlazePoseHandle) -> None:
        handle.landmarker.close()
