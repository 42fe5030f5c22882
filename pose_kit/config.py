from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from .decode import COORDS_PIXEL, KEYPOINT_COORDS

PathLike = Union[str, Path]

MODEL_BLAZEPOSE_LITE = "blazepose-lite"
MODEL_MOVENET_LIGHTNING = "movenet-lightning"
MODEL_YOLO_POSE = "yolo-pose"
SUPPORTED_MODELS = (MODEL_BLAZEPOSE_LITE, MODEL_MOVENET_LIGHTNING, MODEL_YOLO_POSE)

SUPPORTED_BACKENDS = ("cpu", "cuda")


@dataclass(frozen=True)
class DetectorOptions:
    """
    Model selection for `PoseDetector`.

    - model: one of SUPPORTED_MODELS (checked by `PoseDetector.initialize`)
    - backend: execution device for tensor runtimes; ignored by MediaPipe
    - solution_path: MediaPipe `.task` bundle for the landmark model
    - model_path: ONNX/TorchScript artifact for tensor models
    - input_size: square model input; None uses the model default
    - keypoint_coords: coordinate convention of detector keypoints
    """

    model: str = MODEL_BLAZEPOSE_LITE
    backend: str = "cpu"
    solution_path: Optional[str] = None
    model_path: Optional[str] = None
    input_size: Optional[int] = None
    keypoint_coords: str = COORDS_PIXEL

    def __post_init__(self) -> None:
        if self.backend not in SUPPORTED_BACKENDS:
            raise ValueError(f"backend must be one of {SUPPORTED_BACKENDS}, got {self.backend!r}")
        if self.input_size is not None and self.input_size <= 0:
            raise ValueError("input_size must be > 0")
        if self.keypoint_coords not in KEYPOINT_COORDS:
            raise ValueError(f"keypoint_coords must be one of {KEYPOINT_COORDS}, got {self.keypoint_coords!r}")


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string if provided")
    return value


def load_detector_options(path: Path) -> DetectorOptions:
    if not path.exists():
        raise FileNotFoundError(f"Detector options not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid detector options JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Detector options must be a JSON object")

    allowed = {"model", "backend", "solution_path", "model_path", "input_size", "keypoint_coords"}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown detector option keys: {unknown}")

    input_size = payload.get("input_size")
    if input_size is not None and (isinstance(input_size, bool) or not isinstance(input_size, int)):
        raise ValueError("input_size must be an integer")

    defaults = DetectorOptions()
    return DetectorOptions(
        model=_optional_str(payload, "model") or defaults.model,
        backend=_optional_str(payload, "backend") or defaults.backend,
        solution_path=_optional_str(payload, "solution_path"),
        model_path=_optional_str(payload, "model_path"),
        input_size=input_size,
        keypoint_coords=_optional_str(payload, "keypoint_coords") or defaults.keypoint_coords,
    )


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", "setup.py", ".git"),
) -> Path:
    """
    Best-effort project root discovery, so relative model paths such as
    `models/yolov8n-pose.onnx` work from any working directory inside the repo.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()

    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Resolve `path` to an absolute Path.

    Absolute paths are returned as-is; relative paths resolve against `root`,
    or the project root when `root` is "auto"/None.
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()
