"""
Single-person pose estimation behind one interface.

Three model families (MediaPipe BlazePose, MoveNet, YOLO-pose style detectors)
are exposed through `PoseDetector`, which always returns keypoints in source
image pixels. The geometry, NMS and decode helpers only need NumPy and OpenCV;
inference runtimes are imported when a model is loaded.
"""

from .types import Keypoint, PoseResult
from .topology import EDGES_17, EDGES_33, KEYPOINT_NAMES_17, KEYPOINT_NAMES_33, edges_for
from .errors import LoadFailure, PoseKitError, UnsupportedModelError
from .letterbox import LetterboxGeometry, compute_letterbox, letterbox, to_blob
from .nms import NMSConfig, box_iou, nms
from .decode import PoseDecodeConfig, PoseDecoder
from .config import SUPPORTED_BACKENDS, SUPPORTED_MODELS, DetectorOptions, load_detector_options, resolve_path
from .adapters import PoseModelAdapter, default_adapters
from .detector import PoseDetector

__all__ = [
    "Keypoint",
    "PoseResult",
    "EDGES_17",
    "EDGES_33",
    "KEYPOINT_NAMES_17",
    "KEYPOINT_NAMES_33",
    "edges_for",
    "LoadFailure",
    "PoseKitError",
    "UnsupportedModelError",
    "LetterboxGeometry",
    "compute_letterbox",
    "letterbox",
    "to_blob",
    "NMSConfig",
    "box_iou",
    "nms",
    "PoseDecodeConfig",
    "PoseDecoder",
    "SUPPORTED_BACKENDS",
    "SUPPORTED_MODELS",
    "DetectorOptions",
    "load_detector_options",
    "resolve_path",
    "PoseModelAdapter",
    "default_adapters",
    "PoseDetector",
]
