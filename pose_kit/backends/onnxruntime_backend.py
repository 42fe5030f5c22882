from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import numpy as np


PathLike = Union[str, Path]

logger = logging.getLogger(__name__)

_PROVIDERS_BY_DEVICE = {
    "cpu": ("CPUExecutionProvider",),
    "cuda": ("CUDAExecutionProvider", "CPUExecutionProvider"),
}


def providers_for(device: str) -> Tuple[str, ...]:
    try:
        return _PROVIDERS_BY_DEVICE[device]
    except KeyError:
        raise ValueError(f"Unsupported ONNX Runtime device: {device!r}") from None


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - device: "cpu" or "cuda"; selects the execution providers
    """

    device: str = "cpu"


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend.

    Feeds a single input blob and returns the first output as a NumPy array.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        requested = list(providers_for(cfg.device))
        available = set(ort.get_available_providers())
        providers = [p for p in requested if p in available] or ["CPUExecutionProvider"]
        if providers != requested:
            logger.warning("ONNX Runtime providers %s unavailable, using %s", requested, providers)

        sess_opts = ort.SessionOptions()
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        self.input_name = self.session.get_inputs()[0].name
        self.output_name = self.session.get_outputs()[0].name

    def infer(self, blob: np.ndarray) -> np.ndarray:
        outputs = self.session.run([self.output_name], {self.input_name: blob})
        return outputs[0]

    def close(self) -> None:
        # ORT frees the session (and its device arenas) when the last reference drops.
        self.session = None
