"""
Inference runtimes for tensor-model adapters.

Runtimes are imported lazily so the geometry/decode core stays usable without
installing onnxruntime or torch.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]

RUNTIME_ONNX = "onnxruntime"
RUNTIME_TORCHSCRIPT = "torchscript"


def infer_runtime(model_path: PathLike) -> str:
    suffix = Path(model_path).suffix.lower()
    if suffix == ".onnx":
        return RUNTIME_ONNX
    if suffix in {".torchscript", ".ts", ".pt"}:
        return RUNTIME_TORCHSCRIPT
    raise ValueError(f"Could not infer runtime from extension '{suffix}'. Pass runtime=... explicitly.")


def load_backend(model_path: PathLike, *, backend: str = "cpu", runtime: Optional[str] = None):
    """
    Open a model artifact on the given device ("cpu" or "cuda").

    Returns an object exposing `infer(blob) -> np.ndarray` and `close()`.
    """

    chosen = (runtime or infer_runtime(model_path)).lower()
    if chosen not in (RUNTIME_ONNX, RUNTIME_TORCHSCRIPT):
        raise ValueError(f"Unsupported runtime: {runtime!r}")
    if not Path(model_path).exists():
        raise FileNotFoundError(str(model_path))

    if chosen == RUNTIME_ONNX:
        from .onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        return OnnxRuntimeBackend(model_path, OnnxRuntimeBackendConfig(device=backend))

    if chosen == RUNTIME_TORCHSCRIPT:
        from .torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        return TorchScriptBackend(model_path, TorchScriptBackendConfig(device=backend))


__all__ = ["RUNTIME_ONNX", "RUNTIME_TORCHSCRIPT", "infer_runtime", "load_backend"]
