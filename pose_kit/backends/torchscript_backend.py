from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np


PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    """

    device: str = "cpu"


class TorchScriptBackend:
    """
    Minimal TorchScript backend using `torch.jit.load`.

    Every device tensor created by `infer` is local to the call and released
    before it returns, including when the model raises. Models returning a
    tuple/list contribute their first output.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        if cfg.device == "cuda" and not torch.cuda.is_available():
            raise RuntimeError("CUDA was requested but is not available in this torch install.")

        self.device = torch.device(cfg.device)

        model = torch.jit.load(str(self.model_path), map_location=self.device)
        model.eval()
        self.model = model

    def infer(self, blob: np.ndarray) -> np.ndarray:
        torch = self._torch
        x = y = None
        try:
            x = torch.as_tensor(blob, device=self.device).float().contiguous()

            with torch.no_grad():
                y = self.model(x)

            if isinstance(y, (tuple, list)):
                y = y[0]
            return y.detach().to("cpu").float().numpy()
        finally:
            del x, y
            if self.device.type == "cuda":
                torch.cuda.empty_cache()

    def close(self) -> None:
        self.model = None
        if self.device.type == "cuda":
            self._torch.cuda.empty_cache()
