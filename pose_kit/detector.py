from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional

import numpy as np

from .adapters import PoseModelAdapter, default_adapters
from .config import DetectorOptions
from .errors import LoadFailure, PoseKitError, UnsupportedModelError
from .types import PoseResult

logger = logging.getLogger(__name__)


class PoseDetector:
    """
    Uniform pose estimation over several model families.

    Lifecycle: Unloaded -> (initialize) -> Ready(model) -> (close) -> Unloaded.

    - `initialize` loads a model once; concurrent callers share the same
      in-flight load, and re-initializing the loaded model is a no-op.
    - `detect` never raises: with no model loaded, or when a frame fails, it
      logs and returns an empty PoseResult so a render loop keeps running.
    - `close` releases the model and can be called any number of times. A load
      still in flight is waited for first, so the detector ends Unloaded.
    """

    def __init__(
        self,
        options: Optional[DetectorOptions] = None,
        *,
        adapters: Optional[Mapping[str, PoseModelAdapter]] = None,
    ):
        self._options = options or DetectorOptions()
        self._adapters: Dict[str, PoseModelAdapter] = (
            dict(adapters) if adapters is not None else default_adapters()
        )
        self._adapter: Optional[PoseModelAdapter] = None
        self._handle: Any = None
        self._model_id: Optional[str] = None
        self._pending: Optional["asyncio.Task[None]"] = None
        self._run_lock = asyncio.Lock()

    @property
    def model_id(self) -> Optional[str]:
        return self._model_id

    @property
    def is_ready(self) -> bool:
        return self._adapter is not None

    @property
    def options(self) -> DetectorOptions:
        return self._options

    async def initialize(self, options: Optional[DetectorOptions] = None, **overrides: Any) -> None:
        """
        Load a model. Keyword overrides (model, backend, solution_path,
        model_path, input_size, keypoint_coords) are applied on top of
        `options`, or of the detector's current options.

        Raises UnsupportedModelError for unknown models and LoadFailure when the
        artifact cannot be loaded; the previously loaded model (if any) stays
        active in both cases.
        """

        requested = replace(
            options or self._options,
            **{k: v for k, v in overrides.items() if v is not None},
        )

        if self._pending is not None:
            await asyncio.shield(self._pending)
            return
        if self._adapter is not None and self._model_id == requested.model:
            return

        self._pending = asyncio.ensure_future(self._load(requested))
        await asyncio.shield(self._pending)

    async def _load(self, options: DetectorOptions) -> None:
        try:
            adapter = self._adapters.get(options.model)
            if adapter is None:
                raise UnsupportedModelError(options.model, supported=sorted(self._adapters))

            logger.info("Loading pose model %s (backend=%s)", options.model, options.backend)
            try:
                handle = await asyncio.to_thread(adapter.load, options)
            except PoseKitError:
                raise
            except Exception as exc:
                raise LoadFailure(f"Failed to load pose model {options.model!r}: {exc}") from exc

            async with self._run_lock:
                previous_adapter, previous_handle = self._adapter, self._handle
                self._adapter, self._handle = adapter, handle
                self._model_id = options.model
                self._options = options
                if previous_adapter is not None:
                    self._dispose(previous_adapter, previous_handle)
            logger.info("Pose model %s ready", options.model)
        finally:
            self._pending = None

    async def detect(self, frame: np.ndarray, timestamp: Optional[float] = None) -> PoseResult:
        if self._adapter is None:
            logger.warning("Detector not initialized, returning empty result.")
            return PoseResult.empty(timestamp)

        async with self._run_lock:
            adapter, handle = self._adapter, self._handle
            if adapter is None:
                return PoseResult.empty(timestamp)
            try:
                return await asyncio.to_thread(adapter.run, handle, frame, timestamp)
            except Exception:
                logger.exception("Pose detection failed (model=%s), returning empty result.", self._model_id)
                return PoseResult.empty(timestamp)

    async def close(self) -> None:
        pending = self._pending
        if pending is not None:
            # Load errors belong to the initialize() caller.
            await asyncio.wait([pending])
        async with self._run_lock:
            adapter, handle = self._adapter, self._handle
            self._adapter = None
            self._handle = None
            self._model_id = None
            if adapter is not None:
                self._dispose(adapter, handle)

    @staticmethod
    def _dispose(adapter: PoseModelAdapter, handle: Any) -> None:
        try:
            adapter.dispose(handle)
        except Exception:
            logger.exception("Failed to release pose model %s", adapter.model_id)
