import asyncio
import tempfile
import time
import unittest
from pathlib import Path
from typing import Any, List, Optional

import numpy as np

from pose_kit.adapters import PoseModelAdapter, default_adapters
from pose_kit.config import DetectorOptions
from pose_kit.detector import PoseDetector
from pose_kit.errors import LoadFailure, UnsupportedModelError
from pose_kit.types import Keypoint, PoseResult


class FakeAdapter(PoseModelAdapter):
    num_keypoints = 17

    def __init__(self, model_id: str, *, delay: float = 0.0, fail: Optional[Exception] = None):
        self.model_id = model_id
        self.delay = delay
        self.fail = fail
        self.run_error: Optional[Exception] = None
        self.loads = 0
        self.disposed: List[Any] = []

    def load(self, options: DetectorOptions) -> Any:
        self.loads += 1
        if self.delay:
            time.sleep(self.delay)
        if self.fail is not None:
            raise self.fail
        return {"model": self.model_id, "load": self.loads, "backend": options.backend}

    def run(self, handle: Any, frame: np.ndarray, timestamp: Optional[float] = None) -> PoseResult:
        if self.run_error is not None:
            raise self.run_error
        return PoseResult(keypoints=[Keypoint(x=1.0, y=2.0, visibility=0.9, name=handle["model"])], timestamp=timestamp)

    def dispose(self, handle: Any) -> None:
        self.disposed.append(handle)


FRAME = np.zeros((4, 4, 3), dtype=np.uint8)


class TestPoseDetector(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.a = FakeAdapter("a", delay=0.05)
        self.b = FakeAdapter("b")
        self.detector = PoseDetector(DetectorOptions(model="a"), adapters={"a": self.a, "b": self.b})

    async def test_detect_before_initialize_returns_empty(self) -> None:
        with self.assertLogs("pose_kit.detector", level="WARNING"):
            result = await self.detector.detect(FRAME, 1.5)
        self.assertEqual(result.keypoints, [])
        self.assertEqual(result.keypoints_3d, [])
        self.assertEqual(result.timestamp, 1.5)

    async def test_concurrent_initialize_loads_once(self) -> None:
        await asyncio.gather(
            self.detector.initialize(model="a"),
            self.detector.initialize(model="a"),
        )
        self.assertEqual(self.a.loads, 1)
        self.assertTrue(self.detector.is_ready)
        self.assertEqual(self.detector.model_id, "a")
        self.assertIsNone(self.detector._pending)

    async def test_sequential_initialize_same_model_is_noop(self) -> None:
        await self.detector.initialize()
        await self.detector.initialize(model="a")
        self.assertEqual(self.a.loads, 1)

    async def test_initialize_uses_options_and_overrides(self) -> None:
        await self.detector.initialize(DetectorOptions(model="b", backend="cuda"))
        self.assertEqual(self.detector.model_id, "b")
        self.assertEqual(self.detector.options.backend, "cuda")
        result = await self.detector.detect(FRAME)
        self.assertEqual(result.keypoints[0].name, "b")

    async def test_unsupported_model_clears_pending(self) -> None:
        with self.assertRaises(UnsupportedModelError):
            await self.detector.initialize(model="nope")
        self.assertIsNone(self.detector._pending)
        self.assertFalse(self.detector.is_ready)

        await self.detector.initialize(model="a")
        self.assertTrue(self.detector.is_ready)

    async def test_load_failure_is_wrapped(self) -> None:
        self.b.fail = OSError("artifact missing")
        with self.assertRaises(LoadFailure) as ctx:
            await self.detector.initialize(model="b")
        self.assertIsInstance(ctx.exception.__cause__, OSError)
        self.assertFalse(self.detector.is_ready)
        self.assertIsNone(self.detector._pending)

    async def test_failed_switch_keeps_previous_model(self) -> None:
        await self.detector.initialize(model="a")
        self.b.fail = RuntimeError("bad graph")
        with self.assertRaises(LoadFailure):
            await self.detector.initialize(model="b")
        self.assertEqual(self.detector.model_id, "a")
        self.assertEqual(self.a.disposed, [])

    async def test_switching_model_disposes_previous(self) -> None:
        await self.detector.initialize(model="a")
        await self.detector.initialize(model="b")
        self.assertEqual(self.detector.model_id, "b")
        self.assertEqual(len(self.a.disposed), 1)
        self.assertEqual(self.a.disposed[0]["model"], "a")

    async def test_detect_passes_through_adapter_result(self) -> None:
        await self.detector.initialize()
        result = await self.detector.detect(FRAME, 2.0)
        self.assertEqual(len(result.keypoints), 1)
        self.assertEqual(result.timestamp, 2.0)

    async def test_detect_swallows_frame_errors(self) -> None:
        await self.detector.initialize()
        self.a.run_error = ValueError("bad tensor")
        with self.assertLogs("pose_kit.detector", level="ERROR"):
            result = await self.detector.detect(FRAME, 4.0)
        self.assertTrue(result.is_empty)
        self.assertEqual(result.timestamp, 4.0)

    async def test_close_is_idempotent(self) -> None:
        await self.detector.close()
        await self.detector.initialize()
        await self.detector.close()
        await self.detector.close()
        self.assertEqual(len(self.a.disposed), 1)
        self.assertFalse(self.detector.is_ready)
        self.assertIsNone(self.detector.model_id)

        with self.assertLogs("pose_kit.detector", level="WARNING"):
            result = await self.detector.detect(FRAME)
        self.assertTrue(result.is_empty)

    async def test_initialize_after_close_reloads(self) -> None:
        await self.detector.initialize()
        await self.detector.close()
        await self.detector.initialize()
        self.assertEqual(self.a.loads, 2)

    async def test_detectors_do_not_share_pending_load(self) -> None:
        other_adapter = FakeAdapter("a", delay=0.05)
        other = PoseDetector(DetectorOptions(model="a"), adapters={"a": other_adapter})
        await asyncio.gather(self.detector.initialize(), other.initialize())
        self.assertEqual(self.a.loads, 1)
        self.assertEqual(other_adapter.loads, 1)


    async def test_close_during_load_ends_unloaded(self) -> None:
        init = asyncio.ensure_future(self.detector.initialize())
        await asyncio.sleep(0.01)
        self.assertIsNotNone(self.detector._pending)

        await self.detector.close()
        await init
        self.assertFalse(self.detector.is_ready)
        self.assertIsNone(self.detector.model_id)
        self.assertEqual(self.a.loads, 1)
        self.assertEqual(len(self.a.disposed), 1)

    async def test_close_during_failed_load(self) -> None:
        self.a.fail = RuntimeError("corrupt weights")
        init = asyncio.ensure_future(self.detector.initialize())
        await asyncio.sleep(0.01)

        await self.detector.close()
        with self.assertRaises(LoadFailure):
            await init
        self.assertFalse(self.detector.is_ready)
        self.assertEqual(self.a.disposed, [])


class TestDefaultAdapterLoadFailures(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.detector = PoseDetector(adapters=default_adapters())

    async def test_missing_yolo_model_file(self) -> None:
        missing = Path(self.tmpdir.name) / "missing.onnx"
        with self.assertRaises(LoadFailure) as ctx:
            await self.detector.initialize(model="yolo-pose", model_path=str(missing))
        self.assertIsInstance(ctx.exception.__cause__, FileNotFoundError)
        self.assertFalse(self.detector.is_ready)
        self.assertIsNone(self.detector.model_id)
        self.assertIsNone(self.detector._pending)

    async def test_missing_movenet_model_file(self) -> None:
        missing = Path(self.tmpdir.name) / "movenet.onnx"
        with self.assertRaises(LoadFailure) as ctx:
            await self.detector.initialize(model="movenet-lightning", model_path=str(missing))
        self.assertIsInstance(ctx.exception.__cause__, FileNotFoundError)
        self.assertFalse(self.detector.is_ready)


if __name__ == "__main__":
    unittest.main()
