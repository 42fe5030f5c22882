import contextlib
import tempfile
import unittest
from dataclasses import fields
from pathlib import Path
from types import SimpleNamespace

import numpy as np

from pose_kit.backends import RUNTIME_ONNX, RUNTIME_TORCHSCRIPT, infer_runtime, load_backend
from pose_kit.backends.onnxruntime_backend import OnnxRuntimeBackendConfig, providers_for
from pose_kit.backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig


class FakeTensor:
    def __init__(self, data):
        self.data = np.asarray(data)

    def float(self):
        return FakeTensor(self.data.astype(np.float32))

    def contiguous(self):
        return self

    def detach(self):
        return self

    def to(self, device):
        return self

    def numpy(self):
        return self.data


class FakeTorch:
    def __init__(self):
        self.cache_clears = 0
        self.cuda = SimpleNamespace(empty_cache=self._empty_cache)

    def _empty_cache(self):
        self.cache_clears += 1

    def as_tensor(self, data, device=None):
        return FakeTensor(data)

    def no_grad(self):
        return contextlib.nullcontext()


def _torchscript_backend(model, device_type: str = "cuda") -> TorchScriptBackend:
    backend = TorchScriptBackend.__new__(TorchScriptBackend)
    backend._torch = FakeTorch()
    backend.device = SimpleNamespace(type=device_type)
    backend.model = model
    return backend


class TestBackendSelection(unittest.TestCase):
    def test_runtime_from_extension(self) -> None:
        self.assertEqual(infer_runtime("models/yolov8n-pose.onnx"), RUNTIME_ONNX)
        self.assertEqual(infer_runtime("models/yolov8n-pose.ONNX"), RUNTIME_ONNX)
        self.assertEqual(infer_runtime("models/yolov8n-pose.torchscript"), RUNTIME_TORCHSCRIPT)
        self.assertEqual(infer_runtime("models/pose.pt"), RUNTIME_TORCHSCRIPT)
        with self.assertRaises(ValueError):
            infer_runtime("models/pose.engine")

    def test_unknown_runtime(self) -> None:
        with self.assertRaises(ValueError):
            load_backend("models/pose.bin", runtime="openvino")

    def test_missing_model_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            for name in ("missing.onnx", "missing.torchscript"):
                with self.assertRaises(FileNotFoundError):
                    load_backend(Path(tmpdir) / name)

    def test_configs_only_select_device(self) -> None:
        for cfg_type in (OnnxRuntimeBackendConfig, TorchScriptBackendConfig):
            self.assertEqual([f.name for f in fields(cfg_type)], ["device"])
            self.assertEqual(cfg_type().device, "cpu")

    def test_onnx_providers_for_device(self) -> None:
        self.assertEqual(providers_for("cpu"), ("CPUExecutionProvider",))
        self.assertEqual(providers_for("cuda")[0], "CUDAExecutionProvider")
        with self.assertRaises(ValueError):
            providers_for("webgl")


class TestTorchScriptInfer(unittest.TestCase):
    def test_tuple_output_uses_first_element(self) -> None:
        backend = _torchscript_backend(lambda x: (FakeTensor(x.data * 2), FakeTensor([0])))
        out = backend.infer(np.ones((1, 3, 2, 2), dtype=np.float32))
        self.assertEqual(out.shape, (1, 3, 2, 2))
        self.assertTrue(np.allclose(out, 2.0))
        self.assertEqual(backend._torch.cache_clears, 1)

    def test_cache_cleared_when_model_raises(self) -> None:
        def broken(x):
            raise RuntimeError("CUDA out of memory")

        backend = _torchscript_backend(broken)
        with self.assertRaises(RuntimeError):
            backend.infer(np.zeros((1, 3, 2, 2), dtype=np.float32))
        self.assertEqual(backend._torch.cache_clears, 1)

    def test_cpu_device_leaves_cache_alone(self) -> None:
        backend = _torchscript_backend(lambda x: x, device_type="cpu")
        backend.infer(np.zeros((1, 3, 2, 2), dtype=np.float32))
        backend.close()
        self.assertEqual(backend._torch.cache_clears, 0)
        self.assertIsNone(backend.model)


if __name__ == "__main__":
    unittest.main()
