import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

import numpy as np

from ssd_kit.backends import open_backend
from ssd_kit.backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig
from ssd_kit.policy import parse_backend_policy


def _fake_ort_session(input_type="tensor(uint8)"):
    sess = mock.MagicMock()
    sess.get_inputs.return_value = [SimpleNamespace(name="image_tensor", shape=[1, 3, 300, 300], type=input_type)]
    sess.get_outputs.return_value = [SimpleNamespace(name="detection_out", shape=[1, 1, 100, 7], type="tensor(float)")]
    sess.get_providers.return_value = ["CPUExecutionProvider"]
    sess.run.return_value = [np.zeros((1, 1, 100, 7), dtype=np.float64)]
    return sess


class TestOnnxRuntimeBackend(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.model = Path(tmpdir.name) / "ssd.onnx"
        self.model.write_bytes(b"")

    def _open(self, policy: str, sess, available=("CPUExecutionProvider",)):
        with mock.patch("onnxruntime.get_available_providers", return_value=list(available)), mock.patch(
            "onnxruntime.InferenceSession", return_value=sess
        ) as ctor:
            backend = OnnxRuntimeBackend(self.model, OnnxRuntimeBackendConfig(policy=parse_backend_policy(policy)))
        return backend, ctor

    def test_shapes_and_providers(self) -> None:
        backend, ctor = self._open("MULTI", _fake_ort_session())

        self.assertEqual(backend.input_shape, (1, 3, 300, 300))
        self.assertEqual(backend.output_shape, (1, 1, 100, 7))
        self.assertEqual(backend.providers_in_use, ("CPUExecutionProvider",))
        self.assertEqual(ctor.call_args.kwargs["providers"], ["CPUExecutionProvider"])

    def test_uint8_passthrough_and_float32_output(self) -> None:
        sess = _fake_ort_session()
        backend, _ = self._open("CPU", sess)
        blob = np.ones((1, 3, 300, 300), dtype=np.uint8)

        out = backend.infer(blob)

        feed = sess.run.call_args.args[1]["image_tensor"]
        self.assertIs(feed, blob)
        self.assertEqual(out.dtype, np.float32)

    def test_float_model_input_is_converted(self) -> None:
        sess = _fake_ort_session(input_type="tensor(float)")
        backend, _ = self._open("CPU", sess)

        backend.infer(np.full((1, 3, 300, 300), 200, dtype=np.uint8))

        feed = sess.run.call_args.args[1]["image_tensor"]
        self.assertEqual(feed.dtype, np.float32)
        self.assertEqual(float(feed.max()), 200.0)

    def test_unavailable_device(self) -> None:
        with self.assertRaises(RuntimeError):
            self._open("GPU", _fake_ort_session())

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            OnnxRuntimeBackend(self.model.with_name("missing.onnx"))

    def test_open_backend_by_extension(self) -> None:
        with self.assertRaises(ValueError):
            open_backend("models/ssd.xml", parse_backend_policy("CPU"))


if __name__ == "__main__":
    unittest.main()
