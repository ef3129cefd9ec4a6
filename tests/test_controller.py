import unittest
from unittest import mock

import numpy as np

from ssd_kit.controller import InferenceController
from ssd_kit.postprocess import DetectionFilterConfig
from ssd_kit.session import InferenceSession


def _output(rows, slots=4):
    out = np.full((slots, 7), -1.0, dtype=np.float32)
    for i, row in enumerate(rows):
        out[i] = row
    return out.reshape(1, 1, slots, 7)


PERSON_A = [0, 1, 0.9, 0.1, 0.1, 0.5, 0.5]
PERSON_B = [0, 1, 0.8, 0.2, 0.2, 0.4, 0.4]
CHAIR = [0, 62, 0.95, 0.0, 0.0, 1.0, 1.0]


class ScriptedBackend:
    """Returns a queued output per call."""

    input_shape = (1, 3, 6, 8)
    output_shape = (1, 1, 4, 7)

    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.calls = 0

    def infer(self, blob):
        self.calls += 1
        item = self.outputs.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _controller(backend, **kwargs) -> InferenceController:
    session = InferenceSession("models/fake.onnx", "MULTI")
    controller = InferenceController(session=session, **kwargs)
    with mock.patch("ssd_kit.session.open_backend", return_value=backend):
        assert controller.start()
    return controller


def _frame(h=720, w=960):
    return np.zeros((h, w, 3), dtype=np.uint8)


class TestInferenceController(unittest.TestCase):
    def test_frame_to_detections(self) -> None:
        backend = ScriptedBackend([_output([PERSON_A, CHAIR])])
        controller = _controller(backend)

        dets = controller.process_frames(_frame(), depth=np.zeros((720, 960), dtype=np.uint16))

        self.assertEqual(len(dets), 1)
        self.assertEqual(dets[0].as_xyxy(), (91, 68, 504, 378))
        self.assertIs(controller.results, dets)

    def test_per_call_isolation(self) -> None:
        backend = ScriptedBackend([_output([PERSON_A, PERSON_B]), _output([PERSON_B])])
        controller = _controller(backend)

        first = controller.process_frames(_frame())
        first_boxes = [d.as_xyxy() for d in first]
        second = controller.process_frames(_frame())

        self.assertEqual(len(first_boxes), 2)
        self.assertEqual(len(second), 1)
        self.assertEqual(second[0].as_xyxy(), first_boxes[1])
        self.assertEqual([d.as_xyxy() for d in first], first_boxes)

    def test_inference_failure_yields_empty_and_recovers(self) -> None:
        backend = ScriptedBackend([_output([PERSON_A]), RuntimeError("boom"), _output([PERSON_B])])
        controller = _controller(backend)

        self.assertEqual(len(controller.process_frames(_frame())), 1)
        with self.assertLogs("ssd_kit.session", level="ERROR"):
            self.assertEqual(controller.process_frames(_frame()), [])
        self.assertEqual(controller.results, [])
        self.assertEqual(len(controller.process_frames(_frame())), 1)

    def test_bad_frame_is_dropped(self) -> None:
        backend = ScriptedBackend([_output([PERSON_A])])
        controller = _controller(backend)

        with self.assertLogs("ssd_kit.controller", level="ERROR"):
            self.assertEqual(controller.process_frames(np.zeros((10, 10), dtype=np.uint8)), [])
        self.assertEqual(backend.calls, 0)
        self.assertEqual(len(controller.process_frames(_frame())), 1)

    def test_not_started_produces_nothing(self) -> None:
        controller = InferenceController("models/fake.onnx", "CPU")
        with self.assertLogs("ssd_kit.controller", level="ERROR"):
            self.assertEqual(controller.process_frames(_frame()), [])

    def test_failed_start(self) -> None:
        controller = InferenceController("does/not/exist.onnx", "CPU")
        with self.assertLogs("ssd_kit", level="ERROR"):
            self.assertFalse(controller.start())
        with self.assertLogs("ssd_kit.controller", level="ERROR"):
            self.assertEqual(controller.process_frames(_frame()), [])

    def test_filter_config_is_applied(self) -> None:
        backend = ScriptedBackend([_output([PERSON_A, CHAIR])])
        controller = _controller(backend, filter_cfg=DetectionFilterConfig(target_label=62))

        dets = controller.process_frames(_frame())

        self.assertEqual([d.label for d in dets], [62])
        self.assertEqual(dets[0].as_xyxy(), (0, 0, 960, 720))

    def test_non_finite_slots_are_dropped(self) -> None:
        nan = float("nan")
        outputs = [
            _output([[0, nan, 0.9, 0.1, 0.1, 0.5, 0.5], PERSON_B]),
            _output([[0, 1, 0.9, nan, nan, nan, nan], PERSON_B]),
            _output([[0, 1, nan, 0.1, 0.1, 0.5, 0.5]]),
        ]
        controller = _controller(ScriptedBackend(outputs))
        expected = (182, 136, 403, 302)

        self.assertEqual([d.as_xyxy() for d in controller.process_frames(_frame())], [expected])
        self.assertEqual([d.as_xyxy() for d in controller.process_frames(_frame())], [expected])
        self.assertEqual(controller.process_frames(_frame()), [])

    def test_decode_failure_yields_empty_and_recovers(self) -> None:
        controller = _controller(ScriptedBackend([_output([PERSON_A]), _output([PERSON_A])]))

        with mock.patch.object(controller.filter, "process", side_effect=OverflowError("bad slot")):
            with self.assertLogs("ssd_kit.controller", level="ERROR"):
                self.assertEqual(controller.process_frames(_frame()), [])
        self.assertEqual(controller.results, [])
        self.assertEqual(len(controller.process_frames(_frame())), 1)

    def test_logs_per_frame(self) -> None:
        controller = _controller(ScriptedBackend([_output([PERSON_A])]))
        with self.assertLogs("ssd_kit.controller", level="INFO") as logs:
            controller.process_frames(_frame())
        self.assertIn("Inferred a frame", "\n".join(logs.output))


if __name__ == "__main__":
    unittest.main()
