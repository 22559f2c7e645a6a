import json
import tempfile
import unittest
from dataclasses import replace
from pathlib import Path

import numpy as np

from pose_kit import (
    DegenerateSizeError,
    PoseConfig,
    PosePipeline,
    PosePostprocessor,
    ShapeError,
    Size,
    detect,
    load_pose_config,
)


def _tensor(rows) -> np.ndarray:
    """
    rows: per anchor [cx, cy, w, h, conf, kx, ky, kc]; returns (1, 8, A).
    """

    return np.array(rows, dtype=np.float32).T[None, ...]


class TestDetect(unittest.TestCase):
    def setUp(self) -> None:
        self.cfg = PoseConfig(target_frame_size=Size(1280, 720), confidence_threshold=0.5)

    def test_end_to_end(self) -> None:
        t = _tensor(
            [
                [101, 101, 10, 10, 0.8, 100, 100, 0.9],  # overlaps anchor 1 by 81, lower score
                [100, 100, 10, 10, 0.9, 96, 96, 0.7],
                [400, 300, 20, 40, 0.6, 400, 300, 0.5],
                [500, 500, 10, 10, 0.5, 500, 500, 0.5],  # exactly at threshold
            ]
        )
        dets = detect(t, None, self.cfg)
        self.assertEqual(len(dets), 2)
        self.assertAlmostEqual(dets[0].confidence, 0.9, places=6)
        self.assertAlmostEqual(dets[1].confidence, 0.6, places=6)

        top = dets[0]
        # top-left (95, 95) in model pixels
        self.assertTrue(np.allclose(top.box.model_norm.as_xywh(), (95 / 640, 95 / 640, 10 / 640, 10 / 640)))
        self.assertTrue(np.allclose(top.box.frame_px.as_xywh(), (190, 106.875, 20, 11.25)))
        self.assertEqual(len(top.keypoints), 1)
        self.assertTrue(np.allclose(top.keypoints[0].frame_px.as_xy(), (192, 108)))
        self.assertAlmostEqual(top.keypoints[0].confidence, 0.7, places=6)

    def test_flat_buffer_with_shape(self) -> None:
        t = _tensor([[100, 100, 10, 10, 0.9, 0, 0, 0]])
        dets = detect(t.ravel().tolist(), (1, 8, 1), self.cfg)
        self.assertEqual(len(dets), 1)

    def test_nothing_detected(self) -> None:
        t = _tensor([[100, 100, 10, 10, 0.1, 0, 0, 0]])
        self.assertEqual(detect(t, None, self.cfg), [])

    def test_shape_error_propagates(self) -> None:
        with self.assertRaises(ShapeError):
            detect(np.zeros((1, 9, 10), dtype=np.float32), None, self.cfg)

    def test_workers_do_not_change_results(self) -> None:
        rng = np.random.default_rng(11)
        t = rng.uniform(0, 640, size=(1, 56, 2000)).astype(np.float32)
        t[0, 4] = rng.uniform(0, 1, size=2000)
        serial = PosePostprocessor(self.cfg).process(t)
        par = PosePostprocessor(replace(self.cfg, decode_workers=4)).process(t)
        self.assertEqual(serial, par)

    def test_max_detections(self) -> None:
        rows = [[50 + 60 * i, 50, 10, 10, 0.5 + 0.01 * i, 0, 0, 0] for i in range(6)]
        cfg = PoseConfig(target_frame_size=(640, 640), max_detections=3)
        self.assertEqual(len(detect(_tensor(rows), None, cfg)), 3)

    def test_pipeline_calls_infer_fn(self) -> None:
        seen = []

        def infer(frame):
            seen.append(frame)
            return _tensor([[100, 100, 10, 10, 0.9, 0, 0, 0]])

        pipe = PosePipeline(infer, self.cfg)
        dets = pipe("frame-0")
        self.assertEqual(seen, ["frame-0"])
        self.assertEqual(len(dets), 1)
        self.assertIs(pipe.cfg, self.cfg)


class TestPoseConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = PoseConfig(target_frame_size=(1920, 1080))
        self.assertEqual(cfg.target_frame_size, Size(1920.0, 1080.0))
        self.assertEqual(cfg.model_input_size, Size(640.0, 640.0))
        self.assertEqual(cfg.confidence_threshold, 0.35)
        self.assertEqual(cfg.iou_threshold, 0.5)

    def test_degenerate_sizes(self) -> None:
        with self.assertRaises(DegenerateSizeError):
            PoseConfig(target_frame_size=(1920, 1080), model_input_size=(0, 640))
        with self.assertRaises(DegenerateSizeError):
            PoseConfig(target_frame_size=(0, 0))

    def test_invalid_values(self) -> None:
        with self.assertRaises(ValueError):
            PoseConfig(target_frame_size=(10, 10), confidence_threshold=1.5)
        with self.assertRaises(ValueError):
            PoseConfig(target_frame_size=(10, 10), decode_workers=0)
        with self.assertRaises(ValueError):
            PoseConfig(target_frame_size=(10, 10), max_detections=0)


class TestLoadPoseConfig(unittest.TestCase):
    def _write(self, payload) -> Path:
        tmp = tempfile.NamedTemporaryFile("w", suffix=".json", delete=False, encoding="utf-8")
        with tmp:
            if isinstance(payload, str):
                tmp.write(payload)
            else:
                json.dump(payload, tmp)
        self.addCleanup(Path(tmp.name).unlink)
        return Path(tmp.name)

    def test_load(self) -> None:
        path = self._write(
            {
                "target_frame_size": [1920, 1080],
                "model_input_size": [320, 320],
                "confidence_threshold": 0.5,
                "decode_workers": 2,
            }
        )
        cfg = load_pose_config(path)
        self.assertEqual(cfg.target_frame_size, Size(1920.0, 1080.0))
        self.assertEqual(cfg.model_input_size, Size(320.0, 320.0))
        self.assertEqual(cfg.confidence_threshold, 0.5)
        self.assertEqual(cfg.iou_threshold, 0.5)
        self.assertEqual(cfg.decode_workers, 2)
        self.assertIsNone(cfg.max_detections)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_pose_config("does/not/exist.json")

    def test_unknown_key(self) -> None:
        with self.assertRaises(ValueError):
            load_pose_config(self._write({"target_frame_size": [1, 1], "nms": 0.5}))

    def test_missing_frame_size(self) -> None:
        with self.assertRaises(ValueError):
            load_pose_config(self._write({"confidence_threshold": 0.5}))

    def test_bool_is_not_a_number(self) -> None:
        with self.assertRaises(ValueError):
            load_pose_config(self._write({"target_frame_size": [1, 1], "iou_threshold": True}))

    def test_invalid_json(self) -> None:
        with self.assertRaises(ValueError):
            load_pose_config(self._write("{not json"))

    def test_zero_size_in_file(self) -> None:
        with self.assertRaises(DegenerateSizeError):
            load_pose_config(self._write({"target_frame_size": [0, 1080]}))


if __name__ == "__main__":
    unittest.main()
