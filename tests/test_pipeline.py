"""
Tests for the producer/consumer loops.
"""

import os
import sys
import tempfile
import unittest

import cv2
import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from face_tracker.pipeline import (  # type: ignore
    capture_frames,
    read_images,
    run_publisher,
    run_tracker,
)
from face_tracker.tracking import FaceTracker, Region, TrackingMode  # type: ignore


class FakeSource:
    """Stands in for VideoProcessor; None entries are empty captures."""

    def __init__(self, frames, source_is_file=False):
        self.frames = list(frames)
        self.source_is_file = source_is_file

    def is_opened(self):
        return bool(self.frames)

    def capture_frame(self):
        return self.frames.pop(0)


class RecordingPublisher:
    def __init__(self):
        self.frames = []

    def publish(self, frame):
        self.frames.append(frame)
        return frame.nbytes


class StaticLocator:
    def __init__(self, regions):
        self.regions = regions

    def locate_faces(self, gray):
        return list(self.regions)


class GridSelector:
    def select_features(self, gray, region):
        xs = np.linspace(region.x, region.x + region.width, 4)
        ys = np.linspace(region.y, region.y + region.height, 2)
        return np.array([[x, y] for y in ys for x in xs], dtype=np.float32)


class StillEstimator:
    def estimate_motion(self, prev_gray, gray, points):
        n = len(points)
        return points.copy(), np.ones(n, dtype=bool), np.zeros(n, dtype=np.float32)


def make_frame(value=0):
    return np.full((60, 80, 3), value, dtype=np.uint8)


class TestCaptureFrames(unittest.TestCase):
    def test_camera_retries_empty_captures(self):
        sleeps = []
        source = FakeSource([None, make_frame(1), None, make_frame(2)])

        frames = list(capture_frames(source, empty_frame_delay=0.25, sleep=sleeps.append))

        self.assertEqual([int(f[0, 0, 0]) for f in frames], [1, 2])
        self.assertEqual(sleeps, [0.25, 0.25])

    def test_video_file_ends_on_empty_capture(self):
        source = FakeSource([make_frame(1), None, make_frame(2)], source_is_file=True)

        frames = list(capture_frames(source, sleep=lambda _: self.fail("should not sleep")))

        self.assertEqual(len(frames), 1)


class TestRunPublisher(unittest.TestCase):
    def test_publishes_every_frame(self):
        publisher = RecordingPublisher()
        count = run_publisher([make_frame(i) for i in range(4)], publisher)
        self.assertEqual(count, 4)
        self.assertEqual(len(publisher.frames), 4)

    def test_max_frames_stops_early(self):
        publisher = RecordingPublisher()
        count = run_publisher(iter([make_frame(i) for i in range(10)]), publisher, max_frames=3)
        self.assertEqual(count, 3)


class TestRunTracker(unittest.TestCase):
    def make_tracker(self, regions):
        return FaceTracker(
            face_locator=StaticLocator(regions),
            feature_selector=GridSelector(),
            motion_estimator=StillEstimator(),
        )

    def test_detects_then_tracks(self):
        face = Region(10, 10, 30, 30)
        tracker = self.make_tracker([face])
        results = []

        count = run_tracker([make_frame() for _ in range(3)], tracker, on_result=results.append)

        self.assertEqual(count, 3)
        self.assertEqual([r.source for r in results], ["detection", "optical_flow", "optical_flow"])
        self.assertTrue(all(r.mode == TrackingMode.TRACK for r in results))
        self.assertEqual(results[1].region, face)
        self.assertEqual([r.frame_index for r in results], [1, 2, 3])

    def test_max_frames(self):
        tracker = self.make_tracker([])
        results = []

        count = run_tracker(
            (make_frame() for _ in range(100)), tracker, max_frames=5, on_result=results.append
        )

        self.assertEqual(count, 5)
        self.assertTrue(all(r.mode == TrackingMode.SEARCH for r in results))

    def test_default_logging_callback(self):
        tracker = self.make_tracker([Region(10, 10, 30, 30)])
        with self.assertLogs("face_tracker.pipeline", level="INFO") as logs:
            run_tracker([make_frame(), make_frame()], tracker)
        self.assertTrue(any("mode=track" in line for line in logs.output))


class TestReadImages(unittest.TestCase):
    def test_reads_in_order(self):
        with tempfile.TemporaryDirectory() as tmp:
            paths = []
            for i, value in enumerate((20, 220)):
                path = os.path.join(tmp, f"frame{i}.png")
                cv2.imwrite(path, make_frame(value))
                paths.append(path)

            frames = list(read_images(paths))

        self.assertEqual([int(f[0, 0, 0]) for f in frames], [20, 220])

    def test_missing_image_raises(self):
        with self.assertRaises(IOError):
            list(read_images(["/nonexistent/frame.png"]))


if __name__ == "__main__":
    unittest.main()
