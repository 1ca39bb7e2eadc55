"""
Tests for configuration loading and command-line handling.
"""

import json
import os
import sys
import tempfile
import unittest
from unittest import mock

import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from face_tracker import main as cli  # type: ignore
from face_tracker.utils import get_config, validate_config  # type: ignore


class TestConfig(unittest.TestCase):
    def test_defaults_are_valid(self):
        config = get_config()
        self.assertTrue(validate_config(config))
        self.assertEqual(config["tracking"]["reacquire_threshold"], 6)
        self.assertEqual(config["transport"]["key"], "face-tracker/image")

    def test_defaults_not_shared(self):
        get_config()["tracking"]["reacquire_threshold"] = 99
        self.assertEqual(get_config()["tracking"]["reacquire_threshold"], 6)

    def test_file_sections_merge_into_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "config.json")
            with open(path, "w") as f:
                json.dump({"camera_id": 2, "tracking": {"reacquire_threshold": 10}}, f)

            config = get_config(path)

        self.assertEqual(config["camera_id"], 2)
        self.assertEqual(config["tracking"]["reacquire_threshold"], 10)
        self.assertEqual(config["tracking"]["max_flow_error"], 5.0)

    def test_missing_file_uses_defaults(self):
        config = get_config("/nonexistent/config.json")
        self.assertEqual(config["camera_id"], 0)

    def test_invalid_values_rejected(self):
        config = get_config()
        config["tracking"]["reacquire_threshold"] = 2
        self.assertFalse(validate_config(config))

        config = get_config()
        config["video_width"] = 0
        self.assertFalse(validate_config(config))

        config = get_config()
        config["codec"]["jpeg_quality"] = 150
        self.assertFalse(validate_config(config))

        config = get_config()
        del config["transport"]
        self.assertFalse(validate_config(config))


class TestCommandLine(unittest.TestCase):
    def test_transport_options(self):
        args = cli.parse_args([
            "subscribe", "-e", "tcp/10.0.0.1:7447", "-e", "tcp/10.0.0.2:7447",
            "--listen", "tcp/0.0.0.0:7447", "--key", "lab/camera",
        ])
        config = cli.apply_overrides(get_config(), args)

        self.assertEqual(args.command, "subscribe")
        self.assertEqual(config["transport"]["connect"], ["tcp/10.0.0.1:7447", "tcp/10.0.0.2:7447"])
        self.assertEqual(config["transport"]["listen"], ["tcp/0.0.0.0:7447"])
        self.assertEqual(config["transport"]["key"], "lab/camera")

    def test_source_options(self):
        args = cli.parse_args(["publish", "--camera", "3", "--max-frames", "10"])
        config = cli.apply_overrides(get_config(), args)

        self.assertEqual(args.max_frames, 10)
        self.assertEqual(config["camera_id"], 3)
        self.assertEqual(config["transport"]["connect"], [])

    def test_images_command_runs_tracker(self):
        seen = []

        class BlankTracker:
            def __init__(self, config):
                self.config = config

            def process(self, frame):
                seen.append(frame.shape)
                raise KeyboardInterrupt

        original_tracker, original_reader = cli.FaceTracker, cli.read_images
        cli.FaceTracker = BlankTracker
        cli.read_images = lambda paths: iter([np.zeros((10, 10, 3), dtype=np.uint8)])
        try:
            with self.assertRaises(SystemExit) as exit_info:
                cli.main(["images", "a.png"])
        finally:
            cli.FaceTracker, cli.read_images = original_tracker, original_reader

        self.assertEqual(exit_info.exception.code, 0)
        self.assertEqual(seen, [(10, 10, 3)])

    def test_max_frames_on_every_command(self):
        self.assertEqual(cli.parse_args(["local", "--max-frames", "5"]).max_frames, 5)
        self.assertEqual(cli.parse_args(["subscribe", "--max-frames", "7"]).max_frames, 7)
        self.assertEqual(cli.parse_args(["images", "--max-frames", "2", "a.png"]).max_frames, 2)
        self.assertIsNone(cli.parse_args(["local"]).max_frames)

    def test_publish_releases_source_when_session_fails(self):
        source = mock.Mock()
        args = cli.parse_args(["publish"])
        with mock.patch.object(cli, "open_source", return_value=source), \
                mock.patch.object(cli, "open_session", side_effect=RuntimeError("no router")):
            with self.assertRaises(RuntimeError):
                cli.publish(get_config(), args)

        source.cleanup.assert_called_once()

    def test_publish_closes_session_and_source(self):
        source = mock.Mock()
        session = mock.Mock()
        args = cli.parse_args(["publish", "--max-frames", "1"])
        with mock.patch.object(cli, "open_source", return_value=source), \
                mock.patch.object(cli, "open_session", return_value=session), \
                mock.patch.object(cli, "FramePublisher", side_effect=IOError("bad key")):
            with self.assertRaises(IOError):
                cli.publish(get_config(), args)

        session.close.assert_called_once()
        source.cleanup.assert_called_once()

    def test_missing_command_exits(self):
        with self.assertRaises(SystemExit):
            cli.parse_args([])


if __name__ == "__main__":
    unittest.main()
