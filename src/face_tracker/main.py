"""
Main entry point for the face tracker.

Usage:
    face-tracker publish -e tcp/192.168.1.10:7447     # camera -> topic
    face-tracker subscribe --listen tcp/0.0.0.0:7447  # topic -> tracker
    face-tracker local                                # camera -> tracker
    face-tracker images image.jpg image2.jpg          # stills -> tracker
"""

from __future__ import annotations

import argparse
import logging
import sys

from .pipeline import capture_frames, read_images, run_publisher, run_tracker
from .tracking import FaceTracker
from .transport import FramePublisher, FrameSubscriber, open_session
from .utils import get_config, setup_logging, validate_config
from .video import VideoProcessor

LOGGER = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="face-tracker",
        description="Face tracking over a publish/subscribe frame stream",
    )
    parser.add_argument("--config", "-c", help="JSON configuration file")
    parser.add_argument(
        "--verbose", "-V",
        action="store_true",
        help="Enable verbose/debug logging",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--max-frames",
        type=int,
        default=None,
        help="Stop after this many frames",
    )

    transport = argparse.ArgumentParser(add_help=False)
    transport.add_argument(
        "--connect", "-e",
        action="append",
        default=[],
        metavar="ENDPOINT",
        help="Endpoint to connect to (repeatable)",
    )
    transport.add_argument(
        "--listen",
        action="append",
        default=[],
        metavar="ENDPOINT",
        help="Endpoint to listen on (repeatable)",
    )
    transport.add_argument("--key", help="Key expression frames are published on")

    source = argparse.ArgumentParser(add_help=False)
    source.add_argument("--camera", type=int, help="Camera index")
    source.add_argument("--video", help="Read frames from a video file instead of a camera")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser(
        "publish",
        parents=[common, transport, source],
        help="Capture frames and publish them",
    )
    commands.add_parser(
        "subscribe",
        parents=[common, transport],
        help="Track faces in frames received from the topic",
    )
    commands.add_parser(
        "local",
        parents=[common, source],
        help="Track faces directly from the camera",
    )
    images_parser = commands.add_parser(
        "images",
        parents=[common],
        help="Track faces across still images",
    )
    images_parser.add_argument("paths", nargs="+", help="Image files, in frame order")

    return parser.parse_args(argv)


def apply_overrides(config, args: argparse.Namespace):
    """Fold command-line options into the configuration dictionary."""
    transport = config["transport"]
    if getattr(args, "connect", None):
        transport["connect"] = args.connect
    if getattr(args, "listen", None):
        transport["listen"] = args.listen
    if getattr(args, "key", None):
        transport["key"] = args.key
    if getattr(args, "camera", None) is not None:
        config["camera_id"] = args.camera
    return config


def open_source(config, args: argparse.Namespace) -> VideoProcessor:
    source = VideoProcessor(config)
    video = getattr(args, "video", None)
    opened = source.load_video_file(video) if video else source.initialize()
    if not opened:
        raise IOError(f"Unable to open frame source: {video or config['camera_id']}")
    return source


def publish(config, args: argparse.Namespace) -> int:
    transport = config["transport"]
    source = open_source(config, args)
    try:
        session = open_session(transport["connect"], transport["listen"])
        try:
            with FramePublisher(
                session, transport["key"], config["codec"]["jpeg_quality"]
            ) as publisher:
                frames = capture_frames(source, config["empty_frame_delay"])
                return run_publisher(frames, publisher, args.max_frames)
        finally:
            session.close()
    finally:
        source.cleanup()


def subscribe(config, args: argparse.Namespace) -> int:
    transport = config["transport"]
    tracker = FaceTracker(config)
    session = open_session(transport["connect"], transport["listen"])
    try:
        with FrameSubscriber(
            session, transport["key"], transport["ring_capacity"]
        ) as subscriber:
            return run_tracker(subscriber, tracker, args.max_frames)
    finally:
        session.close()


def local(config, args: argparse.Namespace) -> int:
    tracker = FaceTracker(config)
    source = open_source(config, args)
    try:
        frames = capture_frames(source, config["empty_frame_delay"])
        return run_tracker(frames, tracker, args.max_frames)
    finally:
        source.cleanup()


def images(config, args: argparse.Namespace) -> int:
    tracker = FaceTracker(config)
    return run_tracker(read_images(args.paths), tracker, args.max_frames)


COMMANDS = {
    "publish": publish,
    "subscribe": subscribe,
    "local": local,
    "images": images,
}


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(level=log_level)

    config = apply_overrides(get_config(args.config), args)
    if not validate_config(config):
        sys.exit(2)

    LOGGER.info("Starting face-tracker %s...", args.command)
    try:
        COMMANDS[args.command](config, args)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user")
    except Exception as e:
        LOGGER.exception("Application error: %s", e)
        sys.exit(1)

    LOGGER.info("face-tracker exited normally")
    sys.exit(0)


if __name__ == "__main__":
    main()
