"""
Frame pipeline loops.

Producer side: capture -> encode -> publish.
Consumer side: subscribe -> decode -> track.

Both sides only share the encoded byte stream. On the consumer side every
frame source is drained sequentially into one FaceTracker, which is the only
owner of the tracking state.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Iterator, Optional, Sequence

import cv2
import numpy as np

from .tracking import FaceTracker, TrackResult
from .transport import FramePublisher
from .video import VideoProcessor

LOGGER = logging.getLogger(__name__)


def capture_frames(
    source: VideoProcessor,
    empty_frame_delay: float = 0.05,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[np.ndarray]:
    """
    Yield frames from a camera or video file.

    A camera that delivers nothing is polled again after ``empty_frame_delay``
    seconds; a video file ends the stream when exhausted.
    """
    while source.is_opened():
        frame = source.capture_frame()
        if frame is None:
            if source.source_is_file:
                LOGGER.info("Video source exhausted")
                return
            sleep(empty_frame_delay)
            continue
        yield frame


def read_images(paths: Sequence[str]) -> Iterator[np.ndarray]:
    """Yield still images in order."""
    for path in paths:
        frame = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if frame is None:
            raise IOError(f"Unable to read image: {path}")
        LOGGER.debug("Loaded %s (%dx%d)", path, frame.shape[1], frame.shape[0])
        yield frame


def log_result(result: TrackResult):
    """Log one tracking result."""
    region = result.region
    if region is None:
        LOGGER.info(
            "Frame %d: mode=%s source=%s points=%d",
            result.frame_index,
            result.mode.value,
            result.source,
            result.tracked_count,
        )
        return
    LOGGER.info(
        "Frame %d: mode=%s source=%s points=%d region=(%.1f, %.1f, %.1f, %.1f)",
        result.frame_index,
        result.mode.value,
        result.source,
        result.tracked_count,
        region.x,
        region.y,
        region.width,
        region.height,
    )


def run_publisher(
    frames: Iterable[np.ndarray],
    publisher: FramePublisher,
    max_frames: Optional[int] = None,
) -> int:
    """Publish frames until the source ends or ``max_frames`` were sent."""
    count = 0
    for frame in frames:
        size = publisher.publish(frame)
        count += 1
        LOGGER.debug("Published frame %d (%d bytes)", count, size)
        if max_frames is not None and count >= max_frames:
            break
    LOGGER.info("Published %d frames", count)
    return count


def run_tracker(
    frames: Iterable[np.ndarray],
    tracker: FaceTracker,
    max_frames: Optional[int] = None,
    on_result: Callable[[TrackResult], None] = log_result,
) -> int:
    """Feed frames one at a time into the tracker."""
    count = 0
    for frame in frames:
        result = tracker.process(frame)
        on_result(result)
        count += 1
        if max_frames is not None and count >= max_frames:
            break

    metrics = tracker.get_metrics()
    LOGGER.info(
        "Processed %d frames: %d search, %d track, %d re-acquisitions, %.1f points on average",
        metrics.total_frames,
        metrics.search_frames,
        metrics.track_frames,
        metrics.reacquisitions,
        metrics.avg_points_tracked,
    )
    return count
