"""
Publish/subscribe transport for encoded frames.

Frames are carried over Eclipse Zenoh on a single key expression. Delivery is
best effort: the publisher drops samples under congestion and the subscriber
keeps only the newest few samples, so a slow consumer sees a lower frame rate
instead of a growing backlog.
"""

from __future__ import annotations

import json
import logging
from typing import Iterator, Optional, Sequence

import numpy as np
import zenoh

from .codec import DEFAULT_JPEG_QUALITY, CodecError, decode_frame, encode_frame

LOGGER = logging.getLogger(__name__)

DEFAULT_KEY = "face-tracker/image"


def build_config(
    connect: Optional[Sequence[str]] = None,
    listen: Optional[Sequence[str]] = None,
) -> zenoh.Config:
    """Zenoh configuration with optional connect/listen endpoint lists."""
    config = zenoh.Config()
    if listen:
        config.insert_json5("listen/endpoints", json.dumps(list(listen)))
        LOGGER.info("Configured listening endpoints %s", list(listen))
    if connect:
        config.insert_json5("connect/endpoints", json.dumps(list(connect)))
        LOGGER.info("Configured connect endpoints %s", list(connect))
    return config


def open_session(
    connect: Optional[Sequence[str]] = None,
    listen: Optional[Sequence[str]] = None,
) -> zenoh.Session:
    """Open a Zenoh session."""
    session = zenoh.open(build_config(connect, listen))
    LOGGER.info("Zenoh session opened")
    return session


class FramePublisher:
    """Encodes frames and puts them on the frame topic."""

    def __init__(self, session, key: str = DEFAULT_KEY, quality: int = DEFAULT_JPEG_QUALITY):
        self.key = key
        self.quality = quality
        self.published = 0
        self.publisher = session.declare_publisher(
            key,
            congestion_control=zenoh.CongestionControl.DROP,
            priority=zenoh.Priority.INTERACTIVE_HIGH,
        )
        LOGGER.info("Publishing frames on '%s'", key)

    def publish(self, frame: np.ndarray) -> int:
        """Encode and publish one frame. Returns the payload size in bytes."""
        payload = encode_frame(frame, self.quality)
        self.publisher.put(payload)
        self.published += 1
        return len(payload)

    def close(self):
        if self.publisher is not None:
            self.publisher.undeclare()
            self.publisher = None
            LOGGER.info("Publisher on '%s' closed after %d frames", self.key, self.published)

    def __enter__(self) -> "FramePublisher":
        return self

    def __exit__(self, *exc_info):
        self.close()


class FrameSubscriber:
    """
    Receives frames from the frame topic.

    Frames are handed out one at a time, so whoever iterates the subscriber
    is the single consumer of the stream. Payloads that fail to decode are
    logged and skipped.
    """

    def __init__(self, session, key: str = DEFAULT_KEY, capacity: int = 1):
        self.key = key
        self.received = 0
        self.dropped = 0
        handler = zenoh.handlers.RingChannel(capacity) if capacity > 0 else None
        self.subscriber = session.declare_subscriber(key, handler)
        LOGGER.info("Subscribed to '%s' (ring capacity %d)", key, capacity)

    def _decode(self, sample) -> Optional[np.ndarray]:
        payload = sample.payload.to_bytes()
        try:
            frame = decode_frame(payload)
        except CodecError as e:
            self.dropped += 1
            LOGGER.warning("Dropping malformed frame on '%s': %s", self.key, e)
            return None
        self.received += 1
        return frame

    def receive(self) -> np.ndarray:
        """Block until the next decodable frame arrives."""
        while True:
            frame = self._decode(self.subscriber.recv())
            if frame is not None:
                return frame

    def __iter__(self) -> Iterator[np.ndarray]:
        for sample in self.subscriber:
            frame = self._decode(sample)
            if frame is not None:
                yield frame

    def close(self):
        if self.subscriber is not None:
            self.subscriber.undeclare()
            self.subscriber = None
            LOGGER.info(
                "Subscriber on '%s' closed: %d frames received, %d dropped",
                self.key,
                self.received,
                self.dropped,
            )

    def __enter__(self) -> "FrameSubscriber":
        return self

    def __exit__(self, *exc_info):
        self.close()
