"""
Frame codec for the transport.

Frames travel as JPEG bytes. The format is lossy: a decoded frame keeps its
dimensions but not its exact pixel values.
"""

import cv2
import numpy as np

DEFAULT_JPEG_QUALITY = 90


class CodecError(ValueError):
    """Raised when a frame cannot be encoded or a payload cannot be decoded."""


def encode_frame(frame: np.ndarray, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """Encode a BGR (or grayscale) frame to JPEG bytes."""
    if frame is None or frame.size == 0:
        raise CodecError("Cannot encode an empty frame")

    ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise CodecError(f"JPEG encoding failed for frame of shape {frame.shape}")
    return buffer.tobytes()


def decode_frame(data: bytes) -> np.ndarray:
    """Decode JPEG bytes into a BGR frame."""
    if not data:
        raise CodecError("Cannot decode an empty payload")

    buffer = np.frombuffer(data, dtype=np.uint8)
    frame = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if frame is None or frame.size == 0:
        raise CodecError(f"Payload of {len(data)} bytes is not a valid image")
    return frame
