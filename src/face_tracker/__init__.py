"""
face-tracker - detect-or-track face tracking over a frame stream.

This package provides functionality for:
- Face tracking with Haar cascade detection and Lucas-Kanade optical flow
- JPEG frame encoding for transport
- Publishing and subscribing to frames over Zenoh
- Camera and video file capture
"""

from .codec import CodecError, decode_frame, encode_frame
from .tracking import (
    FaceTracker,
    Region,
    TrackerConfiguration,
    TrackerError,
    TrackingMode,
    TrackResult,
    VisionConfiguration,
)
from .video import VideoProcessor

__version__ = "0.1.0"

__all__ = [
    # Tracking
    "FaceTracker",
    "Region",
    "TrackerConfiguration",
    "TrackerError",
    "TrackingMode",
    "TrackResult",
    "VisionConfiguration",
    # Codec
    "CodecError",
    "decode_frame",
    "encode_frame",
    # Video
    "VideoProcessor",
]
