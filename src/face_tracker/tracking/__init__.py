"""
Tracking subpackage.

Provides the detect-or-track face tracker and the OpenCV collaborators it
drives:
- Haar cascade face detection (Search)
- Good Features To Track inside the detected face
- Pyramidal Lucas-Kanade optical flow (Track)
"""

from .tracker import (
    FaceTracker,
    TrackerConfiguration,
    TrackerError,
    filter_flow,
    find_largest_face,
)
from .types import (
    Region,
    Searching,
    TrackerState,
    Tracking,
    TrackingMetrics,
    TrackingMode,
    TrackResult,
)
from .vision import (
    FaceLocator,
    FeatureSelector,
    GoodFeaturesSelector,
    HaarFaceLocator,
    LucasKanadeEstimator,
    MotionEstimator,
    VisionConfiguration,
    to_grayscale,
)

__all__ = [
    "FaceTracker",
    "TrackerConfiguration",
    "TrackerError",
    "filter_flow",
    "find_largest_face",
    "Region",
    "Searching",
    "TrackerState",
    "Tracking",
    "TrackingMetrics",
    "TrackingMode",
    "TrackResult",
    "FaceLocator",
    "FeatureSelector",
    "GoodFeaturesSelector",
    "HaarFaceLocator",
    "LucasKanadeEstimator",
    "MotionEstimator",
    "VisionConfiguration",
    "to_grayscale",
]
