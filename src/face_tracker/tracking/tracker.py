"""
Detect-or-track face tracker.

Each frame either runs full face detection (Search) or propagates the points
found on the face with optical flow (Track). Once too few points survive the
flow filter, the next frame falls back to a fresh detection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from .types import (
    Region,
    Searching,
    TrackerState,
    Tracking,
    TrackingMetrics,
    TrackingMode,
    TrackResult,
    empty_points,
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

LOGGER = logging.getLogger(__name__)

# A bounding box needs at least three points to mean anything.
MIN_REACQUIRE_THRESHOLD = 3


class TrackerError(RuntimeError):
    """A collaborator returned data that breaks its contract."""


@dataclass
class TrackerConfiguration:
    """Configuration for the detect-or-track state machine."""

    reacquire_threshold: int = 6
    max_flow_error: float = 5.0

    def __post_init__(self):
        if self.reacquire_threshold < MIN_REACQUIRE_THRESHOLD:
            raise ValueError(
                f"reacquire_threshold must be at least {MIN_REACQUIRE_THRESHOLD}, "
                f"got {self.reacquire_threshold}"
            )
        if self.max_flow_error <= 0:
            raise ValueError("max_flow_error must be positive")

    @classmethod
    def from_dict(cls, config: Optional[Dict] = None) -> "TrackerConfiguration":
        cfg_dict = dict(config or {})
        return cls(**{
            k: v for k, v in cfg_dict.items()
            if k in cls.__dataclass_fields__
        })


def find_largest_face(faces: List[Region]) -> Optional[Region]:
    """Largest-area candidate; the first one wins a tie."""
    largest: Optional[Region] = None
    for face in faces:
        if largest is None or face.area > largest.area:
            largest = face
    return largest


def _owned(array: np.ndarray) -> np.ndarray:
    """Private read-only copy for the tracker state."""
    owned = np.array(array, copy=True)
    owned.flags.writeable = False
    return owned


def filter_flow(
    moved: np.ndarray,
    valid: np.ndarray,
    error: np.ndarray,
    max_error: float,
) -> np.ndarray:
    """Keep points that were found AND whose flow error is below ``max_error``."""
    keep = np.asarray(valid, dtype=bool) & (np.asarray(error, dtype=np.float32) < max_error)
    return np.asarray(moved, dtype=np.float32).reshape(-1, 2)[keep]


class FaceTracker:
    """
    Single-owner face tracker.

    ``process`` must be called sequentially from one execution context; the
    state it carries between frames is private to the instance.
    """

    def __init__(
        self,
        config: Optional[Dict] = None,
        face_locator: Optional[FaceLocator] = None,
        feature_selector: Optional[FeatureSelector] = None,
        motion_estimator: Optional[MotionEstimator] = None,
    ):
        cfg_dict = dict(config or {})
        self.config = TrackerConfiguration.from_dict(cfg_dict.get("tracking"))
        vision_config = VisionConfiguration.from_dict(cfg_dict.get("vision"))

        self.face_locator = face_locator or HaarFaceLocator(vision_config)
        self.feature_selector = feature_selector or GoodFeaturesSelector(vision_config)
        self.motion_estimator = motion_estimator or LucasKanadeEstimator(vision_config)

        self._state: TrackerState = Searching()
        self.frame_index: int = 0
        self.metrics = TrackingMetrics()

        LOGGER.info(
            "FaceTracker initialized: reacquire_threshold=%d, max_flow_error=%.2f",
            self.config.reacquire_threshold,
            self.config.max_flow_error,
        )

    # ------------------------------------------------------------------ #
    # State views
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def mode(self) -> TrackingMode:
        return self._state.mode

    @property
    def active_points(self) -> np.ndarray:
        if isinstance(self._state, Tracking):
            return self._state.points
        return empty_points()

    @property
    def previous_gray(self) -> Optional[np.ndarray]:
        if isinstance(self._state, Tracking):
            return self._state.previous_gray
        return None

    def reset(self):
        """Drop the tracked face and start searching again."""
        self._state = Searching()
        self.frame_index = 0
        self.metrics = TrackingMetrics()

    def get_metrics(self) -> TrackingMetrics:
        return self.metrics

    # ------------------------------------------------------------------ #
    # Processing
    # ------------------------------------------------------------------ #
    def process(self, frame: np.ndarray) -> TrackResult:
        """Consume one frame and return the updated tracking result."""
        if frame is None or frame.size == 0:
            raise ValueError("Frame cannot be empty.")

        gray = _owned(to_grayscale(frame))
        self.frame_index += 1
        self.metrics.total_frames += 1

        state = self._state
        if (
            isinstance(state, Tracking)
            and len(state.points) >= self.config.reacquire_threshold
        ):
            result = self._track(state, gray)
        else:
            result = self._search(gray, reacquiring=isinstance(state, Tracking))

        n = self.metrics.total_frames
        self.metrics.avg_points_tracked = (
            (self.metrics.avg_points_tracked * (n - 1) + result.tracked_count) / n
        )
        return result

    def _track(self, state: Tracking, gray: np.ndarray) -> TrackResult:
        moved, valid, error = self.motion_estimator.estimate_motion(
            state.previous_gray, gray, state.points
        )
        count = len(state.points)
        if len(moved) != count or len(valid) != count or len(error) != count:
            raise TrackerError(
                f"Motion estimator returned {len(moved)}/{len(valid)}/{len(error)} "
                f"entries for {count} points"
            )

        filtered = _owned(filter_flow(moved, valid, error, self.config.max_flow_error))
        self._state = Tracking(points=filtered, previous_gray=gray)
        self.metrics.track_frames += 1

        LOGGER.debug(
            "Frame %d: tracked %d/%d points", self.frame_index, len(filtered), count
        )
        return TrackResult(
            points=filtered.copy(),
            region=Region.from_points(filtered),
            mode=TrackingMode.TRACK,
            source="optical_flow",
            frame_index=self.frame_index,
        )

    def _search(self, gray: np.ndarray, reacquiring: bool) -> TrackResult:
        self.metrics.search_frames += 1
        if reacquiring:
            self.metrics.reacquisitions += 1
            LOGGER.debug(
                "Frame %d: %d points left, re-acquiring face",
                self.frame_index,
                len(self.active_points),
            )

        face = find_largest_face(self.face_locator.locate_faces(gray))
        if face is None:
            self._state = Searching()
            return TrackResult(mode=TrackingMode.SEARCH, frame_index=self.frame_index)

        points = _owned(np.asarray(
            self.feature_selector.select_features(gray, face), dtype=np.float32
        ).reshape(-1, 2))
        self._state = Tracking(points=points, previous_gray=gray)
        self.metrics.faces_found += 1

        LOGGER.debug(
            "Frame %d: face at (%.0f, %.0f, %.0f, %.0f), %d features",
            self.frame_index,
            face.x,
            face.y,
            face.width,
            face.height,
            len(points),
        )
        return TrackResult(
            points=points.copy(),
            region=face,
            mode=TrackingMode.TRACK,
            source="detection",
            frame_index=self.frame_index,
        )
