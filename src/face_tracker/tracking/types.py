"""
Data model shared by the tracker and its collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np


class TrackingMode(Enum):
    """Detect-or-track mode of the tracker."""
    SEARCH = "search"
    TRACK = "track"


@dataclass(frozen=True)
class Region:
    """Axis-aligned rectangle in pixel coordinates."""

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    def contains(self, px: float, py: float) -> bool:
        return (
            self.x <= px <= self.x + self.width
            and self.y <= py <= self.y + self.height
        )

    def corners(self) -> Tuple[int, int, int, int]:
        """Inclusive integer corners (x1, y1, x2, y2) for OpenCV drawing calls."""
        x1, y1 = int(self.x), int(self.y)
        x2 = max(x1, int(self.x + self.width) - 1)
        y2 = max(y1, int(self.y + self.height) - 1)
        return x1, y1, x2, y2

    @classmethod
    def from_points(cls, points: np.ndarray) -> Optional["Region"]:
        """Minimal enclosing region of an (N, 2) point array, None when empty."""
        if points is None or len(points) == 0:
            return None
        pts = np.asarray(points, dtype=np.float32).reshape(-1, 2)
        x_min, y_min = pts.min(axis=0)
        x_max, y_max = pts.max(axis=0)
        return cls(
            float(x_min),
            float(y_min),
            float(x_max - x_min),
            float(y_max - y_min),
        )


def empty_points() -> np.ndarray:
    return np.empty((0, 2), dtype=np.float32)


@dataclass(frozen=True)
class Searching:
    """No reliable point set; the next frame runs face detection."""

    mode = TrackingMode.SEARCH


@dataclass(frozen=True, eq=False)
class Tracking:
    """A point set acquired on ``previous_gray`` and propagated by optical flow."""

    points: np.ndarray
    previous_gray: np.ndarray
    mode = TrackingMode.TRACK


TrackerState = Union[Searching, Tracking]


@dataclass(frozen=True, eq=False)
class TrackResult:
    """Result container for one processed frame."""

    points: np.ndarray = field(default_factory=empty_points)
    region: Optional[Region] = None
    mode: TrackingMode = TrackingMode.SEARCH
    source: str = "detection"
    frame_index: int = 0

    @property
    def tracked_count(self) -> int:
        return int(len(self.points))


@dataclass
class TrackingMetrics:
    """Accumulated tracking metrics for analysis."""

    total_frames: int = 0
    search_frames: int = 0
    track_frames: int = 0
    faces_found: int = 0
    reacquisitions: int = 0
    avg_points_tracked: float = 0.0
