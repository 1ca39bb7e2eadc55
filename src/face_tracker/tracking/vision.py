"""
OpenCV-backed collaborators for the face tracker.

The tracker only depends on three small capabilities:
- FaceLocator: find candidate face boxes in a grayscale frame
- FeatureSelector: pick trackable corners inside a region
- MotionEstimator: follow points from one grayscale frame to the next

The Protocol classes describe those capabilities; the concrete classes wrap
Haar cascades, Good Features To Track and pyramidal Lucas-Kanade.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple

import cv2
import numpy as np

from .types import Region

LOGGER = logging.getLogger(__name__)

DEFAULT_CASCADE = "haarcascade_frontalface_alt.xml"


@dataclass
class VisionConfiguration:
    """Parameters for the OpenCV collaborators."""

    # Haar cascade face detection
    cascade_path: Optional[str] = None
    scale_factor: float = 1.1
    min_neighbors: int = 2
    min_face_size: int = 30

    # Good Features To Track
    max_corners: int = 1000
    quality_level: float = 0.02
    min_distance: float = 7.0
    block_size: int = 3
    use_harris: bool = False
    harris_k: float = 0.04

    # Pyramidal Lucas-Kanade
    optical_flow_win_size: int = 10
    optical_flow_max_level: int = 2
    optical_flow_criteria_count: int = 20
    optical_flow_criteria_eps: float = 0.01
    optical_flow_min_eig_threshold: float = 1e-4

    @classmethod
    def from_dict(cls, config: Optional[Dict] = None) -> "VisionConfiguration":
        cfg_dict = dict(config or {})
        return cls(**{
            k: v for k, v in cfg_dict.items()
            if k in cls.__dataclass_fields__
        })


class FaceLocator(Protocol):
    def locate_faces(self, gray: np.ndarray) -> List[Region]:
        ...


class FeatureSelector(Protocol):
    def select_features(self, gray: np.ndarray, region: Region) -> np.ndarray:
        ...


class MotionEstimator(Protocol):
    def estimate_motion(
        self,
        prev_gray: np.ndarray,
        gray: np.ndarray,
        points: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        ...


def to_grayscale(frame: np.ndarray) -> np.ndarray:
    """Return the single channel variant of ``frame``."""
    if frame.ndim == 3 and frame.shape[2] == 1:
        frame = frame[:, :, 0]
    if frame.ndim == 2:
        return frame
    return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)


class HaarFaceLocator:
    """Frontal face detection with a Haar cascade."""

    def __init__(self, config: Optional[VisionConfiguration] = None):
        self.config = config or VisionConfiguration()
        path = self.config.cascade_path or (cv2.data.haarcascades + DEFAULT_CASCADE)
        self.classifier = cv2.CascadeClassifier(path)
        if self.classifier.empty():
            raise IOError(f"Unable to load face cascade from {path}")
        LOGGER.info("Face cascade loaded from %s", path)

    def locate_faces(self, gray: np.ndarray) -> List[Region]:
        size = self.config.min_face_size
        faces = self.classifier.detectMultiScale(
            gray,
            scaleFactor=self.config.scale_factor,
            minNeighbors=self.config.min_neighbors,
            flags=cv2.CASCADE_SCALE_IMAGE,
            minSize=(size, size),
        )
        return [Region(float(x), float(y), float(w), float(h)) for (x, y, w, h) in faces]


class GoodFeaturesSelector:
    """Shi-Tomasi corners restricted to a region of interest."""

    def __init__(self, config: Optional[VisionConfiguration] = None):
        self.config = config or VisionConfiguration()

    def select_features(self, gray: np.ndarray, region: Region) -> np.ndarray:
        mask = np.zeros(gray.shape[:2], dtype=np.uint8)
        x1, y1, x2, y2 = region.corners()
        cv2.rectangle(mask, (x1, y1), (x2, y2), 255, cv2.FILLED)

        corners = cv2.goodFeaturesToTrack(
            gray,
            maxCorners=self.config.max_corners,
            qualityLevel=self.config.quality_level,
            minDistance=self.config.min_distance,
            mask=mask,
            blockSize=self.config.block_size,
            useHarrisDetector=self.config.use_harris,
            k=self.config.harris_k,
        )
        if corners is None:
            return np.empty((0, 2), dtype=np.float32)
        return corners.reshape(-1, 2).astype(np.float32)


class LucasKanadeEstimator:
    """Sparse optical flow between consecutive grayscale frames."""

    def __init__(self, config: Optional[VisionConfiguration] = None):
        self.config = config or VisionConfiguration()
        win = self.config.optical_flow_win_size
        self.lk_params = dict(
            winSize=(win, win),
            maxLevel=self.config.optical_flow_max_level,
            criteria=(
                cv2.TERM_CRITERIA_EPS | cv2.TERM_CRITERIA_COUNT,
                self.config.optical_flow_criteria_count,
                self.config.optical_flow_criteria_eps,
            ),
            minEigThreshold=self.config.optical_flow_min_eig_threshold,
        )

    def estimate_motion(
        self,
        prev_gray: np.ndarray,
        gray: np.ndarray,
        points: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Follow ``points`` from ``prev_gray`` into ``gray``.

        Returns:
            (moved_points (N, 2), valid (N,) bool, error (N,) float32),
            index-aligned with ``points``.
        """
        if len(points) == 0:
            return (
                np.empty((0, 2), dtype=np.float32),
                np.empty(0, dtype=bool),
                np.empty(0, dtype=np.float32),
            )

        prev_pts = np.asarray(points, dtype=np.float32).reshape(-1, 1, 2)
        next_pts, status, err = cv2.calcOpticalFlowPyrLK(
            prev_gray, gray, prev_pts, None, **self.lk_params
        )
        moved = next_pts.reshape(-1, 2).astype(np.float32)
        valid = status.reshape(-1) == 1
        error = err.reshape(-1).astype(np.float32)
        return moved, valid, error
