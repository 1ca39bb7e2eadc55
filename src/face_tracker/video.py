"""
Frame sources for the producer side: a camera or a video file.
"""

import logging
from typing import Optional

import cv2
import numpy as np


class VideoProcessor:
    """Owns one cv2.VideoCapture and hands out frames from it."""

    def __init__(self, config=None):
        self.config = config or {}
        self.cap: Optional[cv2.VideoCapture] = None
        self.logger = logging.getLogger(__name__)

        self.camera_id = self.config.get('camera_id', 0)
        self.width = self.config.get('video_width', 640)
        self.height = self.config.get('video_height', 480)
        self.fps = self.config.get('video_fps', 30)
        self.backend = self.config.get('camera_backend') or cv2.CAP_ANY
        self.max_init_attempts = self.config.get('camera_init_attempts', 10)
        self.source_is_file = False

    def initialize(self) -> bool:
        """Open the configured camera and wait for its first usable frame."""
        self.cleanup()

        cap = cv2.VideoCapture(self.camera_id, self.backend)
        if not cap.isOpened():
            self.logger.error("Failed to open camera %s", self.camera_id)
            cap.release()
            return False

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        cap.set(cv2.CAP_PROP_FPS, self.fps)

        if self._first_frame(cap) is None:
            self.logger.error(
                "Camera %s opened but delivered no frames after %d reads",
                self.camera_id,
                self.max_init_attempts,
            )
            cap.release()
            return False

        self.cap = cap
        self.source_is_file = False
        info = self.get_frame_info()
        self.logger.info(
            "Camera %s ready: %sx%s @ %sfps",
            self.camera_id, info['width'], info['height'], info['fps'],
        )
        return True

    def _first_frame(self, cap: cv2.VideoCapture) -> Optional[np.ndarray]:
        # Some drivers return all-black frames while the sensor starts.
        for _ in range(self.max_init_attempts):
            ok, frame = cap.read()
            if ok and frame is not None and frame.size > 0 and frame.any():
                return frame
        return None

    def load_video_file(self, filepath) -> bool:
        """Use a video file as the frame source."""
        self.cleanup()
        cap = cv2.VideoCapture(filepath)
        if not cap.isOpened():
            self.logger.error("Failed to open video file: %s", filepath)
            cap.release()
            return False

        self.cap = cap
        self.source_is_file = True
        self.logger.info("Video file loaded: %s", filepath)
        return True

    def capture_frame(self) -> Optional[np.ndarray]:
        """Next frame, or None when the source delivered nothing."""
        if not self.is_opened():
            return None

        ok, frame = self.cap.read()
        if not ok or frame is None or frame.size == 0:
            return None
        return frame

    def is_opened(self) -> bool:
        return self.cap is not None and self.cap.isOpened()

    def get_frame_info(self):
        if self.cap is None:
            return {}

        return {
            'width': int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            'height': int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            'fps': int(self.cap.get(cv2.CAP_PROP_FPS)),
        }

    def cleanup(self):
        """Release the video source."""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            self.logger.info("Video source released")
