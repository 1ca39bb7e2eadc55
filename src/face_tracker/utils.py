"""
Shared helper functions and utilities.

Logging setup and the configuration dictionary used by every entry point.
"""

import copy
import json
import logging
import os


def setup_logging(level=logging.INFO):
    """Set up logging configuration.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger = logging.getLogger(__name__)
    logger.info("Logging initialized")


DEFAULT_CONFIG = {
    # Video settings
    'camera_id': 0,
    'video_width': 640,
    'video_height': 480,
    'video_fps': 30,
    'camera_backend': None,
    'camera_init_attempts': 10,
    'empty_frame_delay': 0.05,  # seconds to wait after an empty capture

    # Detect-or-track state machine
    'tracking': {
        'reacquire_threshold': 6,  # fewer surviving points forces a new detection
        'max_flow_error': 5.0,
    },

    # OpenCV collaborators
    'vision': {
        'cascade_path': None,  # defaults to haarcascade_frontalface_alt.xml
        'scale_factor': 1.1,
        'min_neighbors': 2,
        'min_face_size': 30,
        'max_corners': 1000,
        'quality_level': 0.02,
        'min_distance': 7.0,
        'optical_flow_win_size': 10,
        'optical_flow_max_level': 2,
    },

    # Frame codec
    'codec': {
        'jpeg_quality': 90,
    },

    # Pub/sub transport
    'transport': {
        'key': 'face-tracker/image',
        'connect': [],
        'listen': [],
        'ring_capacity': 1,  # newest frames kept by the subscriber
    },
}


def get_config(config_path=None):
    """Load configuration from file or return defaults.

    Sections (dict values) in the file are merged into the default sections;
    every other key replaces the default.

    Args:
        config_path: Path to a JSON configuration file (optional)

    Returns:
        dict: Configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path and os.path.exists(config_path):
        with open(config_path, 'r') as f:
            loaded_config = json.load(f)
        for key, value in loaded_config.items():
            if isinstance(value, dict) and isinstance(config.get(key), dict):
                config[key].update(value)
            else:
                config[key] = value
        logging.info("Configuration loaded from %s", config_path)
    elif config_path:
        logging.warning("Config file %s not found, using defaults", config_path)

    return config


def validate_config(config):
    """Validate configuration parameters.

    Args:
        config: Configuration dictionary

    Returns:
        bool: True if valid, False otherwise
    """
    required_keys = ['camera_id', 'video_width', 'video_height', 'tracking', 'transport']

    for key in required_keys:
        if key not in config:
            logging.error("Missing required config key: %s", key)
            return False

    if config['video_width'] <= 0 or config['video_height'] <= 0:
        logging.error("Video dimensions must be positive")
        return False

    tracking = config['tracking']
    if tracking.get('reacquire_threshold', 6) < 3:
        logging.error("tracking.reacquire_threshold must be at least 3")
        return False
    if tracking.get('max_flow_error', 5.0) <= 0:
        logging.error("tracking.max_flow_error must be positive")
        return False

    quality = config.get('codec', {}).get('jpeg_quality', 90)
    if not 0 <= quality <= 100:
        logging.error("codec.jpeg_quality must be within 0-100")
        return False

    if not config['transport'].get('key'):
        logging.error("transport.key must not be empty")
        return False

    logging.info("Configuration validated successfully")
    return True
