"""
Shared configuration for the flight-rig input controller and target locator.

All tunable defaults live on the Config class. Scripts overwrite attributes
from command-line flags before constructing any component.
"""

import math
import os

# =============================================================================
# CONFIGURATION & PARAMETERS
# =============================================================================

class Config:
    """Configuration parameters for target localization and attitude control"""

    # Color parameter file (R G B hue_tol sat_tol val_tol)
    PARAMS_PATH = os.getenv("RIG_PARAMS_PATH", "params.txt")

    # Camera configuration
    CAMERA_INDEX = int(os.getenv("RIG_CAMERA_INDEX", "0"))
    FRAME_WIDTH = 640
    FRAME_HEIGHT = 480

    # HSV ranges as used by OpenCV for 8-bit images
    HUE_RANGE = 180
    SAT_MAX = 255
    VAL_MAX = 255

    # Blob grouping: 4 or 8 neighbourhood
    BLOB_CONNECTIVITY = 8

    # Hough circle defaults
    HOUGH_DP = 1.0
    HOUGH_MIN_DIST_DIVISOR = 8  # min distance between centres = rows / divisor
    HOUGH_BLUR_KSIZE = 5

    # Attitude control
    ATTITUDE_LIMIT = math.radians(45)  # safety bound for |pitch| and |roll|
    ATTITUDE_RATE_PER_MULT = 0.0001    # radians per pixel for each multiplier step
    MIN_MULTIPLIER = 1
    MAX_MULTIPLIER = 100

    THROTTLE_MIN = 0
    THROTTLE_MAX = 100
    HEADING_RANGE = 360

    # Controller window
    WINDOW_NAME = "Attitude Controller"
    DEFAULT_IMAGE_COLOR = (255, 0, 0)  # BGR blue

    # Smoothing window for the demo overlays
    SMOOTHING_SAMPLES = 5

    # Debug and visualization
    DEBUG = False
    SHOW_MASK = True


class ConfigurationError(ValueError):
    """Bad configuration detected at construction or load time"""
