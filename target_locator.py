"""
Color-Based Target Localization
Locates a colored circular target in a camera frame.

Primary path: HSV tolerance mask -> connected groups -> largest group.
Alternative path: Hough circle fit on the grayscale frame.
"""

import logging
import math
from functools import lru_cache
from typing import List, NamedTuple, Optional, Tuple

import cv2
import numpy as np

from rig_config import Config, ConfigurationError

logger = logging.getLogger(__name__)

# =============================================================================
# ERRORS
# =============================================================================

class InvalidColorSpec(ConfigurationError):
    """Color or tolerance values outside their valid ranges, or empty image"""


class ParamReadError(ConfigurationError):
    """Parameter file has the wrong number of tokens or a non-integer token"""

# =============================================================================
# DATA TYPES
# =============================================================================

class DetectionResult(NamedTuple):
    """Detected target: center point (x, y) in pixels and radius in pixels"""
    center: Tuple[int, int]
    radius: int


class Blob(NamedTuple):
    """Running sums for one connected group of mask pixels"""
    sum_x: int
    sum_y: int
    pixel_count: int

    @property
    def centroid(self) -> Tuple[float, float]:
        return (self.sum_x / self.pixel_count, self.sum_y / self.pixel_count)

    @property
    def radius(self) -> float:
        # Filled-disk approximation
        return math.sqrt(self.pixel_count / math.pi)

    def to_result(self) -> DetectionResult:
        cx, cy = self.centroid
        return DetectionResult((int(round(cx)), int(round(cy))), int(round(self.radius)))


class ColorSpec(NamedTuple):
    """
    Target color and per-channel tolerances.

    color is in OpenCV BGR order; tolerances apply to the HSV channels.
    """
    color: Tuple[int, int, int]
    hue_tol: int
    sat_tol: int
    val_tol: int

    def validate(self) -> "ColorSpec":
        if len(self.color) != 3 or any(not 0 <= c <= 255 for c in self.color):
            raise InvalidColorSpec(f"Color channels must be in [0, 255], got {self.color}")
        _check_tolerances(self.hue_tol, self.sat_tol, self.val_tol)
        return self

# =============================================================================
# COLOR MASK
# =============================================================================

def _check_tolerances(hue_tol: int, sat_tol: int, val_tol: int):
    for name, tol in (("hue", hue_tol), ("saturation", sat_tol), ("value", val_tol)):
        if tol < 0:
            raise InvalidColorSpec(f"{name} tolerance must be non-negative, got {tol}")


def _check_image(image: Optional[np.ndarray]):
    if image is None or image.size == 0:
        raise InvalidColorSpec("Image is empty")


def bgr_to_hsv(color: Tuple[int, int, int]) -> Tuple[int, int, int]:
    """Convert a single BGR color to OpenCV HSV (H in [0, 180), S and V in [0, 255])"""
    pixel = np.uint8([[color]])
    h, s, v = cv2.cvtColor(pixel, cv2.COLOR_BGR2HSV)[0, 0]
    return (int(h), int(s), int(v))


def hue_windows(hue: int, hue_tol: int) -> List[Tuple[int, int]]:
    """
    Split the hue tolerance window into inclusive ranges inside [0, HUE_RANGE).

    Hue is cyclic, so a window crossing either end wraps onto the other end
    (e.g. hue 2 +/- 5 -> [0, 7] and [177, 179]).
    """
    top = Config.HUE_RANGE - 1
    if 2 * hue_tol + 1 >= Config.HUE_RANGE:
        return [(0, top)]

    lower = hue - hue_tol
    upper = hue + hue_tol
    if lower < 0:
        return [(0, upper), (lower + Config.HUE_RANGE, top)]
    if upper > top:
        return [(lower, top), (0, upper - Config.HUE_RANGE)]
    return [(lower, upper)]


def hsv_mask(hsv_image: np.ndarray, target_hsv: Tuple[int, int, int],
             hue_tol: int, sat_tol: int, val_tol: int) -> np.ndarray:
    """
    Create binary mask of pixels within tolerance of an HSV target.

    Args:
        hsv_image: HSV converted frame
        target_hsv: Target (H, S, V)
        hue_tol, sat_tol, val_tol: Half-width of the accepted band per channel

    Returns:
        Binary mask with selected pixels as white (255)
    """
    _check_image(hsv_image)
    _check_tolerances(hue_tol, sat_tol, val_tol)

    h, s, v = target_hsv
    s_lo, s_hi = max(0, s - sat_tol), min(Config.SAT_MAX, s + sat_tol)
    v_lo, v_hi = max(0, v - val_tol), min(Config.VAL_MAX, v + val_tol)

    mask = None
    for h_lo, h_hi in hue_windows(h, hue_tol):
        part = cv2.inRange(hsv_image, (h_lo, s_lo, v_lo), (h_hi, s_hi, v_hi))
        mask = part if mask is None else cv2.bitwise_or(mask, part)
    return mask


def color_mask(image: np.ndarray, color: Tuple[int, int, int],
               hue_tol: int, sat_tol: int, val_tol: int) -> np.ndarray:
    """
    Find the mask of acceptable colors in a BGR image.

    The target color is given in BGR and converted to HSV here.
    """
    _check_image(image)
    hsv = cv2.cvtColor(image, cv2.COLOR_BGR2HSV)
    return hsv_mask(hsv, bgr_to_hsv(color), hue_tol, sat_tol, val_tol)

# =============================================================================
# BLOB SELECTION
# =============================================================================

def find_blobs(mask: np.ndarray, connectivity: int = Config.BLOB_CONNECTIVITY) -> List[Blob]:
    """
    Partition the set pixels of a mask into connected groups.

    Groups are returned in scan order of their first pixel (row-major).
    """
    binary = (mask > 0).astype(np.uint8)
    num_labels, labels = cv2.connectedComponents(binary, connectivity=connectivity)
    if num_labels <= 1:
        return []

    flat = labels.ravel()
    ys, xs = np.indices(labels.shape)
    counts = np.bincount(flat, minlength=num_labels)
    sums_x = np.bincount(flat, weights=xs.ravel(), minlength=num_labels)
    sums_y = np.bincount(flat, weights=ys.ravel(), minlength=num_labels)

    # Label 0 is background
    return [Blob(int(sums_x[i]), int(sums_y[i]), int(counts[i]))
            for i in range(1, num_labels)]


def select_largest_blob(mask: np.ndarray,
                        connectivity: int = Config.BLOB_CONNECTIVITY) -> Optional[DetectionResult]:
    """
    Return centroid and radius of the largest connected group, or None if the mask is empty.

    Ties on pixel count go to the group found first in scan order.
    """
    blobs = find_blobs(mask, connectivity)
    if not blobs:
        return None

    best = blobs[0]
    for blob in blobs[1:]:
        if blob.pixel_count > best.pixel_count:
            best = blob

    logger.debug("Selected blob of %d pixels out of %d groups", best.pixel_count, len(blobs))
    return best.to_result()

# =============================================================================
# CIRCLE DETECTION
# =============================================================================

def detect_circle(image: np.ndarray, min_radius: int = 0, max_radius: int = 0,
                  param1: int = 100, param2: int = 100) -> Optional[DetectionResult]:
    """
    Detect the most confident circle using the Hough gradient method.

    Args:
        image: Grayscale or BGR image
        min_radius: Minimum circle radius (0 = library default)
        max_radius: Maximum circle radius (0 = library default)
        param1: Upper Canny threshold
        param2: Accumulator threshold; smaller values accept weaker circles

    Returns:
        DetectionResult of the strongest circle, or None
    """
    if image is None or image.size == 0:
        raise ValueError("Image is empty")
    if min_radius < 0 or max_radius < 0:
        raise ValueError("Radius bounds must be non-negative")
    if max_radius and max_radius < min_radius:
        raise ValueError(f"max_radius {max_radius} is smaller than min_radius {min_radius}")

    gray = image if image.ndim == 2 else cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    gray = cv2.medianBlur(gray, Config.HOUGH_BLUR_KSIZE)

    circles = cv2.HoughCircles(
        gray, cv2.HOUGH_GRADIENT, Config.HOUGH_DP,
        gray.shape[0] / Config.HOUGH_MIN_DIST_DIVISOR,
        param1=param1, param2=param2,
        minRadius=min_radius, maxRadius=max_radius
    )
    if circles is None:
        return None

    # Circles are ordered by accumulator votes
    x, y, r = circles[0][0]
    return DetectionResult((int(round(x)), int(round(y))), int(round(r)))

# =============================================================================
# PARAMETER FILE
# =============================================================================

def read_params(path: str) -> ColorSpec:
    """
    Read a color spec from a parameter file.

    The file holds six whitespace-separated integers:
        red green blue hue_tol sat_tol val_tol

    Returns:
        ColorSpec with the color in BGR order

    Raises:
        FileNotFoundError: if the file does not exist
        ParamReadError: on undecodable bytes, wrong token count or non-integer token
        InvalidColorSpec: on out-of-range values
    """
    with open(path, "rb") as f:
        raw = f.read()
    try:
        tokens = raw.decode("utf-8").split()
    except UnicodeDecodeError as exc:
        raise ParamReadError(f"{path}: not a text parameter file") from exc

    if len(tokens) != 6:
        raise ParamReadError(f"{path}: expected 6 integers, found {len(tokens)} tokens")
    try:
        r, g, b, hue_tol, sat_tol, val_tol = (int(t) for t in tokens)
    except ValueError as exc:
        raise ParamReadError(f"{path}: non-integer token in {tokens}") from exc

    spec = ColorSpec((b, g, r), hue_tol, sat_tol, val_tol).validate()
    logger.info("Loaded color parameters from %s: %s", path, spec)
    return spec

# =============================================================================
# TARGET LOCATOR
# =============================================================================

def _write_mask(mask_out: np.ndarray, mask: np.ndarray):
    if mask_out.shape[:2] != mask.shape:
        raise ValueError(f"Mask output shape {mask_out.shape} does not match frame {mask.shape}")
    if mask_out.ndim == 3:
        np.copyto(mask_out, mask[:, :, np.newaxis])
    else:
        np.copyto(mask_out, mask)


class TargetLocator:
    """
    Color mask + largest blob pipeline for a single detection session.

    The color spec is read once at construction and reused for every frame.
    """

    def __init__(self, param_path: Optional[str] = None, spec: Optional[ColorSpec] = None,
                 connectivity: int = Config.BLOB_CONNECTIVITY):
        if spec is None:
            spec = read_params(param_path or Config.PARAMS_PATH)
        self.spec = spec.validate()
        if connectivity not in (4, 8):
            raise ConfigurationError(f"Connectivity must be 4 or 8, got {connectivity}")
        self.connectivity = connectivity
        self._last_mask = None

    def compute_mask(self, image: np.ndarray) -> np.ndarray:
        return color_mask(image, self.spec.color, self.spec.hue_tol,
                          self.spec.sat_tol, self.spec.val_tol)

    def locate(self, image: np.ndarray, mask_out: Optional[np.ndarray] = None) -> Optional[DetectionResult]:
        """
        Locate the target in a BGR frame.

        Args:
            image: BGR frame
            mask_out: Optional array (frame height x width, 1 or 3 channels)
                that receives the binary mask for display

        Returns:
            DetectionResult or None if no pixel matched
        """
        mask = self.compute_mask(image)
        self._last_mask = mask
        if mask_out is not None:
            _write_mask(mask_out, mask)

        logger.debug("Mask selected %d pixels", cv2.countNonZero(mask))
        return select_largest_blob(mask, self.connectivity)

    def get_debug_mask(self) -> Optional[np.ndarray]:
        """Get the last computed mask for debug visualization"""
        return self._last_mask


@lru_cache(maxsize=None)
def _session_locator(param_path: str) -> TargetLocator:
    return TargetLocator(param_path)


def detect_color(image: np.ndarray, mask_out: Optional[np.ndarray] = None,
                 param_path: Optional[str] = None) -> Optional[DetectionResult]:
    """
    Find the biggest group of the configured color.

    The parameter file is read on first use of each path and cached for
    the rest of the process.
    """
    locator = _session_locator(param_path or Config.PARAMS_PATH)
    return locator.locate(image, mask_out)


def draw_detection(frame: np.ndarray, result: Optional[DetectionResult],
                   color: Tuple[int, int, int] = (0, 255, 0)) -> np.ndarray:
    """Draw target circle and crosshairs in-place"""
    if result is None:
        cv2.putText(frame, "TARGET LOST", (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 255), 2)
        return frame

    (cx, cy), radius = result
    cv2.circle(frame, (cx, cy), radius, color, 2)
    cv2.line(frame, (cx - 10, cy), (cx + 10, cy), color, 2)
    cv2.line(frame, (cx, cy - 10), (cx, cy + 10), color, 2)
    cv2.circle(frame, (cx, cy), 2, color, -1)
    cv2.putText(frame, f"Center: ({cx}, {cy}) R: {radius}", (10, 30),
                cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)
    return frame
