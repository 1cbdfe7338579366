"""
Mouse & Keyboard Attitude Controller
Turns pointer drags and key presses into pitch, roll, throttle and heading targets.

Drag with the left mouse button to set pitch/roll, scroll to change the
sensitivity, and use the keyboard for throttle, heading and stabilization.
"""

import logging
import math
import numbers
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import cv2
import numpy as np

from rig_config import Config, ConfigurationError

logger = logging.getLogger(__name__)

# =============================================================================
# ERRORS
# =============================================================================

class InvalidOptionsError(ConfigurationError):
    """Controller options failed Options.check()"""


class MultipleControllersError(RuntimeError):
    """
    A controller window is already open.

    cv2.waitKey listens on every OpenCV window, so only one controller
    window can own the keyboard at a time.
    """

# =============================================================================
# OPTIONS
# =============================================================================

@dataclass
class KeyBindings:
    """Characters accepted for each action; letters match either case"""
    throttle_up: str = "w"
    throttle_down: str = "s"
    yaw_left: str = "a"
    yaw_right: str = "d"
    stabilize: str = " "
    sensitivity_up: str = "+="
    sensitivity_down: str = "-_"

    def action_for(self, key: int) -> Optional[str]:
        """Name of the action bound to a key code, or None"""
        if key < 0:
            return None
        char = chr(key & 0xFF).lower()
        for action in ("throttle_up", "throttle_down", "yaw_left", "yaw_right",
                       "stabilize", "sensitivity_up", "sensitivity_down"):
            if char in getattr(self, action).lower():
                return action
        return None


@dataclass
class Options:
    """Controller tuning; validate with check() before use"""
    multiplier: int = 10        # Roll-pitch sensitivity
    thr_coeff: int = 5          # Throttle change per key press
    yaw_coeff: int = 10         # Heading change per key press (degrees)
    speedup: int = 25           # Step toward the stable stance per stabilize tick
    throttle_stable: int = 50   # Throttle for a stable stance (0-100)
    pitch_stable: float = 0.0   # Pitch for a stable stance (radians)
    roll_stable: float = 0.0    # Roll for a stable stance (radians)
    keys: KeyBindings = field(default_factory=KeyBindings)

    def check(self) -> bool:
        """True if every parameter is within its documented range"""
        limit = Config.ATTITUDE_LIMIT
        return (
            all(_is_int(v) for v in (self.multiplier, self.thr_coeff, self.yaw_coeff,
                                     self.speedup, self.throttle_stable))
            and Config.MIN_MULTIPLIER <= self.multiplier <= Config.MAX_MULTIPLIER
            and 1 <= self.thr_coeff <= Config.THROTTLE_MAX
            and 1 <= self.yaw_coeff < Config.HEADING_RANGE
            and 1 <= self.speedup <= 100
            and Config.THROTTLE_MIN <= self.throttle_stable <= Config.THROTTLE_MAX
            and math.isfinite(self.pitch_stable) and abs(self.pitch_stable) <= limit
            and math.isfinite(self.roll_stable) and abs(self.roll_stable) <= limit
        )

# =============================================================================
# ATTITUDE CONTROLLER
# =============================================================================

def _is_int(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _clamp(value, low, high):
    return max(low, min(high, value))


def _approach(value, target, step):
    """Move value toward target by at most step without overshooting"""
    if abs(target - value) <= step:
        return target
    return value + step if target > value else value - step


class AttitudeController:
    """
    Target attitude/throttle/heading state driven by input events.

    Pitch and roll follow the drag offset from the press point:
        pitch = -dy * pitch_coeff, roll = dx * roll_coeff
    so dragging up pitches up and dragging right rolls right. Releasing the
    button keeps the last values.

    Every mutation holds an internal lock, so a mouse callback arriving from
    the window system is applied atomically with respect to key handling
    and the read accessors.
    """

    def __init__(self, options: Optional[Options] = None, throttle: int = 0, heading: int = 0):
        options = options if options is not None else Options()
        if not options.check():
            raise InvalidOptionsError(f"Invalid controller options: {options}")
        if not _is_int(throttle) or not Config.THROTTLE_MIN <= throttle <= Config.THROTTLE_MAX:
            raise InvalidOptionsError(f"Initial throttle {throttle} outside [0, 100]")
        if not _is_int(heading) or not 0 <= heading < Config.HEADING_RANGE:
            raise InvalidOptionsError(f"Initial heading {heading} outside [0, 360)")

        self.options = options
        self._lock = threading.RLock()

        self._pitch = 0.0
        self._roll = 0.0
        self._mult = options.multiplier
        self._pitch_coeff = self._mult * Config.ATTITUDE_RATE_PER_MULT
        self._roll_coeff = self._mult * Config.ATTITUDE_RATE_PER_MULT

        # Drag state: press point, attitude the offsets are added to, last pointer position
        self._anchor: Optional[Tuple[int, int]] = None
        self._base = (0.0, 0.0)
        self._last_point: Optional[Tuple[int, int]] = None

        self._throttle = throttle
        self._heading = heading

    # -------------------------------------------------------------------------
    # Pointer drag
    # -------------------------------------------------------------------------

    def press(self, x: int, y: int):
        with self._lock:
            self._anchor = (x, y)
            self._last_point = (x, y)
            self._base = (0.0, 0.0)

    def move(self, x: int, y: int):
        with self._lock:
            if self._anchor is None:
                return
            self._last_point = (x, y)
            dx = x - self._anchor[0]
            dy = y - self._anchor[1]
            limit = Config.ATTITUDE_LIMIT
            self._pitch = _clamp(self._base[0] - dy * self._pitch_coeff, -limit, limit)
            self._roll = _clamp(self._base[1] + dx * self._roll_coeff, -limit, limit)

    def release(self):
        with self._lock:
            self._anchor = None
            self._last_point = None

    def change_sensitivity(self, diff: int):
        """
        Adjust the multiplier by diff and recompute the attitude rates.

        During a drag the current pointer position becomes the new reference,
        so the attitude already held is not rescaled.
        """
        with self._lock:
            mult = _clamp(self._mult + diff, Config.MIN_MULTIPLIER, Config.MAX_MULTIPLIER)
            if mult == self._mult:
                return
            if self._anchor is not None:
                self._anchor = self._last_point
                self._base = (self._pitch, self._roll)
            self._mult = mult
            self._pitch_coeff = mult * Config.ATTITUDE_RATE_PER_MULT
            self._roll_coeff = mult * Config.ATTITUDE_RATE_PER_MULT
            logger.debug("Sensitivity multiplier set to %d", mult)

    def on_mouse(self, event: int, x: int, y: int, flags: int, param: Any = None):
        """OpenCV mouse callback"""
        if event == cv2.EVENT_LBUTTONDOWN:
            self.press(x, y)
        elif event == cv2.EVENT_MOUSEMOVE:
            # LBUTTONUP is not delivered when the button is released outside the window
            if flags & cv2.EVENT_FLAG_LBUTTON:
                self.move(x, y)
            else:
                self.release()
        elif event == cv2.EVENT_LBUTTONUP:
            self.release()
        elif event == cv2.EVENT_MOUSEWHEEL:
            # Signed wheel delta lives in the high word of flags
            delta = flags >> 16
            if delta:
                self.change_sensitivity(1 if delta > 0 else -1)

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    def stabilize_tick(self):
        """Step pitch, roll and throttle toward the stable stance"""
        opt = self.options
        with self._lock:
            self._throttle = _approach(self._throttle, opt.throttle_stable, opt.speedup)
            self._pitch = _approach(self._pitch, opt.pitch_stable, opt.speedup * self._pitch_coeff)
            self._roll = _approach(self._roll, opt.roll_stable, opt.speedup * self._roll_coeff)

    def apply_key(self, key: int) -> int:
        """
        Apply the effect of a key code and return it unchanged.

        Keys without a binding are passed through untouched so the caller can
        handle quit and other application keys.
        """
        action = self.options.keys.action_for(key)
        if action is None:
            return key

        opt = self.options
        with self._lock:
            if action == "throttle_up":
                self._throttle = min(Config.THROTTLE_MAX, self._throttle + opt.thr_coeff)
            elif action == "throttle_down":
                self._throttle = max(Config.THROTTLE_MIN, self._throttle - opt.thr_coeff)
            elif action == "yaw_left":
                self._heading = (self._heading - opt.yaw_coeff) % Config.HEADING_RANGE
            elif action == "yaw_right":
                self._heading = (self._heading + opt.yaw_coeff) % Config.HEADING_RANGE
            elif action == "stabilize":
                self.stabilize_tick()
            elif action == "sensitivity_up":
                self.change_sensitivity(1)
            elif action == "sensitivity_down":
                self.change_sensitivity(-1)

        logger.debug("Key %d -> %s", key, action)
        return key

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def get_multiplier(self) -> int:
        with self._lock:
            return self._mult

    def get_pitch(self) -> float:
        with self._lock:
            return self._pitch

    def get_roll(self) -> float:
        with self._lock:
            return self._roll

    def get_throttle(self) -> int:
        with self._lock:
            return self._throttle

    def get_heading(self) -> int:
        with self._lock:
            return self._heading

    def is_dragging(self) -> bool:
        with self._lock:
            return self._anchor is not None

    def get_state(self) -> Dict[str, Any]:
        """Consistent snapshot of all controller outputs"""
        with self._lock:
            return {
                'multiplier': self._mult,
                'pitch': self._pitch,
                'roll': self._roll,
                'throttle': self._throttle,
                'heading': self._heading,
                'dragging': self._anchor is not None,
            }

# =============================================================================
# WINDOW / EVENT LOOP
# =============================================================================

class MouseController:
    """
    OpenCV window feeding an AttitudeController.

    Mouse events reach the controller through the window callback; key
    events are pulled one at a time with get_keystroke_once(), which must be
    called in a loop. Only one instance may be open at once.
    """

    _count = 0
    _count_lock = threading.Lock()

    def __init__(self, winname: str = Config.WINDOW_NAME, img: Optional[np.ndarray] = None,
                 options: Optional[Options] = None):
        with MouseController._count_lock:
            if MouseController._count > 0:
                raise MultipleControllersError("Only one controller window can be open at a time")
            MouseController._count += 1
        self._open = True

        try:
            self.winname = winname
            self.controller = AttitudeController(options)
            cv2.namedWindow(winname, cv2.WINDOW_AUTOSIZE)
            cv2.setMouseCallback(winname, self.controller.on_mouse)
            if img is None or img.size == 0:
                img = self.get_default_image()
            self.set_image(img)
        except Exception:
            self._release_slot()
            raise

        logger.info("Controller window '%s' opened", winname)

    def _release_slot(self):
        with MouseController._count_lock:
            if self._open:
                MouseController._count -= 1
                self._open = False

    def get_keystroke_once(self) -> int:
        """
        Wait for a single key and apply it to the controller.

        Controls:
            W/S    throttle up/down
            A/D    steer left/right
            SPACE  hold to converge to the stable stance
            +/-    sensitivity up/down

        Returns:
            The pressed key code (-1 if no window is available)
        """
        key = cv2.waitKey(0)
        if key == -1:
            return key
        key &= 0xFF
        return self.controller.apply_key(key)

    def set_image(self, img: Optional[np.ndarray]) -> bool:
        """Display the provided image; False if it is empty"""
        if img is None or img.size == 0:
            logger.warning("Ignoring empty image for window '%s'", self.winname)
            return False
        cv2.imshow(self.winname, img)
        return True

    @staticmethod
    def help():
        print("Controls:")
        print("  Drag LMB   - pitch (up/down) and roll (left/right)")
        print("  Scroll     - change sensitivity (also '+' / '-')")
        print("  'w' / 's'  - throttle up / down")
        print("  'a' / 'd'  - steer left / right")
        print("  SPACE      - hold to stabilize")
        print("  'q' / ESC  - quit")

    @staticmethod
    def get_default_image() -> np.ndarray:
        """640x480 solid blue frame"""
        return np.full((480, 640, 3), Config.DEFAULT_IMAGE_COLOR, dtype=np.uint8)

    def get_multiplier(self) -> int:
        return self.controller.get_multiplier()

    def get_pitch(self) -> float:
        return self.controller.get_pitch()

    def get_roll(self) -> float:
        return self.controller.get_roll()

    def get_throttle(self) -> int:
        return self.controller.get_throttle()

    def get_heading(self) -> int:
        return self.controller.get_heading()

    def close(self):
        if not self._open:
            return
        cv2.destroyWindow(self.winname)
        self._release_slot()
        logger.info("Controller window '%s' closed", self.winname)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
