#!/usr/bin/env python3
"""
Live Color Target Detection
Runs the color target locator on the latest camera frame and shows the result.

Left-click a pixel in the main window to print its color as a parameter-file line.
"""

import argparse
import logging
import time

import cv2
import numpy as np

from camera_stream import CameraStream
from rig_config import Config
from rolling_average import RollingAverage
from target_locator import TargetLocator, bgr_to_hsv, draw_detection

MAIN_WINDOW = "Color Target - Main View"
MASK_WINDOW = "Color Target - Mask"


def make_pixel_picker(state: dict):
    """Mouse callback printing the color under the cursor on left click"""
    def on_mouse(event, x, y, flags, param):
        if event != cv2.EVENT_LBUTTONDOWN:
            return
        frame = state.get('frame')
        if frame is None or not (0 <= y < frame.shape[0] and 0 <= x < frame.shape[1]):
            return
        b, g, r = (int(c) for c in frame[y, x])
        h, s, v = bgr_to_hsv((b, g, r))
        print(f"Pixel ({x}, {y}): RGB=({r}, {g}, {b}) HSV=({h}, {s}, {v})")
        print(f"  params line: {r} {g} {b} 10 60 60")
    return on_mouse


def main():
    parser = argparse.ArgumentParser(description='Detect a colored target from a live camera')
    parser.add_argument('--params', type=str, default=Config.PARAMS_PATH, help='Color parameter file')
    parser.add_argument('--camera', type=int, default=Config.CAMERA_INDEX, help='Camera index')
    parser.add_argument('--source', type=str, help='Video file instead of a camera')
    parser.add_argument('--no-mask', action='store_true', help='Do not show the mask window')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    args = parser.parse_args()

    Config.DEBUG = args.debug
    Config.SHOW_MASK = not args.no_mask
    logging.basicConfig(level=logging.DEBUG if Config.DEBUG else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("COLOR TARGET DETECTION")
    print("=" * 60)

    locator = TargetLocator(args.params)
    print(f"Target color (BGR): {locator.spec.color}")
    print(f"Tolerances (H, S, V): {locator.spec.hue_tol}, {locator.spec.sat_tol}, {locator.spec.val_tol}")

    stream = CameraStream(args.source if args.source else args.camera)
    try:
        stream.start()
    except RuntimeError as e:
        print(f"Failed to initialize camera: {e}")
        return

    smooth_x = RollingAverage(Config.SMOOTHING_SAMPLES)
    smooth_y = RollingAverage(Config.SMOOTHING_SAMPLES)
    smooth_r = RollingAverage(Config.SMOOTHING_SAMPLES)

    state = {'frame': None}
    cv2.namedWindow(MAIN_WINDOW, cv2.WINDOW_NORMAL)
    cv2.setMouseCallback(MAIN_WINDOW, make_pixel_picker(state))
    if Config.SHOW_MASK:
        cv2.namedWindow(MASK_WINDOW, cv2.WINDOW_NORMAL)

    print("\nControls:")
    print("  'q' / ESC - Quit application")
    print("  Left click - Print pixel color as a parameter line")

    mask = None
    try:
        while True:
            frame = stream.latest_frame()
            if frame is None:
                if not stream.is_running:
                    print("Video source ended")
                    break
                time.sleep(0.005)  # Small delay to prevent busy waiting
                continue

            frame = frame.copy()
            state['frame'] = frame.copy()
            if mask is None or mask.shape != frame.shape[:2]:
                mask = np.zeros(frame.shape[:2], dtype=np.uint8)

            result = locator.locate(frame, mask_out=mask)
            if result is None:
                smooth_x.reset()
                smooth_y.reset()
                smooth_r.reset()
            else:
                (cx, cy), radius = result
                result = result._replace(
                    center=(int(smooth_x.add(cx)), int(smooth_y.add(cy))),
                    radius=int(smooth_r.add(radius)),
                )

            cv2.imshow(MAIN_WINDOW, draw_detection(frame, result))
            if Config.SHOW_MASK:
                cv2.imshow(MASK_WINDOW, mask)

            key = cv2.waitKey(1) & 0xFF
            if key in (ord('q'), 27):
                break

    except KeyboardInterrupt:
        print("\nInterrupted by user (Ctrl+C)")

    finally:
        stream.stop()
        cv2.destroyAllWindows()
        print("Color target detection stopped")


if __name__ == "__main__":
    main()
