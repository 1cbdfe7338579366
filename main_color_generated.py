#!/usr/bin/env python3
"""
Color Detection on Generated Color Maps
Sweeps through synthetic RGB color maps and shows where the configured color is found.
"""

import argparse
import logging

import cv2
import numpy as np

from rig_config import Config
from target_locator import detect_color, draw_detection

MAP_SIZE = 256
PERIOD = 2 * MAP_SIZE

# (row channel, column channel, ramp channel) as RGB indices
CHANNEL_ORDERS = [(0, 1, 2), (1, 2, 0), (2, 0, 1)]


def get_color_image(t: int) -> np.ndarray:
    """
    Generate a 256x256 BGR color map for time step t.

    Row and column index set the intensity of two channels. The third channel
    ramps up then down over 512 steps, after which the channel roles rotate.
    """
    phase = t % PERIOD
    ramp = phase if phase < MAP_SIZE else PERIOD - 1 - phase
    row_ch, col_ch, ramp_ch = CHANNEL_ORDERS[(t // PERIOD) % len(CHANNEL_ORDERS)]

    levels = np.arange(MAP_SIZE, dtype=np.uint8)
    rgb = np.empty((MAP_SIZE, MAP_SIZE, 3), dtype=np.uint8)
    rgb[:, :, row_ch] = levels[:, np.newaxis]
    rgb[:, :, col_ch] = levels[np.newaxis, :]
    rgb[:, :, ramp_ch] = ramp
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)


def print_controls():
    print("Controls:")
    print("  'q' / ESC - Quit")
    print("  SPACE     - Pause / resume")
    print("  any key   - Step while paused")


def main():
    parser = argparse.ArgumentParser(description='Run color detection over generated color maps')
    parser.add_argument('--params', type=str, default=Config.PARAMS_PATH, help='Color parameter file')
    parser.add_argument('--step', type=int, default=4, help='Time steps advanced per frame')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print_controls()

    mask = np.zeros((MAP_SIZE, MAP_SIZE), dtype=np.uint8)
    paused = False
    t = 0
    try:
        while True:
            image = get_color_image(t)
            result = detect_color(image, mask, args.params)

            cv2.imshow("Generated Colors", draw_detection(image.copy(), result))
            cv2.imshow("Generated Colors - Mask", mask)

            key = cv2.waitKey(0 if paused else 30) & 0xFF
            if key in (ord('q'), 27):
                break
            if key == ord(' '):
                paused = not paused
            t += args.step
    except KeyboardInterrupt:
        print("\nInterrupted by user")
    finally:
        cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
