#!/usr/bin/env python3
"""
Attitude Controller Demo
Opens the controller window and prints the control targets after every key.
"""

import argparse
import logging
import math

from attitude_controller import MouseController, Options
from rig_config import Config


def main():
    parser = argparse.ArgumentParser(description='Mouse & keyboard attitude controller')
    parser.add_argument('--multiplier', type=int, default=10, help='Roll-pitch sensitivity')
    parser.add_argument('--thr-coeff', type=int, default=5, help='Throttle step per key press')
    parser.add_argument('--yaw-coeff', type=int, default=10, help='Heading step per key press')
    parser.add_argument('--speedup', type=int, default=25, help='Stabilize step per tick')
    parser.add_argument('--throttle-stable', type=int, default=50, help='Stable-stance throttle')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    opt = Options(
        multiplier=args.multiplier,
        thr_coeff=args.thr_coeff,
        yaw_coeff=args.yaw_coeff,
        speedup=args.speedup,
        throttle_stable=args.throttle_stable,
    )
    if not opt.check():
        print(f"Invalid options: {opt}")
        return

    MouseController.help()
    with MouseController(Config.WINDOW_NAME, options=opt) as mc:
        try:
            while True:
                key = mc.get_keystroke_once()
                if key in (ord('q'), 27, -1):
                    break
                print(f"mult: {mc.get_multiplier():3d} | "
                      f"pitch: {math.degrees(mc.get_pitch()):+6.2f} deg | "
                      f"roll: {math.degrees(mc.get_roll()):+6.2f} deg | "
                      f"throttle: {mc.get_throttle():3d} | "
                      f"heading: {mc.get_heading():3d}")
        except KeyboardInterrupt:
            print("\nInterrupted by user")


if __name__ == "__main__":
    main()
