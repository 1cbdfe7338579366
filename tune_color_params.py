#!/usr/bin/env python3
"""
Color Parameter Tuning Tool
Applies a parameter file to a sample image and saves the mask for inspection.
"""

import argparse
import os

import cv2

from rig_config import Config
from target_locator import TargetLocator, draw_detection


def tune_params_on_image(image_path: str, params_path: str, output_dir: str = "mask_debug"):
    """Run the color mask on an image and save original, mask and overlay images"""
    img = cv2.imread(image_path)
    if img is None:
        print(f"Could not load image: {image_path}")
        return None

    locator = TargetLocator(params_path)
    spec = locator.spec
    print(f"Color (BGR): {spec.color}")
    print(f"Tolerances (H, S, V): {spec.hue_tol}, {spec.sat_tol}, {spec.val_tol}")

    result = locator.locate(img)
    mask = locator.get_debug_mask()
    selected = cv2.countNonZero(mask)
    print(f"Selected pixels: {selected} ({100.0 * selected / mask.size:.2f}%)")
    if result is None:
        print("No target found")
    else:
        print(f"Target center: {result.center}, radius: {result.radius}")

    os.makedirs(output_dir, exist_ok=True)
    overlay = cv2.bitwise_and(img, img, mask=mask)
    cv2.imwrite(os.path.join(output_dir, "original_image.jpg"), img)
    cv2.imwrite(os.path.join(output_dir, "mask.png"), mask)
    cv2.imwrite(os.path.join(output_dir, "overlay.jpg"), draw_detection(overlay, result))
    print(f"\nDebug images saved to: {output_dir}/")
    return result


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description='Test color parameters on an image')
    parser.add_argument('image', type=str, help='Image file to test')
    parser.add_argument('--params', type=str, default=Config.PARAMS_PATH, help='Color parameter file')
    parser.add_argument('--output', type=str, default="mask_debug", help='Directory for debug images')
    args = parser.parse_args()

    print("Color Parameter Test")
    print("=" * 30)
    tune_params_on_image(args.image, args.params, args.output)
