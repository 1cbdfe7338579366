# tests/test_tools.py
"""
Tests for the demo and tuning scripts' reusable pieces.
"""

import os

import cv2
import numpy as np

from main_color_camera import make_pixel_picker
from main_color_generated import get_color_image
from tune_color_params import tune_params_on_image


# =============================================================================
# Test: Generated color maps
# =============================================================================

class TestGetColorImage:

    def test_shape_and_dtype(self):
        img = get_color_image(0)
        assert img.shape == (256, 256, 3)
        assert img.dtype == np.uint8

    def test_rows_and_columns_drive_two_channels(self):
        img = get_color_image(0)
        # t=0: R follows row, G follows column, B ramp at 0
        assert tuple(img[10, 20]) == (0, 20, 10)

    def test_ramp_goes_up_then_down(self):
        assert get_color_image(100)[0, 0, 0] == 100
        assert get_color_image(300)[0, 0, 0] == 211
        assert get_color_image(511)[0, 0, 0] == 0

    def test_channels_rotate_every_period(self):
        img = get_color_image(512)
        # G follows row, B follows column, R ramp at 0
        assert tuple(img[10, 20]) == (20, 10, 0)

    def test_cycle_repeats(self):
        np.testing.assert_array_equal(get_color_image(7), get_color_image(7 + 3 * 512))


# =============================================================================
# Test: Pixel picker callback
# =============================================================================

class TestPixelPicker:

    def test_prints_params_line(self, capsys):
        frame = np.zeros((10, 10, 3), dtype=np.uint8)
        frame[5, 5] = (0, 0, 255)
        picker = make_pixel_picker({'frame': frame})
        picker(cv2.EVENT_LBUTTONDOWN, 5, 5, 0, None)
        out = capsys.readouterr().out
        assert "RGB=(255, 0, 0)" in out
        assert "params line: 255 0 0" in out

    def test_ignores_other_events(self, capsys):
        picker = make_pixel_picker({'frame': np.zeros((10, 10, 3), np.uint8)})
        picker(cv2.EVENT_MOUSEMOVE, 5, 5, 0, None)
        assert capsys.readouterr().out == ""

    def test_ignores_clicks_without_frame_or_outside(self, capsys):
        make_pixel_picker({'frame': None})(cv2.EVENT_LBUTTONDOWN, 1, 1, 0, None)
        make_pixel_picker({'frame': np.zeros((4, 4, 3), np.uint8)})(cv2.EVENT_LBUTTONDOWN, 9, 9, 0, None)
        assert capsys.readouterr().out == ""


# =============================================================================
# Test: Tuning tool
# =============================================================================

class TestTuneParams:

    def test_saves_debug_images(self, tmp_path, red_params, target_frame):
        image_path = str(tmp_path / "sample.png")
        cv2.imwrite(image_path, target_frame)
        out_dir = str(tmp_path / "out")

        result = tune_params_on_image(image_path, red_params, out_dir)

        assert result is not None
        assert abs(result.center[0] - 80) <= 1
        for name in ("original_image.jpg", "mask.png", "overlay.jpg"):
            assert os.path.exists(os.path.join(out_dir, name))

    def test_missing_image(self, tmp_path, red_params):
        assert tune_params_on_image(str(tmp_path / "none.png"), red_params, str(tmp_path)) is None
