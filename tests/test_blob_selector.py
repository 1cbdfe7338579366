# tests/test_blob_selector.py
"""
Unit tests for connected-group blob selection.
"""

import math

import numpy as np
import pytest

from target_locator import Blob, DetectionResult, find_blobs, select_largest_blob


def blank_mask(h=100, w=100):
    return np.zeros((h, w), dtype=np.uint8)


# =============================================================================
# Test: Blob record
# =============================================================================

class TestBlob:

    def test_centroid_from_sums(self):
        blob = Blob(sum_x=30, sum_y=60, pixel_count=3)
        assert blob.centroid == (10.0, 20.0)

    def test_radius_assumes_filled_disk(self):
        blob = Blob(0, 0, 314)
        assert blob.radius == pytest.approx(math.sqrt(314 / math.pi))

    def test_to_result_rounds(self):
        blob = Blob(sum_x=21, sum_y=9, pixel_count=2)
        result = blob.to_result()
        assert isinstance(result, DetectionResult)
        assert result.center == (10, 4)
        assert result.radius == 1


# =============================================================================
# Test: Group discovery
# =============================================================================

class TestFindBlobs:

    def test_empty_mask_has_no_blobs(self):
        assert find_blobs(blank_mask()) == []

    def test_single_rectangle(self):
        mask = blank_mask()
        mask[10:12, 20:23] = 255
        blobs = find_blobs(mask)
        assert len(blobs) == 1
        assert blobs[0].pixel_count == 6
        assert blobs[0].sum_x == 2 * (20 + 21 + 22)
        assert blobs[0].sum_y == 3 * (10 + 11)

    def test_diagonal_pixels_joined_with_8_connectivity(self):
        mask = blank_mask(5, 5)
        mask[1, 1] = 255
        mask[2, 2] = 255
        blobs = find_blobs(mask, connectivity=8)
        assert [b.pixel_count for b in blobs] == [2]

    def test_diagonal_pixels_split_with_4_connectivity(self):
        mask = blank_mask(5, 5)
        mask[1, 1] = 255
        mask[2, 2] = 255
        blobs = find_blobs(mask, connectivity=4)
        assert sorted(b.pixel_count for b in blobs) == [1, 1]

    def test_any_nonzero_value_counts_as_set(self):
        mask = blank_mask(5, 5)
        mask[0, 0] = 1
        mask[0, 1] = 200
        assert [b.pixel_count for b in find_blobs(mask)] == [2]


# =============================================================================
# Test: Largest group selection
# =============================================================================

class TestSelectLargestBlob:

    def test_empty_mask_returns_none(self):
        assert select_largest_blob(blank_mask()) is None

    def test_largest_of_two_blobs_selected(self):
        mask = blank_mask()
        mask[10:15, 10:20] = 255   # 50 pixels
        mask[50:60, 40:60] = 255   # 200 pixels
        result = select_largest_blob(mask)
        cx, cy = result.center
        assert abs(cx - 49.5) <= 1
        assert abs(cy - 54.5) <= 1
        assert result.radius == round(math.sqrt(200 / math.pi))

    def test_largest_selected_regardless_of_scan_order(self):
        mask = blank_mask()
        mask[0:20, 0:20] = 255     # 400 pixels, found first
        mask[60:62, 60:62] = 255   # 4 pixels
        mask[80:90, 10:60] = 255   # 500 pixels
        result = select_largest_blob(mask)
        assert abs(result.center[0] - 34.5) <= 1
        assert abs(result.center[1] - 84.5) <= 1

    def test_tie_goes_to_first_group_in_scan_order(self):
        mask = blank_mask()
        mask[5:10, 60:70] = 255    # 50 pixels, upper
        mask[50:55, 0:10] = 255    # 50 pixels, lower
        result = select_largest_blob(mask)
        assert abs(result.center[0] - 64.5) <= 1
        assert result.center[1] == 7

    def test_tie_break_is_deterministic(self):
        mask = blank_mask()
        mask[5:10, 60:70] = 255
        mask[50:55, 0:10] = 255
        assert select_largest_blob(mask) == select_largest_blob(mask.copy())

    def test_single_pixel(self):
        mask = blank_mask()
        mask[3, 7] = 255
        assert select_largest_blob(mask) == DetectionResult((7, 3), 1)
