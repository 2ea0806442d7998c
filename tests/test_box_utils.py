"""
Unit tests for box geometry utilities.
"""

import itertools

import pytest

from segrefine.utils.box_utils import (
    box_area,
    box_iou,
    boxes_overlap,
    clamp_box,
    is_degenerate,
    map_box_to_model,
    map_box_to_original,
    union_box,
)

SAMPLE_BOXES = [
    (10, 10, 50, 50),
    (12, 12, 52, 52),
    (60, 60, 70, 70),
    (50, 50, 60, 60),
    (0, 0, 5, 100),
    (20, 0, 30, 30),
]


class TestBoxIou:

    def test_inclusive_pixel_convention(self):
        # intersection 39 x 39, each box 41 x 41
        expected = 1521 / (1681 + 1681 - 1521)
        assert box_iou((10, 10, 50, 50), (12, 12, 52, 52)) == pytest.approx(expected)
        assert box_area((10, 10, 50, 50)) == 1681

    def test_identical_boxes(self):
        assert box_iou((3, 4, 20, 30), (3, 4, 20, 30)) == pytest.approx(1.0)

    def test_disjoint_boxes(self):
        assert box_iou((0, 0, 10, 10), (20, 20, 30, 30)) == 0.0
        assert not boxes_overlap((0, 0, 10, 10), (11, 0, 20, 10))

    def test_shared_edge_counts_as_overlap(self):
        assert boxes_overlap((0, 0, 10, 10), (10, 0, 20, 10))
        assert box_iou((0, 0, 10, 10), (10, 0, 20, 10)) == pytest.approx(11 / (121 + 121 - 11))

    def test_bounds_and_symmetry(self):
        for a, b in itertools.combinations(SAMPLE_BOXES, 2):
            iou = box_iou(a, b)
            assert 0.0 <= iou <= 1.0
            assert iou == pytest.approx(box_iou(b, a))


class TestBoxHelpers:

    def test_union_box_is_minimal_cover(self):
        assert union_box([(10, 10, 50, 50), (12, 5, 52, 40), (30, 30, 31, 60)]) == (10, 5, 52, 60)

    def test_clamp_box(self):
        assert clamp_box((-10, -10, 700, 700), 0, 80, 640, 640) == (0, 80, 639, 559)

    def test_is_degenerate(self):
        assert is_degenerate((5, 5, 5, 10))
        assert is_degenerate((5, 10, 8, 9))
        assert not is_degenerate((5, 5, 6, 6))


class TestCoordinateMapping:

    def test_letterbox_mapping(self):
        # 1280 x 1024 image letterboxed into 640 x 640 with 64 px bars top and bottom
        box = map_box_to_original((100, 150, 300, 400), 0, 64, 640, 640, 1280, 1024)
        assert box == (200, 172, 600, 672)

    def test_mapping_truncates(self):
        assert map_box_to_original((1, 1, 3, 3), 0, 0, 64, 64, 100, 100) == (1, 1, 4, 4)

    @pytest.mark.parametrize("box", [
        (100, 150, 300, 400),
        (37, 91, 211, 333),
        (250, 200, 330, 295),
    ])
    def test_round_trip_recovers_box(self, box):
        geometry = (0, 80, 640, 640, 1000, 750)
        original = map_box_to_original(box, *geometry)
        recovered = clamp_box(map_box_to_model(original, *geometry), 0, 80, 640, 640)
        assert box_iou(box, recovered) >= 0.95
