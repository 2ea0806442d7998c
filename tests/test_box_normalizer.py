"""
Unit tests for the box normalizer stage.
"""

from conftest import make_batch

from segrefine.data.models import DetectionStatus
from segrefine.functions.refinement import normalize_boxes

ALIVE = DetectionStatus.ALIVE


class TestBoxNormalizer:

    def test_boxes_clamped_to_content_region(self):
        # canvas 64, pad_y 8: y must stay within [8, 55]
        batch = make_batch([((-5, 2, 70, 60), 0.9, 0)], pad_y=8)
        boxes, statuses = normalize_boxes(batch, [ALIVE])
        assert boxes == [(0, 8, 63, 55)]
        assert statuses == [ALIVE]

    def test_box_inside_padding_is_degenerate(self):
        batch = make_batch([((10, 0, 30, 6), 0.9, 0)], pad_y=8)
        boxes, statuses = normalize_boxes(batch, [ALIVE])
        assert boxes == [(10, 8, 30, 8)]
        assert statuses == [DetectionStatus.DEGENERATE]

    def test_inverted_box_is_degenerate(self):
        batch = make_batch([((30, 10, 20, 40), 0.9, 0)])
        _, statuses = normalize_boxes(batch, [ALIVE])
        assert statuses == [DetectionStatus.DEGENERATE]

    def test_discarded_candidates_are_left_alone(self):
        batch = make_batch([((-5, -5, 70, 70), 0.1, 1)])
        boxes, statuses = normalize_boxes(batch, [DetectionStatus.BELOW_THRESHOLD])
        assert boxes == [(-5, -5, 70, 70)]
        assert statuses == [DetectionStatus.BELOW_THRESHOLD]
