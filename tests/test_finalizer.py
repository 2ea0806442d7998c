"""
Unit tests for the finalizer stage.
"""

import numpy as np
import pytest

from conftest import CLASS_NAMES, make_batch
from segrefine.data.models import DetectionStatus
from segrefine.functions.refinement import finalize_detections, resolve_label
from segrefine.utils.config import RefinementSettings
from segrefine.utils.exceptions import ConfigurationError, UnknownClassError

ALIVE = DetectionStatus.ALIVE


def finalize(batch, settings, class_names=CLASS_NAMES, statuses=None):
    boxes = [det.box for det in batch.detections]
    masks = [det.mask for det in batch.detections]
    statuses = statuses or [ALIVE] * len(batch)
    return finalize_detections(batch, boxes, masks, statuses, settings, class_names)


class TestFinalizer:

    def test_tiny_box_is_dropped(self, settings):
        batch = make_batch([((10, 10, 11, 11), 0.9, 0), ((20, 20, 40, 40), 0.9, 1)])
        refined, statuses = finalize(batch, settings)
        assert statuses == [DetectionStatus.TOO_SMALL, ALIVE]
        assert len(refined) == 1
        assert refined[0].label == "bicycle"

    def test_size_floor_boundary(self):
        # (width + 1) + (height + 1) == 20 is kept
        batch = make_batch([((10, 10, 19, 19), 0.9, 0)])
        _, statuses = finalize(batch, RefinementSettings(min_box_size=20))
        assert statuses == [ALIVE]
        _, statuses = finalize(batch, RefinementSettings(min_box_size=21))
        assert statuses == [DetectionStatus.TOO_SMALL]

    def test_letterboxed_box_and_mask_are_mapped(self, settings):
        # 64 x 64 canvas, 16 px bars top and bottom, 128 x 64 source image
        batch = make_batch([((8, 20, 24, 36), 0.9, 2)], pad_y=16, original=(128, 64))
        refined, _ = finalize(batch, settings)

        det = refined[0]
        assert det.box == (16, 8, 48, 40)
        assert det.mask.shape == (32, 32)
        assert det.mask.dtype == np.uint8
        assert det.mask.min() == 1
        assert det.score == pytest.approx(0.9)
        assert det.label == "car"

    def test_mask_keeps_shape_of_silhouette(self, settings):
        mask = np.zeros((64, 64), dtype=np.float32)
        mask[10:20, 10:30] = 0.9  # top half of the box only
        batch = make_batch([((10, 10, 30, 30), 0.9, 0)], masks=[mask])
        refined, _ = finalize(batch, settings)
        out = refined[0].mask
        assert out.shape == (20, 20)
        assert out[:10].min() == 1
        assert out[10:].max() == 0

    def test_zero_width_after_mapping_is_dropped(self):
        # 64 px canvas onto a 10 px image: x 10..12 collapses to one column
        batch = make_batch([((10, 10, 12, 40), 0.9, 0)], original=(10, 10))
        refined, statuses = finalize(batch, RefinementSettings(min_box_size=0))
        assert refined == []
        assert statuses == [DetectionStatus.TOO_SMALL]

    def test_discarded_candidates_are_skipped(self, settings):
        batch = make_batch([((20, 20, 40, 40), 0.9, 7)])
        refined, statuses = finalize(batch, settings, statuses=[DetectionStatus.MERGED])
        assert refined == []
        assert statuses == [DetectionStatus.MERGED]

    def test_unknown_class_raises(self, settings):
        batch = make_batch([((20, 20, 40, 40), 0.9, 7)])
        with pytest.raises(UnknownClassError) as exc_info:
            finalize(batch, settings)
        assert isinstance(exc_info.value, ConfigurationError)
        assert "7" in str(exc_info.value)


class TestResolveLabel:

    def test_dict_and_list_lookups(self):
        assert resolve_label({0: "person"}, 0) == "person"
        assert resolve_label(["person", "bicycle"], 1) == "bicycle"

    def test_negative_index_is_unknown(self):
        with pytest.raises(UnknownClassError):
            resolve_label(["person", "bicycle"], -1)

    def test_out_of_range_list_index(self):
        with pytest.raises(UnknownClassError):
            resolve_label(["person"], 3)
