"""
segrefine - Pytest Configuration and Fixtures

Shared fixtures for building synthetic inference batches.
"""

import os
import sys
import tempfile
from pathlib import Path

import numpy as np
import pytest

# Keep log files out of the home directory during tests
os.environ.setdefault("SEGREFINE_LOG_DIR", tempfile.mkdtemp(prefix="segrefine-logs-"))

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from segrefine.data.models import DetectionBatch  # noqa: E402
from segrefine.utils.config import RefinementSettings  # noqa: E402

CLASS_NAMES = {0: "person", 1: "bicycle", 2: "car"}


def filled_mask(box, canvas=64, value=1.0):
    """Canvas-sized soft mask filled inside ``box`` (inclusive)."""
    mask = np.zeros((canvas, canvas), dtype=np.float32)
    x1, y1, x2, y2 = box
    mask[y1:y2 + 1, x1:x2 + 1] = value
    return mask


def make_batch(entries, canvas=64, pad_x=0, pad_y=0, original=None, masks=None):
    """
    Builds a DetectionBatch from ``(box, score, class_id)`` tuples.

    Masks default to the box filled with ones; ``original`` defaults to the
    unpadded content size so coordinates map one to one.
    """
    boxes = [entry[0] for entry in entries]
    scores = [entry[1] for entry in entries]
    labels = [entry[2] for entry in entries]
    if masks is None:
        masks = [filled_mask(box, canvas) for box in boxes]
    if original is None:
        original = (canvas - 2 * pad_x, canvas - 2 * pad_y)
    if not entries:
        masks = np.zeros((0, canvas, canvas), dtype=np.float32)
    return DetectionBatch.from_arrays(
        boxes, scores, labels, masks,
        pad_x=pad_x, pad_y=pad_y,
        original_width=original[0], original_height=original[1],
    )


@pytest.fixture
def class_names():
    return dict(CLASS_NAMES)


@pytest.fixture
def settings():
    """Reference thresholds with a size floor that keeps small test boxes."""
    return RefinementSettings(
        common_threshold=0.3,
        class_thresholds={0: 0.25},
        box_iou_threshold=0.7,
        mask_iou_threshold=0.7,
        overlap_threshold=0.8,
        min_box_size=20,
    )
