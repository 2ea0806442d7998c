"""
Box geometry utilities.

This module provides functions for:
- Intersection over Union of boxes (inclusive pixel-count convention)
- Clamping boxes into the unpadded content region
- Union boxes of merge groups
- Mapping boxes between letterboxed model space and source-image space

Boxes are ``(x1, y1, x2, y2)`` tuples of integer pixel coordinates.
"""

from typing import Iterable, Tuple

Box = Tuple[int, int, int, int]


def box_area(box: Box) -> int:
    """Pixel count of a box, counting both edge rows and columns."""
    x1, y1, x2, y2 = box
    return max(0, x2 - x1 + 1) * max(0, y2 - y1 + 1)


def boxes_overlap(box1: Box, box2: Box) -> bool:
    """
    Check if two boxes share at least one pixel.
    Fast pre-filter before mask operations.
    """
    if box1[2] < box2[0] or box2[2] < box1[0]:
        return False
    if box1[3] < box2[1] or box2[3] < box1[1]:
        return False
    return True


def box_iou(box1: Box, box2: Box) -> float:
    """
    Calculate Intersection over Union of two boxes.

    Width and height are counted inclusively (``x2 - x1 + 1``).

    Parameters:
    - box1, box2: (x1, y1, x2, y2)

    Returns:
    - float: IoU between 0 and 1, 0 for disjoint boxes
    """
    if not boxes_overlap(box1, box2):
        return 0.0

    inter = box_area((
        max(box1[0], box2[0]),
        max(box1[1], box2[1]),
        min(box1[2], box2[2]),
        min(box1[3], box2[3]),
    ))
    union = box_area(box1) + box_area(box2) - inter
    return inter / union if union > 0 else 0.0


def union_box(boxes: Iterable[Box]) -> Box:
    """Smallest box containing every box in ``boxes``."""
    boxes = list(boxes)
    return (
        min(b[0] for b in boxes),
        min(b[1] for b in boxes),
        max(b[2] for b in boxes),
        max(b[3] for b in boxes),
    )


def clamp_box(box: Box, pad_x: int, pad_y: int, canvas_width: int, canvas_height: int) -> Box:
    """
    Clamp a box into the content region of a letterboxed canvas.

    x is limited to ``[pad_x, canvas_width - 1 - pad_x]`` and y to
    ``[pad_y, canvas_height - 1 - pad_y]``.
    """
    x_max = canvas_width - 1 - pad_x
    y_max = canvas_height - 1 - pad_y
    x1, y1, x2, y2 = box
    return (
        min(max(x1, pad_x), x_max),
        min(max(y1, pad_y), y_max),
        min(max(x2, pad_x), x_max),
        min(max(y2, pad_y), y_max),
    )


def is_degenerate(box: Box) -> bool:
    return box[0] >= box[2] or box[1] >= box[3]


def _to_original(coord, pad, canvas, original):
    return int((coord - pad) / float(canvas - 2 * pad) * original)


def _to_model(coord, pad, canvas, original):
    return int(round(coord / float(original) * (canvas - 2 * pad) + pad))


def map_box_to_original(
    box: Box,
    pad_x: int,
    pad_y: int,
    canvas_width: int,
    canvas_height: int,
    original_width: int,
    original_height: int,
) -> Box:
    """
    Map a model-space box to source-image pixels.

    ``actual = (coord - pad) / (canvas - 2 * pad) * original``, truncated
    to an integer, applied to x and y independently.
    """
    x1, y1, x2, y2 = box
    return (
        _to_original(x1, pad_x, canvas_width, original_width),
        _to_original(y1, pad_y, canvas_height, original_height),
        _to_original(x2, pad_x, canvas_width, original_width),
        _to_original(y2, pad_y, canvas_height, original_height),
    )


def map_box_to_model(
    box: Box,
    pad_x: int,
    pad_y: int,
    canvas_width: int,
    canvas_height: int,
    original_width: int,
    original_height: int,
) -> Box:
    """Inverse of ``map_box_to_original``, rounded to the nearest model pixel."""
    x1, y1, x2, y2 = box
    return (
        _to_model(x1, pad_x, canvas_width, original_width),
        _to_model(y1, pad_y, canvas_height, original_height),
        _to_model(x2, pad_x, canvas_width, original_width),
        _to_model(y2, pad_y, canvas_height, original_height),
    )
