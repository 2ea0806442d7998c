"""
Detection data models for the segrefine project.

This module defines:
- RawDetection: one unrefined model candidate (box, score, class, soft mask)
- DetectionBatch: the aligned candidates of one inference call plus the
  letterbox padding and source-image geometry
- DetectionStatus: explicit per-candidate liveness threaded through the stages
- RefinedDetection: the immutable pipeline output

All objects are scoped to a single inference call.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from segrefine.utils.exceptions import BatchValidationError

Box = Tuple[int, int, int, int]


class DetectionStatus(Enum):
    """Why a candidate is (or is not) still part of the result."""

    ALIVE = "alive"
    BELOW_THRESHOLD = "below_threshold"
    DEGENERATE = "degenerate"
    MERGED = "merged"
    TOO_SMALL = "too_small"


@dataclass
class RawDetection:
    """One model candidate in model-input pixel space."""

    box: Box  # x1, y1, x2, y2
    score: float
    class_id: int
    mask: np.ndarray  # (H, W) soft mask over the full canvas


@dataclass
class DetectionBatch:
    """
    Aligned candidates of one inference call.

    ``canvas_width``/``canvas_height`` describe the model-input canvas the
    boxes and masks live in; ``pad_x``/``pad_y`` are the letterbox borders
    added by preprocessing.
    """

    detections: List[RawDetection]
    pad_x: int
    pad_y: int
    original_width: int
    original_height: int
    canvas_width: int = 0
    canvas_height: int = 0

    def __len__(self):
        return len(self.detections)

    @property
    def content_width(self) -> int:
        return self.canvas_width - 2 * self.pad_x

    @property
    def content_height(self) -> int:
        return self.canvas_height - 2 * self.pad_y

    @classmethod
    def from_arrays(
        cls,
        boxes: Sequence,
        scores: Sequence,
        labels: Sequence,
        masks: Sequence,
        pad_x: int,
        pad_y: int,
        original_width: int,
        original_height: int,
        canvas_size: Optional[int] = None,
    ) -> "DetectionBatch":
        """
        Builds a batch from raw, index-aligned inference arrays.

        Parameters:
        - boxes: (n, 4) x1, y1, x2, y2 in model-input pixels
        - scores: (n,) confidence scores
        - labels: (n,) class indices
        - masks: (n, H, W) soft masks over the canvas
        - pad_x, pad_y (int): Letterbox padding in model-input pixels
        - original_width, original_height (int): Source image size
        - canvas_size (int): Square model input size; defaults to the mask shape

        Returns:
        - DetectionBatch

        Raises:
        - BatchValidationError: On misaligned arrays or inconsistent geometry
        """
        boxes = np.asarray(boxes, dtype=np.float64)
        if boxes.size == 0:
            boxes = np.zeros((0, 4))
        elif boxes.ndim != 2 or boxes.shape[1] != 4:
            raise BatchValidationError(
                "Boxes must have shape (n, 4)", stage="input", details={"shape": boxes.shape}
            )
        scores = np.asarray(scores, dtype=np.float64).reshape(-1)
        labels = np.asarray(labels).reshape(-1)

        lengths = {"boxes": len(boxes), "scores": len(scores), "labels": len(labels), "masks": len(masks)}
        if len(set(lengths.values())) != 1:
            raise BatchValidationError(
                "Inference arrays are not aligned", stage="input", details=lengths
            )

        if pad_x < 0 or pad_y < 0:
            raise BatchValidationError(
                "Padding offsets must be non-negative", stage="input",
                details={"pad_x": pad_x, "pad_y": pad_y},
            )
        if original_width <= 0 or original_height <= 0:
            raise BatchValidationError(
                "Original image dimensions must be positive", stage="input",
                details={"original_width": original_width, "original_height": original_height},
            )

        mask_shapes = {np.shape(mask) for mask in masks}
        if len(mask_shapes) > 1:
            raise BatchValidationError(
                "Masks in one batch must share the canvas shape", stage="input",
                details={"shapes": sorted(mask_shapes)},
            )
        mask_shape = next(iter(mask_shapes)) if mask_shapes else None
        if mask_shape is not None and len(mask_shape) != 2:
            raise BatchValidationError(
                "Masks must be 2-D grids", stage="input", details={"shape": mask_shape}
            )

        if canvas_size is not None:
            canvas_height = canvas_width = int(canvas_size)
            if mask_shape is not None and (mask_shape[0] < canvas_height or mask_shape[1] < canvas_width):
                raise BatchValidationError(
                    "Mask grid is smaller than the model canvas", stage="input",
                    details={"mask_shape": mask_shape, "canvas_size": canvas_size},
                )
        elif mask_shape is not None:
            canvas_height, canvas_width = mask_shape
        else:
            canvas_height = canvas_width = 0

        if len(masks) and (canvas_width - 2 * pad_x <= 0 or canvas_height - 2 * pad_y <= 0):
            raise BatchValidationError(
                "Padding leaves no content region on the canvas", stage="input",
                details={"canvas": (canvas_width, canvas_height), "pad_x": pad_x, "pad_y": pad_y},
            )

        detections = [
            RawDetection(
                box=tuple(int(v) for v in box),
                score=float(score),
                class_id=int(label),
                mask=np.asarray(mask),
            )
            for box, score, label, mask in zip(boxes, scores, labels, masks)
        ]
        return cls(
            detections=detections,
            pad_x=int(pad_x),
            pad_y=int(pad_y),
            original_width=int(original_width),
            original_height=int(original_height),
            canvas_width=int(canvas_width),
            canvas_height=int(canvas_height),
        )


@dataclass(frozen=True)
class RefinedDetection:
    """Final detection in original-image pixel space."""

    box: Box
    mask: np.ndarray = field(repr=False)  # uint8 0/1, shape (y2 - y1, x2 - x1)
    score: float
    label: str
