"""
Constants and default values for the segrefine project.

This module centralizes the thresholds and model-family constants used by
the refinement pipeline so that configuration files only need to list
what they change.
"""

from typing import Dict


# Default detection and refinement thresholds
class DefaultThresholds:
    """Default threshold values for the refinement stages."""

    # Score filtering
    COMMON_SCORE = 0.3
    CLASS_SCORES: Dict[int, float] = {0: 0.25}  # person is detected with lower confidence

    # Redundancy reduction
    BOX_IOU = 0.7  # Intersection over Union of boxes
    MASK_IOU = 0.7  # Intersection over Union of binarized masks
    OVERLAP = 0.8  # Intersection over own mask area, same class only

    # Finalization
    MIN_BOX_SIZE = 20  # (width + 1) + (height + 1) floor in original pixels


# Constants of the model family
class ModelDefaults:
    """Input geometry of the segmentation model."""

    INFER_SIZE = 640


# Numerical constants
class NumericDefaults:
    """Numerical guards used in overlap computations."""

    EPSILON = 1e-6
    BINARIZE_CUTOFF = 0.5  # rounding a soft mask value to 0/1
