"""
Mask Utilities

This module provides utility functions for binarizing, cropping, comparing
and resampling instance masks, plus Run-Length Encoding (RLE) for export.
"""

from dataclasses import dataclass

import cv2
import numpy as np

from segrefine.utils.constants import NumericDefaults


@dataclass(frozen=True)
class MaskOverlap:
    """Overlap statistics of two binarized masks over a shared region."""

    intersection: int
    area1: int
    area2: int
    mask_iou: float
    overlap1: float  # fraction of mask 1 covered by mask 2
    overlap2: float  # fraction of mask 2 covered by mask 1


def binarize(mask, cutoff=NumericDefaults.BINARIZE_CUTOFF):
    """
    Rounds a soft mask to 0/1.

    Parameters:
    - mask (numpy.ndarray): Soft mask values
    - cutoff (float): Values at or above the cutoff become 1

    Returns:
    - numpy.ndarray: uint8 mask of zeros and ones
    """
    return (np.asarray(mask) >= cutoff).astype(np.uint8)


def crop_to_box(mask, box, inclusive=True):
    """
    Crops a canvas-sized mask to a box.

    With ``inclusive`` the pixel at (x2, y2) is part of the crop.
    """
    x1, y1, x2, y2 = box
    extra = 1 if inclusive else 0
    return mask[y1:y2 + extra, x1:x2 + extra]


def mask_overlap(mask1, mask2, region, eps=NumericDefaults.EPSILON):
    """
    Compares two masks inside a shared crop region.

    Parameters:
    - mask1, mask2 (numpy.ndarray): Canvas-sized soft masks
    - region (tuple): (x1, y1, x2, y2) crop region, inclusive
    - eps (float): Division guard for empty masks

    Returns:
    - MaskOverlap: intersection, areas, mask IoU and own-area overlaps
    """
    crop1 = binarize(crop_to_box(mask1, region)).astype(bool)
    crop2 = binarize(crop_to_box(mask2, region)).astype(bool)

    intersection = int(np.logical_and(crop1, crop2).sum())
    area1 = int(crop1.sum())
    area2 = int(crop2.sum())

    return MaskOverlap(
        intersection=intersection,
        area1=area1,
        area2=area2,
        mask_iou=intersection / (area1 + area2 - intersection + eps),
        overlap1=intersection / (area1 + eps),
        overlap2=intersection / (area2 + eps),
    )


def fuse_into(target, source, box):
    """
    Writes the elementwise maximum of ``target`` and ``source`` into
    ``target``, restricted to ``box`` (inclusive).
    """
    x1, y1, x2, y2 = box
    region = target[y1:y2 + 1, x1:x2 + 1]
    np.maximum(region, source[y1:y2 + 1, x1:x2 + 1], out=region)
    return target


def resample_nearest(mask, width, height):
    """
    Resizes a binary mask with nearest-neighbour sampling (no smoothing).

    Parameters:
    - mask (numpy.ndarray): uint8 binary mask
    - width, height (int): Target size in pixels

    Returns:
    - numpy.ndarray: uint8 mask of shape (height, width)
    """
    return cv2.resize(
        np.ascontiguousarray(mask, dtype=np.uint8),
        (int(width), int(height)),
        interpolation=cv2.INTER_NEAREST,
    )


def rle_encoding(x):
    """
    Encodes a binary array into run-length encoding.

    Parameters:
    - x (numpy.ndarray): Binary array (1 - mask, 0 - background)

    Returns:
    - list: Run-length encoding list
    """
    dots = np.where(x.T.flatten() == 1)[0]
    run_lengths = []
    prev = -2
    for b in dots:
        if b > prev + 1:
            run_lengths.extend((int(b) + 1, 0))
        run_lengths[-1] += 1
        prev = b
    return run_lengths
