"""
Refinement module for the segrefine project.

This module turns the raw output of an instance-segmentation model into
final detections. The stages run strictly in order over one batch:

1. Threshold filter - per-class score thresholds
2. Box normalizer - clamp to the unpadded region, drop degenerate boxes
3. Redundancy reducer - pairwise box-IoU / mask-overlap merging
4. Merger - union boxes and fused masks of every merge group
5. Finalizer - map to source-image pixels, size floor, mask rasterization

Each stage takes the per-candidate statuses as a value and returns a new
list, so stages can be run and inspected one at a time.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple, Union

import numpy as np

from segrefine.data.models import DetectionBatch, DetectionStatus, RefinedDetection
from segrefine.utils.box_utils import (
    Box,
    box_iou,
    clamp_box,
    is_degenerate,
    map_box_to_original,
    union_box,
)
from segrefine.utils.config import RefinementSettings
from segrefine.utils.exceptions import UnknownClassError
from segrefine.utils.logger_utils import system_logger
from segrefine.utils.mask_utils import binarize, fuse_into, mask_overlap, resample_nearest
from segrefine.utils.merge_groups import MergeGroups

ClassNames = Union[Mapping[int, str], Sequence[str]]

ALIVE = DetectionStatus.ALIVE


@dataclass
class RefinementTrace:
    """Intermediate state of one refinement run, for inspection and tests."""

    detections: List[RefinedDetection]
    statuses: List[DetectionStatus]
    boxes: List[Box]
    groups: MergeGroups
    timings_ms: Dict[str, float] = field(default_factory=dict)


def _count_alive(statuses):
    return sum(1 for status in statuses if status is ALIVE)


# =============================================================================
# STAGE 1: THRESHOLD FILTER
# =============================================================================

def filter_by_threshold(batch: DetectionBatch, statuses, settings: RefinementSettings):
    """
    Marks candidates scoring below their class threshold.

    Parameters:
    - batch (DetectionBatch): Raw candidates
    - statuses (list): Current status per candidate
    - settings (RefinementSettings): Common threshold and per-class overrides

    Returns:
    - list: New statuses with ``BELOW_THRESHOLD`` for filtered candidates
    """
    result = list(statuses)
    for i, det in enumerate(batch.detections):
        if result[i] is not ALIVE:
            continue
        if not det.score >= settings.effective_threshold(det.class_id):
            result[i] = DetectionStatus.BELOW_THRESHOLD
    return result


# =============================================================================
# STAGE 2: BOX NORMALIZER
# =============================================================================

def normalize_boxes(batch: DetectionBatch, statuses) -> Tuple[List[Box], list]:
    """
    Clamps live boxes into the content region and drops degenerate ones.

    Returns:
    - tuple: (boxes, statuses) where boxes holds the clamped box for every
      candidate that was alive on entry and the raw box otherwise
    """
    result = list(statuses)
    boxes = []
    for i, det in enumerate(batch.detections):
        if result[i] is not ALIVE:
            boxes.append(det.box)
            continue
        box = clamp_box(det.box, batch.pad_x, batch.pad_y, batch.canvas_width, batch.canvas_height)
        if is_degenerate(box):
            result[i] = DetectionStatus.DEGENERATE
        boxes.append(box)
    return boxes, result


# =============================================================================
# STAGE 3: REDUNDANCY REDUCER
# =============================================================================

def should_merge(box1, box2, mask1, mask2, same_class, settings: RefinementSettings) -> bool:
    """
    Decides whether two live candidates describe the same object.

    A pair merges when both box IoU and mask IoU exceed their thresholds,
    or when the classes match and either mask is mostly covered by the
    other. Pairs whose boxes do not touch never merge.
    """
    iou = box_iou(box1, box2)
    if iou <= 0.0:
        return False

    overlap = mask_overlap(mask1, mask2, union_box((box1, box2)))
    if iou > settings.box_iou_threshold and overlap.mask_iou > settings.mask_iou_threshold:
        return True
    return same_class and max(overlap.overlap1, overlap.overlap2) > settings.overlap_threshold


def reduce_redundancy(batch: DetectionBatch, boxes, statuses, settings: RefinementSettings):
    """
    Pairwise redundancy reduction over live candidates.

    Pairs ``(i, j)`` with ``i < j`` are visited in increasing ``i`` then
    ``j`` order. On a merge the strictly higher score keeps the group
    (ties keep the lower index); the other candidate and its group are
    absorbed. Once ``i`` is absorbed its remaining comparisons are skipped.

    Returns:
    - tuple: (statuses, MergeGroups)
    """
    result = list(statuses)
    dets = batch.detections
    groups = MergeGroups(len(dets))
    compared = 0

    for i in range(len(dets)):
        if result[i] is not ALIVE:
            continue
        for j in range(i + 1, len(dets)):
            if result[j] is not ALIVE:
                continue
            compared += 1
            if not should_merge(
                boxes[i], boxes[j], dets[i].mask, dets[j].mask,
                dets[i].class_id == dets[j].class_id, settings,
            ):
                continue

            if dets[j].score > dets[i].score:
                groups.absorb(j, i)
                result[i] = DetectionStatus.MERGED
                break
            groups.absorb(i, j)
            result[j] = DetectionStatus.MERGED

    system_logger.debug(f"Redundancy reduction: {compared} pairs compared, {len(groups.groups())} merge groups")
    return result, groups


# =============================================================================
# STAGE 4: MERGER
# =============================================================================

def apply_merge_groups(batch: DetectionBatch, boxes, statuses, groups: MergeGroups):
    """
    Builds union boxes and fused masks for every merge group.

    Member masks are fused by elementwise maximum inside each member's own
    box only. Caller masks are not modified; a representative's mask is
    copied before fusing, in the widest dtype of the group.

    Returns:
    - tuple: (boxes, masks) indexed like the batch
    """
    merged_boxes = list(boxes)
    masks = [det.mask for det in batch.detections]

    for representative, members in groups.groups().items():
        if statuses[representative] is not ALIVE:
            continue
        merged_boxes[representative] = union_box(
            [boxes[representative]] + [boxes[m] for m in members]
        )
        # widest caller dtype of the group, never down-cast before binarizing
        dtype = np.result_type(*{batch.detections[i].mask.dtype for i in [representative] + members})
        fused = np.array(masks[representative], dtype=dtype, copy=True)
        for member in members:
            fuse_into(fused, batch.detections[member].mask, boxes[member])
        masks[representative] = fused

    return merged_boxes, masks


# =============================================================================
# STAGE 5: FINALIZER
# =============================================================================

def resolve_label(class_names: ClassNames, class_id: int) -> str:
    """
    Looks up the name of a class index.

    Raises:
    - UnknownClassError: If the index has no entry
    """
    try:
        if class_id < 0:
            raise KeyError(class_id)
        return class_names[class_id]
    except (KeyError, IndexError):
        raise UnknownClassError(
            f"No class name for class index {class_id}", stage="finalize",
            details={"known_classes": len(class_names)},
        ) from None


def finalize_detections(
    batch: DetectionBatch,
    boxes,
    masks,
    statuses,
    settings: RefinementSettings,
    class_names: ClassNames,
):
    """
    Maps surviving candidates to source-image space and rasterizes masks.

    Boxes whose mapped ``(width + 1) + (height + 1)`` is below
    ``settings.min_box_size``, or that collapse to zero width or height,
    are marked ``TOO_SMALL``. Each remaining mask is cropped to its model
    box, binarized, and resized nearest-neighbour to the mapped box size.

    Returns:
    - tuple: (list of RefinedDetection in candidate order, statuses)
    """
    result = list(statuses)
    refined = []

    for i, det in enumerate(batch.detections):
        if result[i] is not ALIVE:
            continue

        x1, y1, x2, y2 = boxes[i]
        ax1, ay1, ax2, ay2 = map_box_to_original(
            boxes[i], batch.pad_x, batch.pad_y,
            batch.canvas_width, batch.canvas_height,
            batch.original_width, batch.original_height,
        )
        width = ax2 - ax1
        height = ay2 - ay1
        if (width + 1) + (height + 1) < settings.min_box_size or width <= 0 or height <= 0:
            result[i] = DetectionStatus.TOO_SMALL
            continue

        label = resolve_label(class_names, det.class_id)
        crop = binarize(masks[i][y1:y2, x1:x2])
        refined.append(RefinedDetection(
            box=(ax1, ay1, ax2, ay2),
            mask=resample_nearest(crop, width, height),
            score=det.score,
            label=label,
        ))

    return refined, result


# =============================================================================
# PIPELINE
# =============================================================================

def trace_refinement(
    batch: DetectionBatch,
    class_names: ClassNames,
    settings: RefinementSettings = None,
) -> RefinementTrace:
    """
    Runs every refinement stage and keeps the intermediate state.

    Parameters:
    - batch (DetectionBatch): Raw candidates of one inference call
    - class_names (dict or list): Class index to name lookup
    - settings (RefinementSettings): Thresholds, defaults when omitted

    Returns:
    - RefinementTrace
    """
    settings = settings or RefinementSettings()
    timings = {}
    start_time = time.perf_counter()

    statuses = [ALIVE] * len(batch)

    stage_start = time.perf_counter()
    statuses = filter_by_threshold(batch, statuses, settings)
    timings["threshold"] = (time.perf_counter() - stage_start) * 1000
    system_logger.debug(f"Threshold filter: {len(batch)} -> {_count_alive(statuses)} candidates")

    stage_start = time.perf_counter()
    boxes, statuses = normalize_boxes(batch, statuses)
    timings["normalize"] = (time.perf_counter() - stage_start) * 1000
    system_logger.debug(f"Box normalizer: {_count_alive(statuses)} candidates with valid boxes")

    stage_start = time.perf_counter()
    statuses, groups = reduce_redundancy(batch, boxes, statuses, settings)
    timings["reduce"] = (time.perf_counter() - stage_start) * 1000
    system_logger.debug(f"Redundancy reducer: {_count_alive(statuses)} candidates remain")

    stage_start = time.perf_counter()
    boxes, masks = apply_merge_groups(batch, boxes, statuses, groups)
    timings["merge"] = (time.perf_counter() - stage_start) * 1000

    stage_start = time.perf_counter()
    detections, statuses = finalize_detections(batch, boxes, masks, statuses, settings, class_names)
    timings["finalize"] = (time.perf_counter() - stage_start) * 1000

    total_ms = (time.perf_counter() - start_time) * 1000
    system_logger.info(f"Refinement: {len(batch)} -> {len(detections)} detections in {total_ms:.1f} ms")

    return RefinementTrace(
        detections=detections,
        statuses=statuses,
        boxes=boxes,
        groups=groups,
        timings_ms=timings,
    )


def refine_detections(
    batch: DetectionBatch,
    class_names: ClassNames,
    settings: RefinementSettings = None,
) -> List[RefinedDetection]:
    """Runs the refinement pipeline and returns the final detections."""
    return trace_refinement(batch, class_names, settings).detections
