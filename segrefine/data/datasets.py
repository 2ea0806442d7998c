"""
Input/output helpers for the segrefine project.

This module handles:
- Reading the line-delimited class-name table
- Loading raw inference output saved as ``.npz`` into a DetectionBatch
- Converting refined detections into JSON-ready records (RLE masks)
"""

import json
import zipfile
import zlib
from pathlib import Path
from typing import Dict, List

import numpy as np

from segrefine.data.models import DetectionBatch, RefinedDetection
from segrefine.utils.exceptions import BatchValidationError, ConfigurationError
from segrefine.utils.logger_utils import system_logger
from segrefine.utils.mask_utils import rle_encoding


def read_class_names(path) -> Dict[int, str]:
    """
    Reads a class-name table, one name per line.

    Line ``k`` (0-based) names class ``k``. Every line counts, so blank
    lines keep the indices of the lines after them.

    Parameters:
    - path (str or Path): Path to the class file

    Returns:
    - dict: Class index to name

    Raises:
    - ConfigurationError: If the file is not UTF-8 text
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            classes = {i: line.rstrip("\r\n") for i, line in enumerate(f)}
    except UnicodeDecodeError as e:
        raise ConfigurationError(
            "Class file is not valid UTF-8 text", stage="classes", details={"path": str(path), "error": str(e)}
        ) from e
    system_logger.debug(f"Loaded {len(classes)} class names from {path}")
    return classes


def load_raw_batch(
    path,
    pad_x: int,
    pad_y: int,
    original_width: int,
    original_height: int,
    canvas_size: int = None,
) -> DetectionBatch:
    """
    Loads raw inference output from an ``.npz`` archive.

    The archive holds ``labels`` (n,) and ``masks`` (n, H, W) plus either
    ``boxes`` (n, 4) with ``scores`` (n,), or ``dets`` (n, 5) where the
    last column is the score. A leading batch axis of size 1 is dropped.

    Returns:
    - DetectionBatch

    Raises:
    - BatchValidationError: If the archive is unreadable, or arrays are
      missing or misaligned
    """
    path = Path(path)
    try:
        data = np.load(path, allow_pickle=False)
        if not hasattr(data, "files"):
            raise ValueError("file holds a single array, not an .npz archive")
        with data:
            arrays = {key: data[key] for key in data.files}
    except FileNotFoundError:
        raise
    except (OSError, ValueError, zipfile.BadZipFile, zlib.error) as e:
        raise BatchValidationError(
            "Could not read inference archive", stage="input", details={"path": str(path), "error": str(e)}
        ) from e

    def squeeze(array, ndim):
        if array.ndim == ndim + 1 and array.shape[0] == 1:
            return array[0]
        return array

    if "dets" in arrays:
        dets = squeeze(arrays["dets"], 2)
        if dets.ndim != 2 or dets.shape[1] != 5:
            raise BatchValidationError(
                "'dets' must have shape (n, 5)", stage="input", details={"path": str(path), "shape": dets.shape}
            )
        boxes, scores = dets[:, :4], dets[:, 4]
    elif "boxes" in arrays and "scores" in arrays:
        boxes = squeeze(arrays["boxes"], 2)
        scores = squeeze(arrays["scores"], 1)
    else:
        raise BatchValidationError(
            "Archive needs 'dets' or 'boxes' and 'scores'", stage="input",
            details={"path": str(path), "keys": sorted(arrays)},
        )

    missing = [key for key in ("labels", "masks") if key not in arrays]
    if missing:
        raise BatchValidationError(
            "Archive is missing arrays", stage="input", details={"path": str(path), "missing": missing}
        )

    labels = squeeze(arrays["labels"], 1)
    masks = squeeze(arrays["masks"], 3)
    system_logger.info(f"Loaded {len(labels)} raw candidates from {path}")

    return DetectionBatch.from_arrays(
        boxes, scores, labels, masks,
        pad_x=pad_x, pad_y=pad_y,
        original_width=original_width, original_height=original_height,
        canvas_size=canvas_size,
    )


def detections_to_records(detections: List[RefinedDetection]) -> List[dict]:
    """
    Converts refined detections into JSON-serializable dictionaries.

    Masks are stored as run-length encoding together with their shape.
    """
    records = []
    for det in detections:
        records.append({
            "box": [int(v) for v in det.box],
            "score": float(det.score),
            "label": det.label,
            "mask_shape": [int(v) for v in det.mask.shape],
            "mask_rle": rle_encoding(det.mask),
        })
    return records


def write_records(records: List[dict], output_path) -> Path:
    """Writes detection records as JSON, creating parent directories."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(records, f, indent=2)
    system_logger.info(f"Wrote {len(records)} detections to {output_path}")
    return output_path
