from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .types import CandidateSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SuppressionConfig:
    """
    Greedy suppression settings.

    A lower-ranked box is dropped when its intersection with a kept box exceeds
    `overlap_threshold * min(area_kept, area_other)`. This is an area-ratio rule,
    not IoU, so a small box swallowed by a large one is always removed.
    """

    overlap_threshold: float = 0.5
    # None keeps every surviving box.
    max_detections: Optional[int] = None


def standardize(boxes: np.ndarray) -> np.ndarray:
    """
    Flip negative widths/heights so every xywh box has x, y at its minimum corner.
    """

    boxes = np.asarray(boxes)
    wh = boxes[..., 2:4]
    xy = boxes[..., 0:2] + np.minimum(wh, 0.0)
    return np.concatenate([xy, np.abs(wh)], axis=-1)


def box_areas(boxes: np.ndarray) -> np.ndarray:
    return np.abs(boxes[:, 2]) * np.abs(boxes[:, 3])


def intersection_area(box: np.ndarray, others: np.ndarray) -> np.ndarray:
    """
    Intersection area between one xywh box (4,) and many xywh boxes (N, 4).
    """

    box = standardize(box)
    others = standardize(others)
    xx1 = np.maximum(box[0], others[:, 0])
    yy1 = np.maximum(box[1], others[:, 1])
    xx2 = np.minimum(box[0] + box[2], others[:, 0] + others[:, 2])
    yy2 = np.minimum(box[1] + box[3], others[:, 1] + others[:, 3])
    w = np.maximum(0.0, xx2 - xx1)
    h = np.maximum(0.0, yy2 - yy1)
    return w * h


def rank_by_score(scores: np.ndarray, indices: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Order `indices` (default: all) by score descending, ties by index ascending.
    """

    if indices is None:
        indices = np.arange(scores.shape[0])
    # lexsort sorts by the last key first
    return indices[np.lexsort((indices, -scores[indices]))]


def suppress(
    boxes: np.ndarray,
    scores: np.ndarray,
    cfg: SuppressionConfig,
    order: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Greedy NumPy suppression. Expects boxes shape (N, 4) in xywh and scores shape (N,).
    Returns indices of boxes to keep, highest score first.

    `order` restricts the walk to a pre-ranked subset of indices.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    areas = box_areas(boxes)
    if order is None:
        order = rank_by_score(scores)
    keep = []

    while order.size > 0:
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        i = order[0]
        keep.append(i)

        rest = order[1:]
        inter = intersection_area(boxes[i], boxes[rest])
        min_area = np.minimum(areas[i], areas[rest])
        # Comparisons with NaN are False: NaN geometry neither suppresses nor is suppressed.
        order = rest[~(inter > cfg.overlap_threshold * min_area)]

    return np.array(keep, dtype=np.int64)


def select(
    candidates: CandidateSet,
    confidence_threshold: float,
    iou_threshold: float,
    max_detections: Optional[int] = None,
) -> np.ndarray:
    """
    Gate candidates on `confidence > confidence_threshold`, then run greedy suppression.

    Returns indices into `candidates`, ordered by confidence descending (ties by index).
    """

    if len(candidates) == 0:
        return np.empty((0,), dtype=np.int64)

    admitted = np.flatnonzero(candidates.scores > confidence_threshold)
    if admitted.size == 0:
        logger.debug("no candidates above confidence %.3f", confidence_threshold)
        return np.empty((0,), dtype=np.int64)

    cfg = SuppressionConfig(overlap_threshold=iou_threshold, max_detections=max_detections)
    keep = suppress(
        candidates.boxes,
        candidates.scores,
        cfg,
        order=rank_by_score(candidates.scores, admitted),
    )
    logger.debug("kept %d of %d admitted candidates", keep.size, admitted.size)
    return keep
