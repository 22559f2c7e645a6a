"""
Coordinate mapping from model-input pixels to normalized and frame-pixel space.

Two chained scalings, applied to boxes and keypoints alike:

    model pixel  --(/ model_input_size)-->  model normalized  --(* target_frame_size)-->  frame pixel

Values are never clamped; out-of-range network outputs pass straight through.
The frame size is the camera buffer resolution, not the on-screen view.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple, TypeVar, Union

import numpy as np

from .errors import DegenerateSizeError
from .types import (
    BoxResult,
    Candidate,
    CandidateSet,
    CoordSpace,
    Detection,
    Keypoint,
    Point,
    Rect,
    Size,
)

SizeLike = Union[Size, Sequence[float]]
Geometry = TypeVar("Geometry", Rect, Point)


def require_size(size: SizeLike, what: str) -> Size:
    s = Size.of(size)
    if s.is_degenerate():
        raise DegenerateSizeError(f"{what} must have positive width and height, got {s.width}x{s.height}.")
    return s


def _scale(geom: Geometry, sx: float, sy: float, expect: CoordSpace, to: CoordSpace, divide: bool = False) -> Geometry:
    if geom.space != expect:
        raise ValueError(f"Expected geometry in {expect.value}, got {geom.space.value}")
    fx = (lambda v: v / sx) if divide else (lambda v: v * sx)
    fy = (lambda v: v / sy) if divide else (lambda v: v * sy)
    if isinstance(geom, Rect):
        return Rect(fx(geom.x), fy(geom.y), fx(geom.w), fy(geom.h), to)
    return Point(fx(geom.x), fy(geom.y), to)


def to_model_norm(geom: Geometry, model_input_size: SizeLike) -> Geometry:
    size = require_size(model_input_size, "model_input_size")
    return _scale(geom, size.width, size.height, CoordSpace.MODEL_PIXEL, CoordSpace.MODEL_NORM, divide=True)


def to_frame_px(geom: Geometry, target_frame_size: SizeLike) -> Geometry:
    size = require_size(target_frame_size, "target_frame_size")
    return _scale(geom, size.width, size.height, CoordSpace.MODEL_NORM, CoordSpace.FRAME_PIXEL)


def map_candidate(candidate: Candidate, model_input_size: SizeLike, target_frame_size: SizeLike) -> Detection:
    model = require_size(model_input_size, "model_input_size")
    frame = require_size(target_frame_size, "target_frame_size")

    box_norm = to_model_norm(candidate.box, model)
    keypoints = []
    f = candidate.features
    for k in range(candidate.num_keypoints):
        kx, ky, kc = f[3 * k], f[3 * k + 1], f[3 * k + 2]
        pt_norm = to_model_norm(Point(kx, ky, CoordSpace.MODEL_PIXEL), model)
        keypoints.append(Keypoint(model_norm=pt_norm, frame_px=to_frame_px(pt_norm, frame), confidence=kc))

    return Detection(
        box=BoxResult(model_norm=box_norm, frame_px=to_frame_px(box_norm, frame)),
        confidence=candidate.confidence,
        keypoints=tuple(keypoints),
    )


def _scale_arrays(
    boxes: np.ndarray, kpts: np.ndarray, sx: float, sy: float, divide: bool = False
) -> Tuple[np.ndarray, np.ndarray]:
    box_scale = np.array([sx, sy, sx, sy], dtype=np.float64)
    kpt_scale = np.array([sx, sy], dtype=np.float64)
    if divide:
        return boxes / box_scale, kpts / kpt_scale
    return boxes * box_scale, kpts * kpt_scale


def map_candidates(
    candidates: CandidateSet,
    indices: Sequence[int],
    model_input_size: SizeLike,
    target_frame_size: SizeLike,
) -> List[Detection]:
    """
    Vectorized `map_candidate` over `indices`, preserving their order.
    """

    model = require_size(model_input_size, "model_input_size")
    frame = require_size(target_frame_size, "target_frame_size")

    idx = np.asarray(indices, dtype=np.int64)
    if idx.size == 0:
        return []

    k = candidates.num_keypoints
    boxes = candidates.boxes[idx].astype(np.float64)
    scores = candidates.scores[idx]
    triplets = candidates.features[idx, : 3 * k].astype(np.float64).reshape(idx.size, k, 3)
    kpt_xy = triplets[:, :, 0:2]
    kpt_conf = triplets[:, :, 2]

    norm_boxes, norm_kpts = _scale_arrays(boxes, kpt_xy, model.width, model.height, divide=True)
    px_boxes, px_kpts = _scale_arrays(norm_boxes, norm_kpts, frame.width, frame.height)

    out: List[Detection] = []
    for n in range(idx.size):
        keypoints = tuple(
            Keypoint(
                model_norm=Point(float(norm_kpts[n, j, 0]), float(norm_kpts[n, j, 1]), CoordSpace.MODEL_NORM),
                frame_px=Point(float(px_kpts[n, j, 0]), float(px_kpts[n, j, 1]), CoordSpace.FRAME_PIXEL),
                confidence=float(kpt_conf[n, j]),
            )
            for j in range(k)
        )
        out.append(
            Detection(
                box=BoxResult(
                    model_norm=Rect(*(float(v) for v in norm_boxes[n]), CoordSpace.MODEL_NORM),
                    frame_px=Rect(*(float(v) for v in px_boxes[n]), CoordSpace.FRAME_PIXEL),
                ),
                confidence=float(scores[n]),
                keypoints=keypoints,
            )
        )
    return out
