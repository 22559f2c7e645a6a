from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import ShapeError
from .types import CandidateSet

logger = logging.getLogger(__name__)

# cx, cy, w, h, confidence
BOX_CHANNELS = 4
BASE_CHANNELS = 5


def validate_shape(shape: Sequence[int]) -> Tuple[int, int]:
    """
    Check a pose tensor shape `[1, C, A]` and return `(C, A)`.

    `C` must be `5 + 3K` for some K >= 0.
    """

    dims = tuple(int(d) for d in shape)
    if len(dims) != 3:
        raise ShapeError(f"Expected a rank-3 tensor shaped [1, C, A], got shape {dims}.")
    batch, channels, anchors = dims
    if batch != 1:
        raise ShapeError(f"Batch > 1 is not supported (got shape {dims}). Pass one frame at a time.")
    if channels < BASE_CHANNELS:
        raise ShapeError(f"Expected at least {BASE_CHANNELS} channels, got {channels}.")
    if (channels - BASE_CHANNELS) % 3 != 0:
        raise ShapeError(
            f"Channel count {channels} does not hold whole keypoint triplets: ({channels} - 5) % 3 != 0."
        )
    if anchors < 0:
        raise ShapeError(f"Anchor count must be >= 0, got {anchors}.")
    return channels, anchors


def _as_channel_matrix(tensor, shape: Optional[Sequence[int]]) -> np.ndarray:
    arr = np.asarray(tensor)
    if shape is None:
        shape = arr.shape
    channels, anchors = validate_shape(shape)
    if arr.size != channels * anchors:
        raise ShapeError(
            f"Tensor holds {arr.size} values but shape {tuple(shape)} needs {channels * anchors}."
        )
    # Integer and half-precision inputs are widened; float32/float64 are kept as-is
    # so the confidence gate sees the values the network produced.
    dtype = np.result_type(arr.dtype, np.float32)
    # (C, A), row c holds channel c for every anchor
    return arr.reshape(channels, anchors).astype(dtype, copy=False)


def _decode_slice(p: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    cx, cy, w, h = p[0:BOX_CHANNELS, :]
    boxes = np.stack([cx - w / 2, cy - h / 2, w, h], axis=1)
    scores = p[BOX_CHANNELS, :].copy()
    features = np.ascontiguousarray(p[BASE_CHANNELS:, :].T)
    return boxes, scores, features


def decode(tensor, shape: Optional[Sequence[int]] = None, workers: int = 1) -> CandidateSet:
    """
    Decode a raw pose tensor into one candidate per anchor.

    Layout is anchor-minor: channel `c` of anchor `j` sits at flat offset `c * A + j`.
    Channels 0..3 are center-x, center-y, width, height in model-input pixels, channel 4
    is confidence and the remaining channels are K (x, y, conf) keypoint triplets.

    Args:
        tensor: NumPy array or flat float buffer
        shape: `[1, C, A]`; defaults to the array's own shape
        workers: number of contiguous anchor slices decoded concurrently

    No confidence filtering happens here.
    """

    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")

    p = _as_channel_matrix(tensor, shape)
    channels, anchors = p.shape
    if anchors == 0:
        return CandidateSet.empty((channels - BASE_CHANNELS) // 3)

    if workers == 1 or anchors < workers:
        boxes, scores, features = _decode_slice(p)
    else:
        # Each worker owns one contiguous slice; results are joined once, in slice order.
        bounds = np.linspace(0, anchors, workers + 1, dtype=np.int64)
        slices = [p[:, lo:hi] for lo, hi in zip(bounds[:-1], bounds[1:]) if hi > lo]
        with ThreadPoolExecutor(max_workers=len(slices)) as pool:
            parts = list(pool.map(_decode_slice, slices))
        boxes = np.concatenate([b for b, _, _ in parts], axis=0)
        scores = np.concatenate([s for _, s, _ in parts], axis=0)
        features = np.concatenate([f for _, _, f in parts], axis=0)

    logger.debug("decoded %d anchors with %d keypoints each", anchors, features.shape[1] // 3)
    return CandidateSet(boxes=boxes, scores=scores, features=features)
