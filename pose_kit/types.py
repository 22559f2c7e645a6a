from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Sequence, Tuple, Union, overload

import numpy as np


class CoordSpace(str, Enum):
    """
    Coordinate space a piece of geometry lives in.
    """

    MODEL_PIXEL = "model_pixel"
    MODEL_NORM = "model_norm"
    FRAME_PIXEL = "frame_pixel"


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    @classmethod
    def of(cls, value: Union["Size", Sequence[float]]) -> "Size":
        if isinstance(value, Size):
            return value
        w, h = value
        return cls(float(w), float(h))

    def is_degenerate(self) -> bool:
        return not (self.width > 0 and self.height > 0)


def _require_same_space(a: CoordSpace, b: CoordSpace) -> None:
    if a != b:
        raise ValueError(f"Cannot combine geometry in {a.value} with geometry in {b.value}")


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned box as top-left corner plus size.
    """

    x: float
    y: float
    w: float
    h: float
    space: CoordSpace

    @property
    def area(self) -> float:
        return abs(self.w) * abs(self.h)

    def standardized(self) -> "Rect":
        """
        Same box with non-negative width and height.
        """

        return Rect(self.x + min(self.w, 0.0), self.y + min(self.h, 0.0), abs(self.w), abs(self.h), self.space)

    def intersection_area(self, other: "Rect") -> float:
        _require_same_space(self.space, other.space)
        a, b = self.standardized(), other.standardized()
        iw = min(a.x + a.w, b.x + b.w) - max(a.x, b.x)
        ih = min(a.y + a.h, b.y + b.h) - max(a.y, b.y)
        return max(0.0, iw) * max(0.0, ih)

    def as_xywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.w, self.h

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        r = self.standardized()
        return r.x, r.y, r.x + r.w, r.y + r.h


@dataclass(frozen=True)
class Point:
    x: float
    y: float
    space: CoordSpace

    def as_xy(self) -> Tuple[float, float]:
        return self.x, self.y


@dataclass(frozen=True)
class Candidate:
    """
    One decoded anchor: box in model pixels, confidence and the raw keypoint payload.
    """

    index: int
    box: Rect
    confidence: float
    features: Tuple[float, ...]

    @property
    def num_keypoints(self) -> int:
        return len(self.features) // 3


@dataclass(frozen=True)
class CandidateSet:
    """
    Columnar result of one decode call.

    - boxes: (A, 4) as x, y, w, h (top-left) in model pixels
    - scores: (A,)
    - features: (A, C - 5), K keypoint triplets (x, y, conf)

    Row `i` of every array belongs to the same anchor. Arrays keep the tensor's float
    precision (float32 at minimum).
    """

    boxes: np.ndarray
    scores: np.ndarray
    features: np.ndarray

    def __post_init__(self) -> None:
        n = self.scores.shape[0]
        if self.boxes.shape != (n, 4):
            raise ValueError(f"boxes must be shaped ({n}, 4), got {self.boxes.shape}")
        if self.features.ndim != 2 or self.features.shape[0] != n:
            raise ValueError(f"features must be shaped ({n}, F), got {self.features.shape}")

    @classmethod
    def empty(cls, num_keypoints: int = 0) -> "CandidateSet":
        return cls(
            boxes=np.empty((0, 4), dtype=np.float32),
            scores=np.empty((0,), dtype=np.float32),
            features=np.empty((0, 3 * num_keypoints), dtype=np.float32),
        )

    @property
    def num_keypoints(self) -> int:
        return self.features.shape[1] // 3

    def __len__(self) -> int:
        return int(self.scores.shape[0])

    @overload
    def __getitem__(self, i: int) -> Candidate: ...

    @overload
    def __getitem__(self, i: slice) -> "CandidateSet": ...

    def __getitem__(self, i):
        if isinstance(i, slice):
            return CandidateSet(self.boxes[i], self.scores[i], self.features[i])
        n = len(self)
        if i < 0:
            i += n
        if not 0 <= i < n:
            raise IndexError(f"candidate index {i} out of range for {n} candidates")
        x, y, w, h = (float(v) for v in self.boxes[i])
        return Candidate(
            index=i,
            box=Rect(x, y, w, h, CoordSpace.MODEL_PIXEL),
            confidence=float(self.scores[i]),
            features=tuple(float(v) for v in self.features[i]),
        )

    def __iter__(self) -> Iterator[Candidate]:
        for i in range(len(self)):
            yield self[i]


@dataclass(frozen=True)
class BoxResult:
    model_norm: Rect
    frame_px: Rect


@dataclass(frozen=True)
class Keypoint:
    model_norm: Point
    frame_px: Point
    confidence: float


@dataclass(frozen=True)
class Detection:
    """
    Final pose detection carrying both normalized and frame-pixel geometry.
    """

    box: BoxResult
    confidence: float
    keypoints: Tuple[Keypoint, ...] = ()

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.box.frame_px.as_xyxy()
