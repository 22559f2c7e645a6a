from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .decode import decode
from .errors import DegenerateSizeError
from .mapping import map_candidates
from .nms import select
from .types import Detection, Size

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoseConfig:
    """
    Configuration for pose post-processing. One immutable instance per camera/model pair.

    - target_frame_size: native camera buffer resolution (w, h), not the view size
    - model_input_size: pixel grid the network consumes
    """

    target_frame_size: Size
    confidence_threshold: float = 0.35
    iou_threshold: float = 0.5
    model_input_size: Size = field(default_factory=lambda: Size(640.0, 640.0))
    max_detections: Optional[int] = None
    decode_workers: int = 1

    def __post_init__(self) -> None:
        # Accept plain (w, h) tuples.
        object.__setattr__(self, "target_frame_size", Size.of(self.target_frame_size))
        object.__setattr__(self, "model_input_size", Size.of(self.model_input_size))

        if self.model_input_size.is_degenerate():
            raise DegenerateSizeError(f"model_input_size must be positive, got {self.model_input_size}")
        if self.target_frame_size.is_degenerate():
            raise DegenerateSizeError(f"target_frame_size must be positive, got {self.target_frame_size}")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be in [0, 1]")
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 (or None)")
        if self.decode_workers < 1:
            raise ValueError("decode_workers must be >= 1")


class PosePostprocessor:
    """
    Turns a raw `[1, 5 + 3K, A]` pose tensor into filtered, de-duplicated detections.

    decode -> confidence gate + greedy suppression -> coordinate mapping

    Stateless apart from the immutable config; safe to share between threads.
    """

    def __init__(self, cfg: PoseConfig):
        self.cfg = cfg

    def process(self, tensor, shape: Optional[Sequence[int]] = None) -> List[Detection]:
        """
        Args:
            tensor: network output as an ndarray, or a flat float buffer together with `shape`
            shape: `[1, C, A]`; required when `tensor` is flat

        Returns detections ordered by confidence, highest first. An empty list means
        nothing was detected.
        """

        cfg = self.cfg
        candidates = decode(tensor, shape, workers=cfg.decode_workers)
        keep = select(
            candidates,
            confidence_threshold=cfg.confidence_threshold,
            iou_threshold=cfg.iou_threshold,
            max_detections=cfg.max_detections,
        )
        detections = map_candidates(candidates, keep, cfg.model_input_size, cfg.target_frame_size)
        logger.debug("%d candidates -> %d detections", len(candidates), len(detections))
        return detections


def detect(tensor, shape: Optional[Sequence[int]], config: PoseConfig) -> List[Detection]:
    """
    One-shot form of `PosePostprocessor(config).process(tensor, shape)`.
    """

    return PosePostprocessor(config).process(tensor, shape)
