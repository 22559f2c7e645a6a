from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence

import numpy as np

from .postprocess import PoseConfig, PosePostprocessor
from .types import Detection


class PosePipeline:
    """
    Glue between an inference collaborator and the post-processor.

    `infer_fn` takes whatever the capture side produces (a frame, a pixel buffer) and
    returns the raw pose tensor. Model loading and frame scheduling stay with the caller;
    only one call should be in flight per tensor buffer.
    """

    def __init__(
        self,
        infer_fn: Callable[[Any], np.ndarray],
        cfg: PoseConfig,
        *,
        output_shape: Optional[Sequence[int]] = None,
    ):
        self._infer_fn = infer_fn
        self.output_shape = tuple(output_shape) if output_shape is not None else None
        self.post = PosePostprocessor(cfg)

    @property
    def cfg(self) -> PoseConfig:
        return self.post.cfg

    def __call__(self, frame: Any) -> List[Detection]:
        preds = self._infer_fn(frame)
        return self.post.process(preds, self.output_shape)
