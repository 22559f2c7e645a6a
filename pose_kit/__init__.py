"""
Post-processing for single-frame pose detection networks.

Takes the raw `[1, 5 + 3K, A]` output tensor of a pose model (box, confidence and K
keypoint triplets per anchor) and returns de-duplicated detections in normalized and
frame-pixel coordinates. Pure NumPy; OpenCV is only needed for `draw_detections`.
"""

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
from .errors import DegenerateSizeError, PostprocessError, ShapeError
from .decode import decode, validate_shape
from .nms import SuppressionConfig, intersection_area, select, suppress
from .mapping import map_candidate, map_candidates, to_frame_px, to_model_norm
from .postprocess import PoseConfig, PosePostprocessor, detect
from .config import load_pose_config, pose_config_from_dict
from .runtime import PosePipeline
from .visualize import draw_detections

__all__ = [
    "BoxResult",
    "Candidate",
    "CandidateSet",
    "CoordSpace",
    "Detection",
    "Keypoint",
    "Point",
    "Rect",
    "Size",
    "DegenerateSizeError",
    "PostprocessError",
    "ShapeError",
    "decode",
    "validate_shape",
    "SuppressionConfig",
    "intersection_area",
    "select",
    "suppress",
    "map_candidate",
    "map_candidates",
    "to_frame_px",
    "to_model_norm",
    "PoseConfig",
    "PosePostprocessor",
    "detect",
    "load_pose_config",
    "pose_config_from_dict",
    "PosePipeline",
    "draw_detections",
]
