from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .postprocess import PoseConfig
from .types import Size


def _require_number(payload: Dict[str, Any], key: str) -> float:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _optional_int(payload: Dict[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _require_size(payload: Dict[str, Any], key: str) -> Size:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if not isinstance(value, list) or len(value) != 2:
        raise ValueError(f"{key} must be a [width, height] list")
    for v in value:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError(f"{key} entries must be numbers")
    return Size(float(value[0]), float(value[1]))


def pose_config_from_dict(payload: Dict[str, Any]) -> PoseConfig:
    allowed = {
        "confidence_threshold",
        "iou_threshold",
        "model_input_size",
        "target_frame_size",
        "max_detections",
        "decode_workers",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown pose config keys: {unknown}")

    kwargs: Dict[str, Any] = {"target_frame_size": _require_size(payload, "target_frame_size")}
    if "model_input_size" in payload:
        kwargs["model_input_size"] = _require_size(payload, "model_input_size")
    if "confidence_threshold" in payload:
        kwargs["confidence_threshold"] = _require_number(payload, "confidence_threshold")
    if "iou_threshold" in payload:
        kwargs["iou_threshold"] = _require_number(payload, "iou_threshold")
    kwargs["max_detections"] = _optional_int(payload, "max_detections")
    workers = _optional_int(payload, "decode_workers")
    if workers is not None:
        kwargs["decode_workers"] = workers

    return PoseConfig(**kwargs)


def load_pose_config(path: Union[str, Path]) -> PoseConfig:
    """
    Load a `PoseConfig` from JSON, e.g.

        {"target_frame_size": [1920, 1080], "confidence_threshold": 0.35}
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Pose config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid pose config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Pose config must be a JSON object")
    return pose_config_from_dict(payload)
