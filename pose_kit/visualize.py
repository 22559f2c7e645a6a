from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .types import Detection

BOX_COLOR: Tuple[int, int, int] = (31, 112, 255)
KEYPOINT_COLOR: Tuple[int, int, int] = (10, 249, 72)
TEXT_COLOR: Tuple[int, int, int] = (255, 255, 255)

Pixel = Tuple[int, int]


def score_tag_layout(
    corner: Pixel, text_size: Pixel, baseline: int, frame: Pixel
) -> Tuple[Pixel, Pixel, Pixel]:
    """
    Place a score tag on the top edge of a box.

    The tag sits on the box's upper edge and drops inside the box when there is
    no room above it. It is shifted left to stay within the frame.

    Returns (tag top-left, tag bottom-right, text origin).
    """

    (cx, cy), (tw, th), (fw, fh) = corner, text_size, frame
    tag_h = th + baseline
    top = cy - tag_h if cy >= tag_h else cy
    left = max(0, min(cx, fw - 1 - tw))
    bottom = min(top + tag_h, fh - 1)
    return (left, top), (min(left + tw, fw - 1), bottom), (left, min(top + th, fh - 1))


def draw_detections(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    show_score: bool = True,
    keypoint_threshold: float = 0.5,
    keypoint_radius: int = 3,
    box_thickness: int = 1,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw boxes, scores and keypoints on an OpenCV BGR image and return a copy.

    Args:
        image_bgr: input image in BGR (H, W, 3), sized like the target frame.
        detections: iterable of Detection; frame-pixel geometry is used.
        keypoint_threshold: keypoints at or below this confidence are skipped.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_detections(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        x1, y1, x2, y2 = det.as_xyxy()
        corner = (int(np.clip(round(x1), 0, w - 1)), int(np.clip(round(y1), 0, h - 1)))
        far = (int(np.clip(round(x2), 0, w - 1)), int(np.clip(round(y2), 0, h - 1)))
        cv2.rectangle(out, corner, far, BOX_COLOR, thickness=box_thickness)

        if show_score:
            text = f"{det.confidence:.2f}"
            size, baseline = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
            tl, br, origin = score_tag_layout(corner, size, baseline, (w, h))
            cv2.rectangle(out, tl, br, BOX_COLOR, thickness=-1)
            cv2.putText(out, text, origin, cv2.FONT_HERSHEY_SIMPLEX, font_scale, TEXT_COLOR, font_thickness, cv2.LINE_AA)

        # Keypoints go last so the score tag never hides them.
        for kp in det.keypoints:
            if kp.confidence <= keypoint_threshold:
                continue
            kx, ky = kp.frame_px.as_xy()
            # Off-frame keypoints are dropped rather than clipped to the border.
            if not (0 <= kx < w and 0 <= ky < h):
                continue
            cv2.circle(out, (int(kx), int(ky)), keypoint_radius, KEYPOINT_COLOR, thickness=-1)

    return out
