from __future__ import annotations

import argparse
import logging
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from pose_kit import PoseConfig, Size, decode, map_candidates, select
from pose_kit.logs import setup_logging

logger = logging.getLogger("benchmark_postprocess")


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p90_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if q < 0.0 or q > 100.0:
        raise ValueError("q must be in [0, 100].")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    if lo == hi:
        return float(sorted_values[lo])
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms_sorted = sorted(v * 1000.0 for v in values_s)
    return TimingSummary(
        n=len(ms_sorted),
        mean_ms=float(statistics.fmean(ms_sorted)) if ms_sorted else 0.0,
        p50_ms=_percentile(ms_sorted, 50.0) if ms_sorted else 0.0,
        p90_ms=_percentile(ms_sorted, 90.0) if ms_sorted else 0.0,
        p95_ms=_percentile(ms_sorted, 95.0) if ms_sorted else 0.0,
    )


def _format_summary(label: str, s: TimingSummary) -> str:
    return (
        f"{label}: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms "
        f"p90={s.p90_ms:.3f}ms p95={s.p95_ms:.3f}ms"
    )


def synthetic_tensor(anchors: int, keypoints: int, imgsz: int, seed: int = 0) -> np.ndarray:
    """
    Random `[1, 5 + 3K, A]` pose tensor with boxes and keypoints inside an `imgsz` grid.
    """

    rng = np.random.default_rng(seed)
    channels = 5 + 3 * keypoints
    p = np.empty((channels, anchors), dtype=np.float32)
    p[0:2] = rng.uniform(0, imgsz, size=(2, anchors))
    p[2:4] = rng.uniform(5, imgsz / 4, size=(2, anchors))
    p[4] = rng.uniform(0.0, 1.0, size=anchors)
    for k in range(keypoints):
        base = 5 + 3 * k
        p[base : base + 2] = rng.uniform(0, imgsz, size=(2, anchors))
        p[base + 2] = rng.uniform(0.0, 1.0, size=anchors)
    return p[None, ...]


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Benchmark pose post-processing stages (decode / select / map) on synthetic tensors."
    )
    parser.add_argument("--anchors", type=int, default=8400, help="Anchor count A.")
    parser.add_argument("--keypoints", type=int, default=17, help="Keypoints per anchor K.")
    parser.add_argument("--imgsz", type=int, default=640, help="Square model input size.")
    parser.add_argument("--frame", default="1920x1080", help="Target frame size as WxH.")
    parser.add_argument("--conf", type=float, default=0.35, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=0.5, help="Area-ratio overlap threshold.")
    parser.add_argument("--workers", type=int, default=1, help="Decode worker slices.")
    parser.add_argument("--warmup", type=int, default=10, help="Iterations to run but not record.")
    parser.add_argument("--iters", type=int, default=200, help="Recorded iterations.")
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    args = parser.parse_args()

    if args.anchors < 1:
        raise ValueError("--anchors must be >= 1")
    if args.keypoints < 0:
        raise ValueError("--keypoints must be >= 0")
    if args.workers < 1:
        raise ValueError("--workers must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")
    if args.iters < 1:
        raise ValueError("--iters must be >= 1")

    setup_logging(args.log_level)

    try:
        fw, fh = (float(v) for v in str(args.frame).lower().split("x"))
    except ValueError as exc:
        raise ValueError(f"--frame must look like 1920x1080, got {args.frame!r}") from exc

    cfg = PoseConfig(
        target_frame_size=Size(fw, fh),
        confidence_threshold=float(args.conf),
        iou_threshold=float(args.iou),
        model_input_size=Size(float(args.imgsz), float(args.imgsz)),
        decode_workers=int(args.workers),
    )
    tensor = synthetic_tensor(int(args.anchors), int(args.keypoints), int(args.imgsz))
    logger.info("tensor shape=%s workers=%d", tensor.shape, cfg.decode_workers)

    t_decode: List[float] = []
    t_select: List[float] = []
    t_map: List[float] = []
    kept = 0

    for it in range(int(args.warmup) + int(args.iters)):
        t0 = time.perf_counter()
        candidates = decode(tensor, workers=cfg.decode_workers)
        t1 = time.perf_counter()
        keep = select(candidates, cfg.confidence_threshold, cfg.iou_threshold, cfg.max_detections)
        t2 = time.perf_counter()
        detections = map_candidates(candidates, keep, cfg.model_input_size, cfg.target_frame_size)
        t3 = time.perf_counter()

        if it < int(args.warmup):
            continue
        t_decode.append(t1 - t0)
        t_select.append(t2 - t1)
        t_map.append(t3 - t2)
        kept = len(detections)

    print(_format_summary("decode", _summarize_ms(t_decode)))
    print(_format_summary("select", _summarize_ms(t_select)))
    print(_format_summary("map", _summarize_ms(t_map)))
    print(f"anchors={args.anchors} keypoints={args.keypoints} detections_last={kept}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
