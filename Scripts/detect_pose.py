from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from pose_kit import SUPPORTED_BACKENDS, SUPPORTED_MODELS, DetectorOptions, PoseDetector, PoseResult, load_detector_options


def _iter_frames(args: argparse.Namespace) -> Iterable[Tuple[np.ndarray, Optional[float]]]:
    if args.image is not None:
        img = cv2.imread(args.image)
        if img is None:
            raise FileNotFoundError(f"Could not read image at path: {args.image}")
        yield img, None
        return

    if args.video is not None:
        cap = cv2.VideoCapture(args.video)
        if not cap.isOpened():
            raise FileNotFoundError(f"Could not open video: {args.video}")
    else:
        cam_index = 0 if args.webcam is None else int(args.webcam)
        cap = cv2.VideoCapture(cam_index)
        if not cap.isOpened():
            raise RuntimeError(f"Could not open webcam index: {cam_index}")

    frame_idx = 0
    processed = 0
    try:
        while True:
            ok, frame = cap.read()
            if not ok or frame is None:
                break
            frame_idx += 1
            if (frame_idx - 1) % int(args.every) != 0:
                continue
            yield frame, cap.get(cv2.CAP_PROP_POS_MSEC) / 1000.0
            processed += 1
            if args.max_frames is not None and processed >= int(args.max_frames):
                break
    finally:
        cap.release()


def _summary(result: PoseResult) -> str:
    if result.is_empty:
        return "no pose"
    vis = [kp.visibility for kp in result.keypoints if kp.visibility is not None]
    mean_vis = float(np.mean(vis)) if vis else float("nan")
    return f"{len(result.keypoints)} keypoints (3d={len(result.keypoints_3d)}), mean visibility {mean_vis:.3f}"


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Run single-person pose estimation on an image, video or webcam.")
    src = ap.add_mutually_exclusive_group()
    src.add_argument("--image", type=str, default=None)
    src.add_argument("--video", type=str, default=None)
    src.add_argument("--webcam", type=int, default=None)
    ap.add_argument("--config", type=str, default=None, help="JSON file with detector options")
    ap.add_argument("--model", choices=SUPPORTED_MODELS, default=None)
    ap.add_argument("--backend", choices=SUPPORTED_BACKENDS, default=None)
    ap.add_argument("--model-path", type=str, default=None, help="ONNX/TorchScript artifact for tensor models")
    ap.add_argument("--solution-path", type=str, default=None, help="MediaPipe .task bundle for BlazePose")
    ap.add_argument("--every", type=int, default=1, help="Process every Nth frame")
    ap.add_argument("--max-frames", type=int, default=None)
    ap.add_argument("--log-level", type=str, default="INFO")
    args = ap.parse_args()
    if args.image is None and args.video is None and args.webcam is None:
        ap.error("one of --image/--video/--webcam is required")
    if args.every < 1:
        ap.error("--every must be >= 1")
    return args


async def run(args: argparse.Namespace) -> None:
    options = load_detector_options(Path(args.config)) if args.config else DetectorOptions()
    detector = PoseDetector(options)
    await detector.initialize(
        model=args.model,
        backend=args.backend,
        model_path=args.model_path,
        solution_path=args.solution_path,
    )
    try:
        for idx, (frame, timestamp) in enumerate(_iter_frames(args)):
            result = await detector.detect(frame, timestamp)
            print(f"[{idx}] t={timestamp} {_summary(result)}")
    finally:
        await detector.close()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
