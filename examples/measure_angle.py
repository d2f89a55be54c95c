"""Measure the thumb/index-finger angle on one still image.

Example:
    uv run --with mediapipe python examples/measure_angle.py --image hand.jpg
"""

from __future__ import annotations

import argparse
import asyncio

import cv2

from handpose_overlay import (
    ComputeBackend,
    MediaPipeEstimatorConfig,
    MediaPipeHandEstimator,
    NotComputableError,
    OpenCVDisplaySurface,
    OverlayReadout,
    draw_skeleton,
    format_angle,
    landmark_angle_degrees,
    project_skeleton,
)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Measure the hand angle on a still image.")
    parser.add_argument("--image", required=True, help="Path to a BGR-readable image.")
    parser.add_argument("--model-path", default=None, help="Local hand_landmarker.task file.")
    parser.add_argument(
        "--show",
        action="store_true",
        help="Show the mirrored overlay until a key is pressed.",
    )
    return parser.parse_args()


async def _measure(args: argparse.Namespace) -> int:
    frame = cv2.imread(args.image)
    if frame is None:
        print(f"could not read {args.image}")
        return 1

    estimator = MediaPipeHandEstimator(MediaPipeEstimatorConfig(model_path=args.model_path))
    await estimator.activate(ComputeBackend.CPU)
    try:
        predictions = await estimator.estimate_hands(frame)
    finally:
        estimator.close()

    if not predictions:
        print("no hand detected")
        return 1

    landmarks = predictions[0].landmarks
    try:
        text = format_angle(landmark_angle_degrees(landmarks))
    except NotComputableError as exc:
        text = f"angle not computable: {exc}"
    print(f"hands={len(predictions)} handedness={predictions[0].handedness} {text}")

    if args.show:
        readout = OverlayReadout(text)
        surface = OpenCVDisplaySurface(frame.shape[1], frame.shape[0], readout=readout)
        surface.draw_video(frame)
        draw_skeleton(surface, project_skeleton(landmarks))
        surface.present()
        cv2.waitKey(0)
        surface.close()
    return 0


def _main() -> int:
    return asyncio.run(_measure(_parse_args()))


if __name__ == "__main__":
    raise SystemExit(_main())
