"""Run the live hand skeleton overlay with the angle readout and point cloud.

Example:
    uv run --with mediapipe --with rerun-sdk python examples/run_overlay.py \\
        --camera 0 --backend cpu
"""

from __future__ import annotations

import argparse
import asyncio

from handpose_overlay import (
    AcquisitionError,
    BackendActivationError,
    ComputeBackend,
    DependencyError,
    LogEventKind,
    OverlayConfig,
    RenderLogEvent,
    run_overlay,
)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Overlay a hand skeleton on a live camera feed.")
    parser.add_argument("--camera", type=int, default=0, help="Capture device index.")
    parser.add_argument("--width", type=int, default=640, help="Requested video width.")
    parser.add_argument("--height", type=int, default=500, help="Requested video height.")
    parser.add_argument(
        "--backend",
        choices=[backend.value for backend in ComputeBackend],
        default=ComputeBackend.CPU.value,
        help="Compute backend activated at startup.",
    )
    parser.add_argument("--fps", type=float, default=60.0, help="Target display frame rate.")
    parser.add_argument("--model-path", default=None, help="Local hand_landmarker.task file.")
    parser.add_argument(
        "--no-point-cloud",
        action="store_true",
        help="Do not render the rerun point cloud.",
    )
    parser.add_argument(
        "--no-spawn",
        action="store_true",
        help="Do not auto-spawn rerun viewer.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print per-frame problems reported by the render loop.",
    )
    return parser.parse_args()


def _print_problem(event: RenderLogEvent) -> None:
    if event.kind in (
        LogEventKind.INFERENCE_ERROR,
        LogEventKind.INVALID_LANDMARKS,
        LogEventKind.FATAL_ERROR,
    ):
        print(f"{event.kind.value} backend={event.backend} {event.message} {event.exception!r}")


def _main() -> int:
    args = _parse_args()
    if args.fps <= 0:
        raise ValueError("--fps must be greater than 0.")

    config = OverlayConfig(
        camera_index=args.camera,
        video_width=args.width,
        video_height=args.height,
        frame_interval_s=1.0 / args.fps,
        backend=ComputeBackend(args.backend),
        render_point_cloud=not args.no_point_cloud,
        model_path=args.model_path,
        spawn_viewer=not args.no_spawn,
        log_hook=_print_problem if args.verbose else None,
    )
    try:
        return asyncio.run(run_overlay(config))
    except (AcquisitionError, BackendActivationError, DependencyError):
        return 1


if __name__ == "__main__":
    raise SystemExit(_main())
