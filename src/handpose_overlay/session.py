"""Render session state shared by the render loop and backend controller."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from handpose_overlay.models import ComputeBackend
from handpose_overlay.scheduling import FrameHandle


class LoopState(StrEnum):
    """Lifecycle state of the render loop."""

    IDLE = "idle"
    FRAME_SCHEDULED = "frame_scheduled"
    AWAITING_INFERENCE = "awaiting_inference"
    RENDERING = "rendering"


@dataclass(slots=True)
class RenderSession:
    """Mutable cross-frame state of one overlay session.

    :param backend:
        Active compute backend.
    :param frame_handle:
        Outstanding scheduled frame, if any. At most one exists at a time.
    :param point_cloud_initialized:
        Whether the point-cloud widget received its one-time setup. This flag
        survives backend switches.
    :param state:
        Current render loop state.
    :param failure:
        Fatal exception that stopped the loop, if any.
    """

    backend: ComputeBackend = ComputeBackend.CPU
    frame_handle: FrameHandle | None = None
    point_cloud_initialized: bool = False
    state: LoopState = LoopState.IDLE
    failure: BaseException | None = None
