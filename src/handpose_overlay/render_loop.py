"""Frame-synchronous render loop driving inference and overlay drawing."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum
from functools import partial
from typing import Protocol

import numpy as np

from handpose_overlay.constants import (
    ANGLE_SENTINEL_TEXT,
    INDEX_FINGER_TIP,
    LANDMARK_COUNT,
    THUMB_TIP,
)
from handpose_overlay.exceptions import (
    ConfigurationError,
    InvalidLandmarkSetError,
    NotComputableError,
)
from handpose_overlay.geometry import format_angle, landmark_angle_degrees
from handpose_overlay.inference import HandPoseEstimator
from handpose_overlay.models import ComputeBackend, HandLandmarks, HandPrediction
from handpose_overlay.pointcloud import PointCloudProjector
from handpose_overlay.scheduling import FrameScheduler
from handpose_overlay.session import LoopState, RenderSession
from handpose_overlay.skeleton import SkeletonStyle, draw_skeleton, project_skeleton


class LogEventKind(StrEnum):
    """Structured log event kinds emitted by :class:`RenderLoop`."""

    LOOP_STARTED = "loop_started"
    LOOP_STOPPED = "loop_stopped"
    FRAME_UNAVAILABLE = "frame_unavailable"
    INFERENCE_ERROR = "inference_error"
    NO_HANDS = "no_hands"
    INVALID_LANDMARKS = "invalid_landmarks"
    ANGLE_NOT_COMPUTABLE = "angle_not_computable"
    FRAME_RENDERED = "frame_rendered"
    FRAME_DISCARDED = "frame_discarded"
    FATAL_ERROR = "fatal_error"


@dataclass(frozen=True, slots=True)
class RenderLogEvent:
    """Structured render loop event for observability hooks.

    :param kind:
        Event kind discriminator.
    :param message:
        Human-readable event message.
    :param backend:
        Backend active when the event was emitted.
    :param exception:
        Optional exception associated with the event.
    """

    kind: LogEventKind
    message: str
    backend: ComputeBackend | None = None
    exception: BaseException | None = None


@dataclass(frozen=True, slots=True)
class RenderStats:
    """Observable counters for :class:`RenderLoop` runtime behavior.

    ``fps`` is an exponentially smoothed rate of frame starts and
    ``last_frame_s`` the duration of the most recent frame body.
    """

    frames_started: int = 0
    frames_rendered: int = 0
    frames_without_hands: int = 0
    frames_unavailable: int = 0
    frames_discarded: int = 0
    inference_errors: int = 0
    invalid_landmark_sets: int = 0
    angles_not_computable: int = 0
    fps: float = 0.0
    last_frame_s: float = 0.0


@dataclass(frozen=True, slots=True)
class RenderLoopConfig:
    """Configuration for :class:`RenderLoop`.

    :param angle_joints:
        Landmark indices whose angle is shown in the readout.
    :param render_point_cloud:
        Whether the point-cloud widget is updated on rendered frames.
    :param skeleton_style:
        Style used to draw the skeleton overlay.
    :param log_hook:
        Optional structured log callback invoked for loop lifecycle events.
    """

    angle_joints: tuple[int, int] = (THUMB_TIP, INDEX_FINGER_TIP)
    render_point_cloud: bool = True
    skeleton_style: SkeletonStyle = field(default_factory=SkeletonStyle)
    log_hook: Callable[[RenderLogEvent], None] | None = None

    def __post_init__(self) -> None:
        """Validate configuration constraints.

        :raises ConfigurationError:
            If the angle joints are not two distinct valid landmark indices.
        """
        if len(self.angle_joints) != 2:
            raise ConfigurationError("angle_joints must contain exactly two indices.")
        if any(index < 0 or index >= LANDMARK_COUNT for index in self.angle_joints):
            raise ConfigurationError(f"angle_joints must be in range [0, {LANDMARK_COUNT - 1}].")
        if self.angle_joints[0] == self.angle_joints[1]:
            raise ConfigurationError("angle_joints must reference two different landmarks.")


class VideoSource(Protocol):
    """Protocol for the camera collaborator used by :class:`RenderLoop`."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def read_frame(self) -> np.ndarray | None: ...


class DisplaySurface(Protocol):
    """Protocol for the mirrored 2D surface the overlay is drawn on."""

    def draw_video(self, frame: np.ndarray) -> None: ...

    def draw_circle(
        self, center: tuple[float, float], radius: int, color: tuple[int, int, int]
    ) -> None: ...

    def draw_polyline(
        self,
        points: Sequence[tuple[float, float]],
        color: tuple[int, int, int],
        *,
        thickness: int,
        closed: bool,
    ) -> None: ...

    def present(self) -> None: ...


class Readout(Protocol):
    """Protocol for the text sink showing the latest angle."""

    def show(self, text: str) -> None: ...


class RenderLoop:
    """Per-frame driver: draw video, await inference, render the first hand.

    Every non-fatal path schedules the next frame. At most one scheduled frame
    is outstanding; :meth:`stop` cancels it and invalidates a frame that is
    suspended in inference so it finishes without rendering or rescheduling.
    """

    def __init__(
        self,
        session: RenderSession,
        *,
        video_source: VideoSource,
        estimator: HandPoseEstimator,
        surface: DisplaySurface,
        scheduler: FrameScheduler,
        readout: Readout | None = None,
        point_cloud: PointCloudProjector | None = None,
        config: RenderLoopConfig | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Create a render loop.

        :param session:
            Session state shared with the backend switch controller.
        :param video_source:
            Source of the current camera frame.
        :param estimator:
            Inference collaborator.
        :param surface:
            Display surface receiving video and skeleton.
        :param scheduler:
            Frame scheduler pacing the loop.
        :param readout:
            Optional text sink for the angle readout.
        :param point_cloud:
            Optional point-cloud projector.
        :param config:
            Optional loop configuration.
        :param clock:
            Monotonic clock in seconds used for frame timing.
        """
        self._session = session
        self._video_source = video_source
        self._estimator = estimator
        self._surface = surface
        self._scheduler = scheduler
        self._readout = readout
        self._point_cloud = point_cloud
        self._config = config or RenderLoopConfig()
        self._render_point_cloud = self._config.render_point_cloud
        self._stats = RenderStats()
        self._generation = 0
        self._active = False
        self._clock = clock
        self._last_frame_started_s: float | None = None

    @property
    def session(self) -> RenderSession:
        return self._session

    @property
    def is_running(self) -> bool:
        """Return whether the loop is started and has not been stopped."""
        return self._active

    @property
    def point_cloud_enabled(self) -> bool:
        return self._render_point_cloud

    def set_point_cloud_enabled(self, enabled: bool) -> None:
        """Enable or disable point-cloud updates on subsequent frames."""
        self._render_point_cloud = enabled

    def start(self) -> None:
        """Schedule the first frame.

        :raises RuntimeError:
            If the loop is already running.
        """
        if self._active or self._session.frame_handle is not None:
            raise RuntimeError("Render loop is already running.")

        self._generation += 1
        self._active = True
        self._last_frame_started_s = None
        self._session.failure = None
        self._schedule_next(self._generation)
        self._emit_log(
            RenderLogEvent(kind=LogEventKind.LOOP_STARTED, message="Render loop started.")
        )

    def stop(self) -> bool:
        """Cancel the outstanding frame and stop the loop.

        :returns:
            ``True`` if a scheduled frame was cancelled.
        """
        cancelled = self._cancel_outstanding_frame()
        was_active = self._active
        self._active = False
        self._generation += 1
        self._session.state = LoopState.IDLE
        if was_active:
            self._emit_log(
                RenderLogEvent(kind=LogEventKind.LOOP_STOPPED, message="Render loop stopped.")
            )
        return cancelled

    async def render_frame(self) -> None:
        """Run one frame body against the current generation without rescheduling."""
        await self._render_frame(self._generation)

    def get_stats(self) -> RenderStats:
        """Return a snapshot of current loop counters."""
        return self._stats

    def reset_stats(self) -> None:
        """Reset loop counters to zero values."""
        self._stats = RenderStats()

    async def _run_scheduled_frame(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._session.frame_handle = None

        try:
            await self._render_frame(generation)
        except Exception as exc:
            if generation == self._generation:
                self._fail(exc)
            raise

        if generation == self._generation:
            self._schedule_next(generation)

    async def _render_frame(self, generation: int) -> None:
        started_s = self._clock()
        self._tick_frame_rate(started_s)
        try:
            await self._render_frame_body(generation)
        finally:
            self._stats = self._stats_with(last_frame_s=self._clock() - started_s)

    async def _render_frame_body(self, generation: int) -> None:
        self._stats = self._stats_with(frames_started=self._stats.frames_started + 1)

        frame = self._video_source.read_frame()
        if frame is None:
            self._stats = self._stats_with(frames_unavailable=self._stats.frames_unavailable + 1)
            self._emit_log(
                RenderLogEvent(
                    kind=LogEventKind.FRAME_UNAVAILABLE,
                    message="Video source returned no frame.",
                )
            )
            return

        self._surface.draw_video(frame)
        self._session.state = LoopState.AWAITING_INFERENCE
        predictions = await self._estimate(frame)

        if generation != self._generation:
            self._stats = self._stats_with(frames_discarded=self._stats.frames_discarded + 1)
            self._emit_log(
                RenderLogEvent(
                    kind=LogEventKind.FRAME_DISCARDED,
                    message="Discarded frame completed after the loop was stopped.",
                )
            )
            return

        self._session.state = LoopState.RENDERING
        if predictions:
            self._render_hand(predictions[0].landmarks)
        else:
            self._stats = self._stats_with(
                frames_without_hands=self._stats.frames_without_hands + 1
            )
            self._emit_log(
                RenderLogEvent(kind=LogEventKind.NO_HANDS, message="No hand detected in frame.")
            )
        self._surface.present()

    async def _estimate(self, frame: np.ndarray) -> Sequence[HandPrediction]:
        """Request one inference result; a failed request counts as no hands."""
        try:
            return await self._estimator.estimate_hands(frame)
        except Exception as exc:
            self._stats = self._stats_with(inference_errors=self._stats.inference_errors + 1)
            self._emit_log(
                RenderLogEvent(
                    kind=LogEventKind.INFERENCE_ERROR,
                    message="Inference request failed.",
                    exception=exc,
                )
            )
            return ()

    def _render_hand(self, landmarks: HandLandmarks) -> None:
        style = self._config.skeleton_style
        try:
            projection = project_skeleton(landmarks, style)
        except InvalidLandmarkSetError as exc:
            self._stats = self._stats_with(
                invalid_landmark_sets=self._stats.invalid_landmark_sets + 1
            )
            self._emit_log(
                RenderLogEvent(
                    kind=LogEventKind.INVALID_LANDMARKS,
                    message="Skipped rendering of a malformed landmark set.",
                    exception=exc,
                )
            )
            return

        draw_skeleton(self._surface, projection, style)
        self._update_readout(landmarks)
        if self._render_point_cloud and self._point_cloud is not None:
            self._point_cloud.update(landmarks)

        self._stats = self._stats_with(frames_rendered=self._stats.frames_rendered + 1)
        self._emit_log(
            RenderLogEvent(kind=LogEventKind.FRAME_RENDERED, message="Rendered hand overlay.")
        )

    def _update_readout(self, landmarks: HandLandmarks) -> None:
        first, second = self._config.angle_joints
        try:
            text = format_angle(landmark_angle_degrees(landmarks, first, second))
        except NotComputableError as exc:
            text = ANGLE_SENTINEL_TEXT
            self._stats = self._stats_with(
                angles_not_computable=self._stats.angles_not_computable + 1
            )
            self._emit_log(
                RenderLogEvent(
                    kind=LogEventKind.ANGLE_NOT_COMPUTABLE,
                    message="Angle metric is undefined for this frame.",
                    exception=exc,
                )
            )
        if self._readout is not None:
            self._readout.show(text)

    def _schedule_next(self, generation: int) -> None:
        self._session.frame_handle = self._scheduler.request_frame(
            partial(self._run_scheduled_frame, generation)
        )
        self._session.state = LoopState.FRAME_SCHEDULED

    def _cancel_outstanding_frame(self) -> bool:
        handle = self._session.frame_handle
        if handle is None:
            return False
        handle.cancel()
        self._session.frame_handle = None
        return True

    def _fail(self, exc: Exception) -> None:
        """Stop the loop after an error that cannot be contained in one frame."""
        self._cancel_outstanding_frame()
        self._active = False
        self._generation += 1
        self._session.state = LoopState.IDLE
        self._session.failure = exc
        self._emit_log(
            RenderLogEvent(
                kind=LogEventKind.FATAL_ERROR,
                message="Render loop stopped by an unexpected error.",
                exception=exc,
            )
        )

    def _tick_frame_rate(self, now_s: float) -> None:
        if self._last_frame_started_s is not None:
            instant = 1.0 / max(now_s - self._last_frame_started_s, 1e-6)
            fps = self._stats.fps
            fps = instant if fps == 0.0 else 0.85 * fps + 0.15 * instant
            self._stats = self._stats_with(fps=fps)
        self._last_frame_started_s = now_s

    def _stats_with(self, **changes: float) -> RenderStats:
        """Return updated stats snapshot with selected counter changes."""
        return replace(self._stats, **changes)

    def _emit_log(self, event: RenderLogEvent) -> None:
        """Emit one structured log event if a hook is configured."""
        if self._config.log_hook is not None:
            if event.backend is None:
                event = replace(event, backend=self._session.backend)
            self._config.log_hook(event)
