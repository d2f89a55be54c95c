"""One-shot setup wiring the overlay collaborators around the render loop."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import cv2

from handpose_overlay.backend import BackendSwitchController
from handpose_overlay.camera import OpenCVVideoSource, OpenCVVideoSourceConfig
from handpose_overlay.constants import (
    DEFAULT_VIDEO_HEIGHT,
    DEFAULT_VIDEO_WIDTH,
    INDEX_FINGER_TIP,
    THUMB_TIP,
)
from handpose_overlay.display import OpenCVDisplaySurface, OverlayReadout, format_frame_rate
from handpose_overlay.exceptions import (
    AcquisitionError,
    BackendActivationError,
    ConfigurationError,
    DependencyError,
)
from handpose_overlay.inference import MediaPipeEstimatorConfig, MediaPipeHandEstimator
from handpose_overlay.models import ComputeBackend
from handpose_overlay.pointcloud import PointCloudProjector, build_anchor_points
from handpose_overlay.render_loop import RenderLogEvent, RenderLoop, RenderLoopConfig
from handpose_overlay.scheduling import AsyncioFrameScheduler
from handpose_overlay.session import RenderSession
from handpose_overlay.visualization import RerunPointCloudWidget, RerunWidgetConfig

QUIT_KEYS = frozenset({ord("q"), 27})
TOGGLE_POINT_CLOUD_KEY = ord("p")
BACKEND_KEYS: Mapping[int, ComputeBackend] = MappingProxyType(
    {ord("1"): ComputeBackend.CPU, ord("2"): ComputeBackend.GPU}
)


@dataclass(frozen=True, slots=True)
class OverlayConfig:
    """Configuration for :func:`run_overlay`.

    :param camera_index:
        Capture device index.
    :param video_width:
        Requested video width; also sizes the point-cloud anchor volume.
    :param video_height:
        Requested video height; also sizes the point-cloud anchor volume.
    :param frame_interval_s:
        Delay between consecutive frames.
    :param backend:
        Compute backend activated at startup.
    :param render_point_cloud:
        Whether the rerun point-cloud viewer is used.
    :param angle_joints:
        Landmark indices whose angle is shown in the readout.
    :param window_name:
        OpenCV window title.
    :param model_path:
        Optional local hand landmarker model.
    :param spawn_viewer:
        Whether to spawn a local rerun viewer.
    :param poll_interval_s:
        Interval at which keyboard input is polled.
    :param show_fps:
        Whether the measured frame rate is drawn under the angle readout.
    :param log_hook:
        Optional structured log callback for render loop events.
    """

    camera_index: int = 0
    video_width: int = DEFAULT_VIDEO_WIDTH
    video_height: int = DEFAULT_VIDEO_HEIGHT
    frame_interval_s: float = 1.0 / 60.0
    backend: ComputeBackend = ComputeBackend.CPU
    render_point_cloud: bool = True
    angle_joints: tuple[int, int] = (THUMB_TIP, INDEX_FINGER_TIP)
    window_name: str = "handpose-overlay"
    model_path: str | None = None
    spawn_viewer: bool = True
    poll_interval_s: float = 0.01
    show_fps: bool = True
    log_hook: Callable[[RenderLogEvent], None] | None = None

    def __post_init__(self) -> None:
        """Validate configuration constraints.

        :raises ConfigurationError:
            If one or more fields are invalid for runtime operation.
        """
        if self.video_width <= 0 or self.video_height <= 0:
            raise ConfigurationError("video_width and video_height must be greater than 0.")
        if self.frame_interval_s < 0:
            raise ConfigurationError("frame_interval_s must be non-negative.")
        if self.poll_interval_s <= 0:
            raise ConfigurationError("poll_interval_s must be greater than 0.")
        if not self.window_name:
            raise ConfigurationError("window_name must not be empty.")


class KeyboardControlPanel:
    """Keyboard control panel: backend selection, point-cloud toggle, quit.

    Keys ``1`` and ``2`` select the CPU and GPU backends, ``p`` toggles the
    point cloud, and ``q`` or ``Esc`` quits.
    """

    def __init__(
        self,
        controller: BackendSwitchController,
        render_loop: RenderLoop,
        *,
        readout: OverlayReadout | None = None,
        surface: OpenCVDisplaySurface | None = None,
    ) -> None:
        self._controller = controller
        self._render_loop = render_loop
        self._readout = readout
        self._surface = surface

    async def handle_key(self, key: int) -> bool:
        """Apply one key press.

        :param key:
            Key code as returned by ``cv2.waitKey``.
        :returns:
            ``False`` when the key requests shutdown, otherwise ``True``.
        """
        if key in QUIT_KEYS:
            return False

        if key == TOGGLE_POINT_CLOUD_KEY:
            self._render_loop.set_point_cloud_enabled(not self._render_loop.point_cloud_enabled)
            return True

        backend = BACKEND_KEYS.get(key)
        if backend is None:
            return True
        if backend == self._controller.backend and self._render_loop.is_running:
            return True

        try:
            await self._controller.select_backend(backend)
        except BackendActivationError as exc:
            # Loop stays stopped until the operator picks a backend again.
            self._show(f"{backend.value} backend unavailable: {exc}")
        return True

    def _show(self, text: str) -> None:
        if self._readout is not None:
            self._readout.show(text)
        if self._surface is not None:
            self._surface.present()


def report_startup_failure(exc: Exception) -> None:
    """Print a startup failure for the operator."""
    print(f"handpose-overlay: {exc}", file=sys.stderr)


async def run_overlay(config: OverlayConfig | None = None) -> int:
    """Set up all collaborators and run the overlay until the operator quits.

    :param config:
        Optional overlay configuration.
    :returns:
        Process exit code.
    :raises DependencyError:
        If `mediapipe` or, with the point cloud enabled, `rerun-sdk` is missing.
    :raises BackendActivationError:
        If the startup backend fails to initialize.
    :raises AcquisitionError:
        If the camera cannot be opened. The loop never starts.
    """
    config = config or OverlayConfig()
    session = RenderSession(backend=config.backend)

    widget: RerunPointCloudWidget | None = None
    estimator: MediaPipeHandEstimator | None = None
    try:
        if config.render_point_cloud:
            widget = RerunPointCloudWidget(RerunWidgetConfig(spawn=config.spawn_viewer))
        estimator = MediaPipeHandEstimator(
            MediaPipeEstimatorConfig(model_path=config.model_path)
        )
        source = OpenCVVideoSource(
            OpenCVVideoSourceConfig(
                camera_index=config.camera_index,
                requested_width=config.video_width,
                requested_height=config.video_height,
            )
        )
        await estimator.activate(config.backend)
        source.open()
    except (AcquisitionError, BackendActivationError, DependencyError) as exc:
        report_startup_failure(exc)
        if estimator is not None:
            estimator.close()
        if widget is not None:
            widget.close()
        raise

    readout = OverlayReadout()
    surface = OpenCVDisplaySurface(
        source.width, source.height, window_name=config.window_name, readout=readout
    )
    point_cloud = None
    if widget is not None:
        point_cloud = PointCloudProjector(
            widget,
            session,
            anchors=build_anchor_points(config.video_width, config.video_height),
        )

    render_loop = RenderLoop(
        session,
        video_source=source,
        estimator=estimator,
        surface=surface,
        scheduler=AsyncioFrameScheduler(config.frame_interval_s),
        readout=readout,
        point_cloud=point_cloud,
        config=RenderLoopConfig(
            angle_joints=config.angle_joints,
            render_point_cloud=config.render_point_cloud,
            log_hook=config.log_hook,
        ),
    )
    panel = KeyboardControlPanel(
        BackendSwitchController(render_loop, estimator),
        render_loop,
        readout=readout,
        surface=surface,
    )

    render_loop.start()
    try:
        while True:
            if session.failure is not None:
                raise session.failure
            if config.show_fps:
                readout.show_status(format_frame_rate(render_loop.get_stats().fps))
            key = cv2.waitKey(1) & 0xFF
            if key != 0xFF and not await panel.handle_key(key):
                break
            await asyncio.sleep(config.poll_interval_s)
    finally:
        render_loop.stop()
        surface.close()
        source.close()
        estimator.close()
        if widget is not None:
            widget.close()
    return 0
