from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from types import ModuleType

import numpy as np
import pytest

from handpose_overlay import (
    AcquisitionError,
    BackendActivationError,
    BackendSwitchController,
    ComputeBackend,
    ConfigurationError,
    DependencyError,
    KeyboardControlPanel,
    OpenCVVideoSource,
    OverlayConfig,
    OverlayReadout,
    RenderLoop,
    RenderSession,
    run_overlay,
)


class ManualHandle:
    def __init__(self, callback: Callable[[], Awaitable[None]]) -> None:
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    def __init__(self) -> None:
        self.handles: list[ManualHandle] = []

    def request_frame(self, callback: Callable[[], Awaitable[None]]) -> ManualHandle:
        handle = ManualHandle(callback)
        self.handles.append(handle)
        return handle


class NullSource:
    width = 8
    height = 8

    def read_frame(self) -> np.ndarray | None:
        return None


class NullEstimator:
    async def estimate_hands(self, frame: np.ndarray) -> list:
        return []


class CountingSurface:
    def __init__(self) -> None:
        self.presented = 0

    def draw_video(self, frame: np.ndarray) -> None:
        pass

    def draw_circle(self, center, radius, color) -> None:
        pass

    def draw_polyline(self, points, color, *, thickness, closed) -> None:
        pass

    def present(self) -> None:
        self.presented += 1


class FakeActivator:
    def __init__(self, failing: set[ComputeBackend] | None = None) -> None:
        self.failing = failing or set()
        self.activated: list[ComputeBackend] = []

    async def activate(self, backend: ComputeBackend) -> None:
        if backend in self.failing:
            raise BackendActivationError("webgpu adapter missing")
        self.activated.append(backend)


def _build_panel(
    activator: FakeActivator,
) -> tuple[KeyboardControlPanel, RenderLoop, ManualScheduler, OverlayReadout, CountingSurface]:
    scheduler = ManualScheduler()
    surface = CountingSurface()
    readout = OverlayReadout()
    loop = RenderLoop(
        RenderSession(),
        video_source=NullSource(),
        estimator=NullEstimator(),
        surface=surface,
        scheduler=scheduler,
        readout=readout,
    )
    panel = KeyboardControlPanel(
        BackendSwitchController(loop, activator), loop, readout=readout, surface=surface
    )
    return panel, loop, scheduler, readout, surface


@pytest.mark.parametrize("key", [ord("q"), 27])
def test_quit_keys_stop_the_panel(key: int) -> None:
    panel, _, _, _, _ = _build_panel(FakeActivator())

    assert asyncio.run(panel.handle_key(key)) is False


def test_unbound_key_is_ignored() -> None:
    activator = FakeActivator()
    panel, _, _, _, _ = _build_panel(activator)

    assert asyncio.run(panel.handle_key(ord("x"))) is True
    assert activator.activated == []


def test_point_cloud_toggle() -> None:
    panel, loop, _, _, _ = _build_panel(FakeActivator())

    asyncio.run(panel.handle_key(ord("p")))
    assert not loop.point_cloud_enabled
    asyncio.run(panel.handle_key(ord("p")))
    assert loop.point_cloud_enabled


def test_backend_key_switches_and_restarts_loop() -> None:
    activator = FakeActivator()
    panel, loop, scheduler, _, _ = _build_panel(activator)
    loop.start()

    assert asyncio.run(panel.handle_key(ord("2"))) is True

    assert activator.activated == [ComputeBackend.GPU]
    assert loop.session.backend is ComputeBackend.GPU
    assert [handle.cancelled for handle in scheduler.handles] == [True, False]


def test_active_backend_key_is_a_no_op_while_running() -> None:
    activator = FakeActivator()
    panel, loop, scheduler, _, _ = _build_panel(activator)
    loop.start()

    asyncio.run(panel.handle_key(ord("1")))

    assert activator.activated == []
    assert len(scheduler.handles) == 1


def test_failed_switch_is_reported_and_loop_stays_stopped() -> None:
    panel, loop, _, readout, surface = _build_panel(FakeActivator({ComputeBackend.GPU}))
    loop.start()

    assert asyncio.run(panel.handle_key(ord("2"))) is True

    assert not loop.is_running
    assert readout.text.startswith("gpu backend unavailable")
    assert surface.presented == 1

    asyncio.run(panel.handle_key(ord("1")))
    assert loop.is_running


@pytest.mark.parametrize(
    "kwargs",
    [
        {"video_width": 0},
        {"frame_interval_s": -1.0},
        {"poll_interval_s": 0.0},
        {"window_name": ""},
    ],
)
def test_invalid_overlay_config(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        OverlayConfig(**kwargs)


class StartupEstimator:
    instances: list[StartupEstimator] = []

    def __init__(self, config: object = None) -> None:
        self.activated: list[ComputeBackend] = []
        self.closed = False
        StartupEstimator.instances.append(self)

    async def activate(self, backend: ComputeBackend) -> None:
        self.activated.append(backend)

    def close(self) -> None:
        self.closed = True


class RecordingFrameScheduler:
    requests: list[object] = []

    def __init__(self, frame_interval_s: float = 0.0) -> None:
        pass

    def request_frame(self, callback):
        RecordingFrameScheduler.requests.append(callback)
        return ManualHandle(callback)


class _FakeRerun(ModuleType):
    def __init__(self) -> None:
        super().__init__("rerun")
        self.disconnected = False

    def init(self, application_id: str, *, spawn: bool) -> None:
        pass

    def disconnect(self) -> None:
        self.disconnected = True


@pytest.fixture
def startup_fakes(monkeypatch: pytest.MonkeyPatch):
    StartupEstimator.instances = []
    RecordingFrameScheduler.requests = []
    monkeypatch.setattr("handpose_overlay.app.MediaPipeHandEstimator", StartupEstimator)
    monkeypatch.setattr("handpose_overlay.app.AsyncioFrameScheduler", RecordingFrameScheduler)


def test_camera_failure_is_reported_once_and_releases_estimator(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], startup_fakes
) -> None:
    def _fail_open(self) -> None:
        raise AcquisitionError("Camera 0 could not be opened.")

    monkeypatch.setattr(OpenCVVideoSource, "open", _fail_open)

    with pytest.raises(AcquisitionError):
        asyncio.run(run_overlay(OverlayConfig(render_point_cloud=False)))

    stderr = capsys.readouterr().err
    assert stderr.count("handpose-overlay:") == 1
    assert "could not be opened" in stderr
    assert StartupEstimator.instances[0].activated == [ComputeBackend.CPU]
    assert StartupEstimator.instances[0].closed
    assert RecordingFrameScheduler.requests == []


def test_missing_inference_dependency_is_reported(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def _raise_module_not_found(module_name: str) -> ModuleType:
        raise ModuleNotFoundError(module_name)

    monkeypatch.setattr("importlib.import_module", _raise_module_not_found)

    with pytest.raises(DependencyError):
        asyncio.run(run_overlay(OverlayConfig(render_point_cloud=False)))

    assert "handpose-overlay: mediapipe is not installed" in capsys.readouterr().err


def test_startup_failure_disconnects_point_cloud_viewer(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    fake_rerun = _FakeRerun()

    def _import(module_name: str) -> ModuleType:
        if module_name == "rerun":
            return fake_rerun
        raise ModuleNotFoundError(module_name)

    monkeypatch.setattr("importlib.import_module", _import)

    with pytest.raises(DependencyError):
        asyncio.run(run_overlay(OverlayConfig(spawn_viewer=False)))

    assert fake_rerun.disconnected
    assert "handpose-overlay:" in capsys.readouterr().err
