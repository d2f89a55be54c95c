from __future__ import annotations

import asyncio
from pathlib import Path
from types import ModuleType, SimpleNamespace

import numpy as np
import pytest

from handpose_overlay import (
    BackendActivationError,
    ComputeBackend,
    ConfigurationError,
    DependencyError,
    MediaPipeEstimatorConfig,
    MediaPipeHandEstimator,
)


class _FakeLandmarker:
    def __init__(self, options: object, result: object) -> None:
        self.options = options
        self.result = result
        self.timestamps: list[int] = []
        self.closed = False

    def detect_for_video(self, image: object, timestamp_ms: int) -> object:
        self.timestamps.append(timestamp_ms)
        return self.result

    def close(self) -> None:
        self.closed = True


class _FakeBaseOptions:
    Delegate = SimpleNamespace(CPU="cpu-delegate", GPU="gpu-delegate")

    def __init__(self, *, model_asset_path: str, delegate: str) -> None:
        self.model_asset_path = model_asset_path
        self.delegate = delegate


class _FakeHandLandmarkerOptions:
    def __init__(self, **kwargs: object) -> None:
        self.__dict__.update(kwargs)


class _FakeMediaPipe(ModuleType):
    def __init__(self, result: object = None) -> None:
        super().__init__("mediapipe")
        self.result = result
        self.landmarkers: list[_FakeLandmarker] = []
        self.images: list[object] = []
        fake = self

        class _HandLandmarker:
            @staticmethod
            def create_from_options(options: object) -> _FakeLandmarker:
                landmarker = _FakeLandmarker(options, fake.result)
                fake.landmarkers.append(landmarker)
                return landmarker

        class _Image:
            def __init__(self, *, image_format: str, data: np.ndarray) -> None:
                self.image_format = image_format
                self.data = data
                fake.images.append(self)

        self.Image = _Image
        self.ImageFormat = SimpleNamespace(SRGB="srgb")
        self.tasks = SimpleNamespace(
            BaseOptions=_FakeBaseOptions,
            vision=SimpleNamespace(
                HandLandmarker=_HandLandmarker,
                HandLandmarkerOptions=_FakeHandLandmarkerOptions,
                RunningMode=SimpleNamespace(VIDEO="video"),
            ),
        )


def _one_hand_result() -> SimpleNamespace:
    points = [SimpleNamespace(x=0.5, y=0.25, z=-0.1) for _ in range(21)]
    return SimpleNamespace(
        hand_landmarks=[points],
        handedness=[[SimpleNamespace(category_name="Left", score=0.75)]],
    )


def _install_fake_mediapipe(
    monkeypatch: pytest.MonkeyPatch, result: object = None
) -> _FakeMediaPipe:
    fake = _FakeMediaPipe(result)

    def _import(module_name: str) -> ModuleType:
        if module_name == "mediapipe":
            return fake
        raise ModuleNotFoundError(module_name)

    monkeypatch.setattr("importlib.import_module", _import)
    return fake


def _model_file(tmp_path: Path) -> str:
    model = tmp_path / "hand_landmarker.task"
    model.write_bytes(b"model")
    return str(model)


def test_estimator_requires_optional_dependency(monkeypatch: pytest.MonkeyPatch) -> None:
    def _raise_module_not_found(_: str) -> ModuleType:
        raise ModuleNotFoundError("mediapipe")

    monkeypatch.setattr("importlib.import_module", _raise_module_not_found)

    with pytest.raises(DependencyError, match="inference"):
        MediaPipeHandEstimator()


def test_estimate_returns_pixel_space_landmarks(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    fake = _install_fake_mediapipe(monkeypatch, _one_hand_result())
    estimator = MediaPipeHandEstimator(MediaPipeEstimatorConfig(model_path=_model_file(tmp_path)))
    frame = np.zeros((100, 200, 3), dtype=np.uint8)

    async def scenario():
        await estimator.activate(ComputeBackend.CPU)
        return await estimator.estimate_hands(frame)

    predictions = asyncio.run(scenario())

    assert len(predictions) == 1
    assert predictions[0].landmarks.points[0] == (100.0, 25.0, -20.0)
    assert len(predictions[0].landmarks) == 21
    assert predictions[0].handedness == "Left"
    assert predictions[0].score == 0.75
    assert fake.images[0].image_format == "srgb"
    assert fake.landmarkers[0].options.running_mode == "video"


def test_no_hands_yields_empty_list(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _install_fake_mediapipe(monkeypatch, SimpleNamespace(hand_landmarks=[], handedness=[]))
    estimator = MediaPipeHandEstimator(MediaPipeEstimatorConfig(model_path=_model_file(tmp_path)))

    async def scenario():
        await estimator.activate(ComputeBackend.CPU)
        return await estimator.estimate_hands(np.zeros((10, 10, 3), dtype=np.uint8))

    assert asyncio.run(scenario()) == []


def test_timestamps_strictly_increase(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    fake = _install_fake_mediapipe(monkeypatch, _one_hand_result())
    estimator = MediaPipeHandEstimator(MediaPipeEstimatorConfig(model_path=_model_file(tmp_path)))
    frame = np.zeros((10, 10, 3), dtype=np.uint8)

    async def scenario() -> None:
        await estimator.activate(ComputeBackend.CPU)
        for _ in range(3):
            await estimator.estimate_hands(frame)

    asyncio.run(scenario())

    timestamps = fake.landmarkers[0].timestamps
    assert timestamps == sorted(set(timestamps))
    assert len(timestamps) == 3


def test_switching_backend_replaces_landmarker(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    fake = _install_fake_mediapipe(monkeypatch)
    estimator = MediaPipeHandEstimator(MediaPipeEstimatorConfig(model_path=_model_file(tmp_path)))

    async def scenario() -> None:
        await estimator.activate(ComputeBackend.CPU)
        await estimator.activate(ComputeBackend.GPU)

    asyncio.run(scenario())

    cpu, gpu = fake.landmarkers
    assert cpu.options.base_options.delegate == "cpu-delegate"
    assert gpu.options.base_options.delegate == "gpu-delegate"
    assert cpu.closed
    assert not gpu.closed
    assert estimator.backend is ComputeBackend.GPU

    estimator.close()
    assert gpu.closed
    assert estimator.backend is None


def test_missing_model_fails_activation(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _install_fake_mediapipe(monkeypatch)
    estimator = MediaPipeHandEstimator(
        MediaPipeEstimatorConfig(model_path=str(tmp_path / "missing.task"))
    )

    with pytest.raises(BackendActivationError, match="gpu"):
        asyncio.run(estimator.activate(ComputeBackend.GPU))
    assert estimator.backend is None


def test_estimate_before_activation_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_fake_mediapipe(monkeypatch)
    estimator = MediaPipeHandEstimator()

    with pytest.raises(RuntimeError, match="no active backend"):
        asyncio.run(estimator.estimate_hands(np.zeros((10, 10, 3), dtype=np.uint8)))


def test_cached_model_is_reused(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    fake = _install_fake_mediapipe(monkeypatch)
    (tmp_path / "hand_landmarker.task").write_bytes(b"model")
    estimator = MediaPipeHandEstimator(
        MediaPipeEstimatorConfig(cache_dir=str(tmp_path), model_url="http://invalid.invalid/")
    )

    asyncio.run(estimator.activate(ComputeBackend.CPU))

    assert fake.landmarkers[0].options.base_options.model_asset_path == str(
        tmp_path / "hand_landmarker.task"
    )


@pytest.mark.parametrize(
    "kwargs",
    [{"num_hands": 0}, {"min_detection_confidence": 1.5}, {"download_timeout_s": 0.0}],
)
def test_invalid_estimator_config(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        MediaPipeEstimatorConfig(**kwargs)
