"""Hand landmark inference collaborators."""

from __future__ import annotations

import asyncio
import importlib
import shutil
import time
import urllib.error
import urllib.request
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Protocol

import cv2
import numpy as np

from handpose_overlay.convert import convert_landmarks_normalized_to_pixel
from handpose_overlay.exceptions import (
    BackendActivationError,
    ConfigurationError,
    DependencyError,
)
from handpose_overlay.models import ComputeBackend, HandLandmarks, HandPrediction

DEFAULT_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)


class HandPoseEstimator(Protocol):
    """Protocol for the per-frame hand landmark estimator."""

    async def estimate_hands(self, frame: np.ndarray) -> Sequence[HandPrediction]: ...


class BackendActivator(Protocol):
    """Protocol for collaborators that can switch their compute backend."""

    async def activate(self, backend: ComputeBackend) -> None: ...


@dataclass(frozen=True, slots=True)
class MediaPipeEstimatorConfig:
    """Configuration for :class:`MediaPipeHandEstimator`.

    :param model_path:
        Optional path to a ``hand_landmarker.task`` model. When omitted the
        model is downloaded once into ``cache_dir``.
    :param cache_dir:
        Directory holding the downloaded model.
    :param model_url:
        Download location of the default model.
    :param num_hands:
        Maximum number of hands reported per frame.
    :param min_detection_confidence:
        Minimum palm detection confidence.
    :param min_presence_confidence:
        Minimum hand presence confidence.
    :param min_tracking_confidence:
        Minimum landmark tracking confidence.
    :param download_timeout_s:
        Timeout for the model download.
    """

    model_path: str | None = None
    cache_dir: str = "~/.cache/handpose-overlay"
    model_url: str = DEFAULT_MODEL_URL
    num_hands: int = 1
    min_detection_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    download_timeout_s: float = 60.0

    def __post_init__(self) -> None:
        """Validate configuration constraints.

        :raises ConfigurationError:
            If one or more fields are invalid for runtime operation.
        """
        if self.num_hands <= 0:
            raise ConfigurationError("num_hands must be greater than 0.")
        for name in (
            "min_detection_confidence",
            "min_presence_confidence",
            "min_tracking_confidence",
        ):
            value = getattr(self, name)
            if value < 0.0 or value > 1.0:
                raise ConfigurationError(f"{name} must be in range [0, 1].")
        if self.download_timeout_s <= 0:
            raise ConfigurationError("download_timeout_s must be greater than 0.")


class MediaPipeHandEstimator:
    """Hand landmark estimator backed by the MediaPipe Tasks ``HandLandmarker``.

    Landmarks are returned in pixel space of the input frame. The estimator
    must be activated on a backend before the first estimate; activating again
    rebuilds the landmarker with the matching delegate.
    """

    def __init__(self, config: MediaPipeEstimatorConfig | None = None) -> None:
        """Create an estimator.

        :param config:
            Optional estimator configuration.
        :raises DependencyError:
            If `mediapipe` is not installed.
        """
        self._config = config or MediaPipeEstimatorConfig()
        self._mp = self._import_mediapipe()
        self._landmarker: Any = None
        self._backend: ComputeBackend | None = None
        self._last_timestamp_ms = 0
        self._lock = asyncio.Lock()

    @property
    def backend(self) -> ComputeBackend | None:
        """Return the active backend, or ``None`` before activation."""
        return self._backend

    async def activate(self, backend: ComputeBackend) -> None:
        """Build a landmarker on ``backend`` and make it active.

        Waits for an in-flight estimate to finish before replacing the
        landmarker.

        :param backend:
            Compute backend to activate.
        :raises BackendActivationError:
            If the model cannot be obtained or the landmarker cannot be created.
        """
        async with self._lock:
            try:
                landmarker = await asyncio.to_thread(self._create_landmarker, backend)
            except Exception as exc:
                raise BackendActivationError(
                    f"Failed to activate {backend.value} backend: {exc}"
                ) from exc

            previous = self._landmarker
            self._landmarker = landmarker
            self._backend = backend
            if previous is not None:
                previous.close()

    async def estimate_hands(self, frame: np.ndarray) -> list[HandPrediction]:
        """Run one inference on a BGR frame.

        :param frame:
            BGR frame of shape ``(height, width, 3)``.
        :returns:
            Detected hands in estimator order; empty when no hand is visible.
        :raises RuntimeError:
            If called before :meth:`activate`.
        """
        async with self._lock:
            if self._landmarker is None:
                raise RuntimeError("Estimator has no active backend.")
            height, width = int(frame.shape[0]), int(frame.shape[1])
            rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb_frame)
            result = await asyncio.to_thread(
                self._landmarker.detect_for_video, image, self._next_timestamp_ms()
            )
        return self._to_predictions(result, width=width, height=height)

    def close(self) -> None:
        """Release the active landmarker."""
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            self._backend = None

    def _create_landmarker(self, backend: ComputeBackend) -> Any:
        vision = self._mp.tasks.vision
        delegate = self._mp.tasks.BaseOptions.Delegate
        base_options = self._mp.tasks.BaseOptions(
            model_asset_path=str(self._ensure_model()),
            delegate=delegate.GPU if backend == ComputeBackend.GPU else delegate.CPU,
        )
        options = vision.HandLandmarkerOptions(
            base_options=base_options,
            running_mode=vision.RunningMode.VIDEO,
            num_hands=self._config.num_hands,
            min_hand_detection_confidence=self._config.min_detection_confidence,
            min_hand_presence_confidence=self._config.min_presence_confidence,
            min_tracking_confidence=self._config.min_tracking_confidence,
        )
        return vision.HandLandmarker.create_from_options(options)

    def _ensure_model(self) -> Path:
        """Return a local model path, downloading the default model if needed."""
        if self._config.model_path:
            path = Path(self._config.model_path).expanduser().resolve()
            if not path.exists():
                raise FileNotFoundError(f"Model file not found at {path}.")
            return path

        model_dir = Path(self._config.cache_dir).expanduser()
        model_path = model_dir / "hand_landmarker.task"
        if model_path.exists():
            return model_path

        model_dir.mkdir(parents=True, exist_ok=True)
        tmp_path = model_path.with_suffix(".task.tmp")
        try:
            with urllib.request.urlopen(
                self._config.model_url, timeout=self._config.download_timeout_s
            ) as response:
                with open(tmp_path, "wb") as output_file:
                    shutil.copyfileobj(response, output_file)
            tmp_path.replace(model_path)
        except (urllib.error.URLError, TimeoutError, OSError) as exc:
            raise RuntimeError(
                "Failed to download the hand landmarker model. Download it manually from "
                f"{self._config.model_url} and pass its path as model_path."
            ) from exc
        return model_path

    def _next_timestamp_ms(self) -> int:
        now_ms = int(time.monotonic() * 1000)
        if now_ms <= self._last_timestamp_ms:
            now_ms = self._last_timestamp_ms + 1
        self._last_timestamp_ms = now_ms
        return now_ms

    @staticmethod
    def _to_predictions(result: Any, *, width: int, height: int) -> list[HandPrediction]:
        predictions: list[HandPrediction] = []
        if result is None or not result.hand_landmarks:
            return predictions

        handedness = result.handedness or []
        for i, hand_landmarks in enumerate(result.hand_landmarks):
            normalized = HandLandmarks(
                points=tuple(
                    (float(point.x), float(point.y), float(point.z)) for point in hand_landmarks
                )
            )
            label = None
            score = None
            if i < len(handedness) and handedness[i]:
                label = handedness[i][0].category_name
                score = float(handedness[i][0].score)
            predictions.append(
                HandPrediction(
                    landmarks=convert_landmarks_normalized_to_pixel(
                        normalized, width=width, height=height
                    ),
                    handedness=label,
                    score=score,
                )
            )
        return predictions

    def _import_mediapipe(self) -> ModuleType:
        try:
            module = importlib.import_module("mediapipe")
        except ModuleNotFoundError as exc:
            raise DependencyError(
                "mediapipe is not installed. Install with: pip install handpose-overlay[inference]"
            ) from exc

        return module
