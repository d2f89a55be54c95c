"""OpenCV-backed video source for the overlay."""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from handpose_overlay.constants import DEFAULT_VIDEO_HEIGHT, DEFAULT_VIDEO_WIDTH
from handpose_overlay.exceptions import AcquisitionError, ConfigurationError


@dataclass(frozen=True, slots=True)
class OpenCVVideoSourceConfig:
    """Configuration for :class:`OpenCVVideoSource`.

    :param camera_index:
        Index of the capture device.
    :param requested_width:
        Width requested from the driver. Drivers may ignore it, so the native
        width is read back after opening.
    :param requested_height:
        Height requested from the driver.
    :param warmup_reads:
        Number of read attempts used to confirm the device delivers frames.
    """

    camera_index: int = 0
    requested_width: int = DEFAULT_VIDEO_WIDTH
    requested_height: int = DEFAULT_VIDEO_HEIGHT
    warmup_reads: int = 5

    def __post_init__(self) -> None:
        if self.camera_index < 0:
            raise ConfigurationError("camera_index must be non-negative.")
        if self.requested_width <= 0 or self.requested_height <= 0:
            raise ConfigurationError("requested_width and requested_height must be positive.")
        if self.warmup_reads <= 0:
            raise ConfigurationError("warmup_reads must be greater than 0.")


class OpenCVVideoSource:
    """Read BGR frames from a local camera with OpenCV."""

    def __init__(self, config: OpenCVVideoSourceConfig | None = None) -> None:
        """Create a video source.

        :param config:
            Optional source configuration. Defaults to :class:`OpenCVVideoSourceConfig`.
        """
        self._config = config or OpenCVVideoSourceConfig()
        self._capture: cv2.VideoCapture | None = None
        self._width = 0
        self._height = 0

    @property
    def width(self) -> int:
        """Return the native frame width reported by the device."""
        return self._width

    @property
    def height(self) -> int:
        """Return the native frame height reported by the device."""
        return self._height

    def open(self) -> None:
        """Open the capture device and read back its native size.

        :raises RuntimeError:
            If called while already open.
        :raises AcquisitionError:
            If the device cannot be opened or delivers no frames.
        """
        if self._capture is not None:
            raise RuntimeError("Video source is already open.")

        capture = cv2.VideoCapture(self._config.camera_index)
        capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self._config.requested_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self._config.requested_height)
        if not capture.isOpened():
            capture.release()
            raise AcquisitionError(f"Camera {self._config.camera_index} could not be opened.")

        frame = None
        for _ in range(self._config.warmup_reads):
            ok, candidate = capture.read()
            if ok and candidate is not None:
                frame = candidate
                break
        if frame is None:
            capture.release()
            raise AcquisitionError(
                f"Camera {self._config.camera_index} opened but delivered no frames."
            )

        self._height, self._width = int(frame.shape[0]), int(frame.shape[1])
        self._capture = capture

    def close(self) -> None:
        """Release the capture device if open."""
        if self._capture is not None:
            self._capture.release()
            self._capture = None

    def __enter__(self) -> OpenCVVideoSource:
        """Open source when entering context manager."""
        self.open()
        return self

    def __exit__(self, *_: object) -> None:
        """Close source when leaving context manager."""
        self.close()

    def read_frame(self) -> np.ndarray | None:
        """Return the current frame, or ``None`` when the device has no new frame.

        :raises AcquisitionError:
            If the source is not open.
        """
        if self._capture is None:
            raise AcquisitionError("Video source is not open.")
        ok, frame = self._capture.read()
        if not ok:
            return None
        return frame
