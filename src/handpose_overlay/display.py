"""OpenCV display surface and text readout for the overlay."""

from __future__ import annotations

from collections.abc import Sequence

import cv2
import numpy as np

from handpose_overlay.constants import ANGLE_SENTINEL_TEXT
from handpose_overlay.exceptions import ConfigurationError


def format_frame_rate(fps: float) -> str:
    return f"FPS: {fps:.1f}"


class OverlayReadout:
    """Text sink holding the latest readout line drawn over the video.

    An optional status line, such as the frame rate, is drawn below it.
    """

    def __init__(
        self,
        initial_text: str = ANGLE_SENTINEL_TEXT,
        *,
        origin: tuple[int, int] = (10, 30),
        color: tuple[int, int, int] = (255, 255, 255),
        font_scale: float = 0.8,
    ) -> None:
        self.text = initial_text
        self.status: str | None = None
        self._origin = origin
        self._color = color
        self._font_scale = font_scale

    def show(self, text: str) -> None:
        """Replace the readout text."""
        self.text = text

    def show_status(self, text: str | None) -> None:
        """Replace the status line; ``None`` hides it."""
        self.status = text

    def draw(self, image: np.ndarray) -> None:
        """Draw the readout onto ``image`` with a dark outline for contrast."""
        self._draw_line(image, self.text, self._origin)
        if self.status is not None:
            x, y = self._origin
            (_, text_height), baseline = cv2.getTextSize(
                self.text, cv2.FONT_HERSHEY_SIMPLEX, self._font_scale, 2
            )
            self._draw_line(image, self.status, (x, y + text_height + baseline + 8))

    def _draw_line(self, image: np.ndarray, text: str, origin: tuple[int, int]) -> None:
        for color, thickness in (((0, 0, 0), 4), (self._color, 2)):
            cv2.putText(
                image,
                text,
                origin,
                cv2.FONT_HERSHEY_SIMPLEX,
                self._font_scale,
                color,
                thickness,
                cv2.LINE_AA,
            )


class OpenCVDisplaySurface:
    """2D drawing surface mirrored horizontally on presentation.

    Drawing happens in unmirrored image coordinates, so landmark positions can
    be used as-is. :meth:`snapshot` and :meth:`present` flip the canvas along
    the horizontal axis to match a mirror-like camera preview, then draw the
    readout so its text stays legible.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        window_name: str | None = "handpose-overlay",
        readout: OverlayReadout | None = None,
    ) -> None:
        """Create a display surface.

        :param width:
            Surface width in pixels, usually the native video width.
        :param height:
            Surface height in pixels, usually the native video height.
        :param window_name:
            OpenCV window used by :meth:`present`. ``None`` disables on-screen
            output, which keeps the surface usable headless.
        :param readout:
            Optional readout drawn over the mirrored image.
        :raises ConfigurationError:
            If width or height is not positive.
        """
        if width <= 0 or height <= 0:
            raise ConfigurationError("Display width and height must be greater than 0.")
        self._width = width
        self._height = height
        self._window_name = window_name
        self._readout = readout
        self._canvas = np.zeros((height, width, 3), dtype=np.uint8)
        self._window_shown = False

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def draw_video(self, frame: np.ndarray) -> None:
        """Draw a video frame scaled to the surface dimensions.

        :param frame:
            BGR frame of any size; it is resized, not cropped.
        """
        if frame.shape[1] == self._width and frame.shape[0] == self._height:
            self._canvas = frame.copy()
            return
        self._canvas = cv2.resize(
            frame, (self._width, self._height), interpolation=cv2.INTER_LINEAR
        )

    def draw_circle(
        self,
        center: tuple[float, float],
        radius: int,
        color: tuple[int, int, int],
    ) -> None:
        """Draw one filled circle."""
        cv2.circle(
            self._canvas,
            (round(center[0]), round(center[1])),
            radius,
            color,
            -1,
            cv2.LINE_AA,
        )

    def draw_polyline(
        self,
        points: Sequence[tuple[float, float]],
        color: tuple[int, int, int],
        *,
        thickness: int = 1,
        closed: bool = False,
    ) -> None:
        """Draw one connected polyline through ``points``."""
        if len(points) < 2:
            return
        vertices = np.array(
            [(round(x), round(y)) for x, y in points], dtype=np.int32
        ).reshape(-1, 1, 2)
        cv2.polylines(self._canvas, [vertices], closed, color, thickness, cv2.LINE_AA)

    def snapshot(self) -> np.ndarray:
        """Return the mirrored image including the readout."""
        image = cv2.flip(self._canvas, 1)
        if self._readout is not None:
            self._readout.draw(image)
        return image

    def present(self) -> None:
        """Show the mirrored image in the configured window, if any."""
        if self._window_name is None:
            return
        cv2.imshow(self._window_name, self.snapshot())
        self._window_shown = True

    def close(self) -> None:
        """Destroy the window created by :meth:`present`."""
        if self._window_name is not None and self._window_shown:
            cv2.destroyWindow(self._window_name)
            self._window_shown = False
