"""Point-cloud dataset projection for a 3D scatter widget."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from handpose_overlay.constants import (
    ANCHOR_POINT_COLOR,
    DEFAULT_VIDEO_HEIGHT,
    DEFAULT_VIDEO_WIDTH,
    HAND_POINT_COLOR,
)
from handpose_overlay.convert import convert_landmarks_to_point_cloud
from handpose_overlay.exceptions import ConfigurationError
from handpose_overlay.models import FINGER_LOOKUP_INDICES, HandLandmarks, Point3D
from handpose_overlay.session import RenderSession

PointColorer = Callable[[int], str]


@dataclass(frozen=True, slots=True)
class PointCloudDataset:
    """Ordered widget dataset: hand points first, anchor points last.

    :param points:
        All dataset points.
    :param hand_point_count:
        Number of leading points that belong to the hand.
    """

    points: tuple[Point3D, ...]
    hand_point_count: int

    @property
    def anchor_points(self) -> tuple[Point3D, ...]:
        return self.points[self.hand_point_count :]


class PointCloudWidget(Protocol):
    """Update contract of the external 3D point-cloud widget."""

    def render(self, dataset: PointCloudDataset) -> None: ...

    def set_sequences(self, sequences: Sequence[tuple[int, ...]]) -> None: ...

    def set_point_colorer(self, colorer: PointColorer) -> None: ...

    def update_dataset(self, dataset: PointCloudDataset) -> None: ...


def build_anchor_points(
    width: int = DEFAULT_VIDEO_WIDTH,
    height: int = DEFAULT_VIDEO_HEIGHT,
) -> tuple[Point3D, ...]:
    """Return the four corners of the video-sized volume in point-cloud orientation.

    Anchors keep the widget's auto-scaling stable while the hand moves.

    :param width:
        Video width in pixels.
    :param height:
        Video height in pixels.
    :returns:
        Four anchor points.
    :raises ConfigurationError:
        If width or height is not positive.
    """
    if width <= 0 or height <= 0:
        raise ConfigurationError("Anchor volume width and height must be greater than 0.")
    w = float(width)
    h = float(height)
    return ((0.0, 0.0, 0.0), (0.0, -h, 0.0), (-w, 0.0, 0.0), (-w, -h, 0.0))


def build_point_cloud_dataset(
    landmarks: HandLandmarks,
    anchors: Sequence[Point3D],
) -> PointCloudDataset:
    """Negate hand points and append the unmodified anchors.

    :param landmarks:
        Landmark set of one hand, any length.
    :param anchors:
        Anchor points appended after the hand points.
    :returns:
        Dataset of ``len(landmarks) + len(anchors)`` points.
    """
    hand_points = convert_landmarks_to_point_cloud(landmarks)
    return PointCloudDataset(
        points=hand_points + tuple(anchors),
        hand_point_count=len(hand_points),
    )


def finger_sequences() -> tuple[tuple[int, ...], ...]:
    """Return the finger connectivity registered with the widget."""
    return tuple(FINGER_LOOKUP_INDICES.values())


class PointCloudProjector:
    """Feed landmark sets into a point-cloud widget.

    The first update performs a full render and the one-time connectivity and
    colorer registration; later updates only push new datasets. The
    initialization flag lives on the session so it persists across restarts of
    the render loop.
    """

    def __init__(
        self,
        widget: PointCloudWidget,
        session: RenderSession,
        anchors: Sequence[Point3D] | None = None,
    ) -> None:
        """Create a point-cloud projector.

        :param widget:
            Point-cloud widget receiving datasets.
        :param session:
            Session holding the widget initialization flag.
        :param anchors:
            Optional anchor points. Defaults to :func:`build_anchor_points`.
        """
        self._widget = widget
        self._session = session
        self._anchors = tuple(anchors) if anchors is not None else build_anchor_points()

    @property
    def anchors(self) -> tuple[Point3D, ...]:
        return self._anchors

    def update(self, landmarks: HandLandmarks) -> PointCloudDataset:
        """Project one landmark set and push it to the widget.

        :param landmarks:
            Landmark set of the first detected hand.
        :returns:
            Dataset pushed to the widget.
        """
        dataset = build_point_cloud_dataset(landmarks, self._anchors)
        if self._session.point_cloud_initialized:
            self._widget.update_dataset(dataset)
            return dataset

        hand_point_count = dataset.hand_point_count

        def _colorer(index: int) -> str:
            if index < hand_point_count:
                return HAND_POINT_COLOR
            return ANCHOR_POINT_COLOR

        self._widget.render(dataset)
        self._widget.set_sequences(finger_sequences())
        self._widget.set_point_colorer(_colorer)
        self._session.point_cloud_initialized = True
        return dataset
