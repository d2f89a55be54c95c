"""Skeleton projection from a landmark set into 2D draw commands."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from handpose_overlay.constants import LANDMARK_COUNT
from handpose_overlay.exceptions import ConfigurationError, InvalidLandmarkSetError
from handpose_overlay.models import FINGER_LOOKUP_INDICES, FingerName, HandLandmarks

Point2D = tuple[float, float]


@dataclass(frozen=True, slots=True)
class SkeletonStyle:
    """Drawing style for the skeleton overlay.

    :param color:
        BGR color used for points and finger strokes.
    :param point_radius:
        Radius of the filled landmark circles in pixels.
    :param point_offset:
        Up-left shift applied to every circle centre in pixels.
    :param line_thickness:
        Stroke width of finger polylines in pixels.
    """

    color: tuple[int, int, int] = (0, 0, 255)
    point_radius: int = 3
    point_offset: float = 2.0
    line_thickness: int = 1

    def __post_init__(self) -> None:
        if self.point_radius <= 0:
            raise ConfigurationError("point_radius must be greater than 0.")
        if self.line_thickness <= 0:
            raise ConfigurationError("line_thickness must be greater than 0.")
        if any(channel < 0 or channel > 255 for channel in self.color):
            raise ConfigurationError("color channels must be in range [0, 255].")


@dataclass(frozen=True, slots=True)
class CircleCommand:
    """Filled circle drawn for one landmark."""

    index: int
    center: Point2D
    radius: int


@dataclass(frozen=True, slots=True)
class PolylineCommand:
    """Open polyline drawn for one finger."""

    finger: FingerName
    indices: tuple[int, ...]
    points: tuple[Point2D, ...]
    closed: bool = False


@dataclass(frozen=True, slots=True)
class SkeletonProjection:
    """Draw commands for one hand: one circle per landmark, one polyline per finger."""

    circles: tuple[CircleCommand, ...]
    polylines: tuple[PolylineCommand, ...]


class _Canvas(Protocol):
    """Protocol for surfaces that accept skeleton draw commands."""

    def draw_circle(self, center: Point2D, radius: int, color: tuple[int, int, int]) -> None: ...

    def draw_polyline(
        self,
        points: Sequence[Point2D],
        color: tuple[int, int, int],
        *,
        thickness: int,
        closed: bool,
    ) -> None: ...


def project_skeleton(
    landmarks: HandLandmarks,
    style: SkeletonStyle | None = None,
) -> SkeletonProjection:
    """Project one landmark set into skeleton draw commands.

    :param landmarks:
        Full landmark set of one hand.
    :param style:
        Optional style controlling circle radius and offset.
    :returns:
        Projection with ``LANDMARK_COUNT`` circles and one polyline per finger.
    :raises InvalidLandmarkSetError:
        If the landmark set does not contain exactly ``LANDMARK_COUNT`` points.
    """
    if len(landmarks.points) != LANDMARK_COUNT:
        raise InvalidLandmarkSetError(
            f"Landmark set must contain {LANDMARK_COUNT} points, got {len(landmarks.points)}"
        )

    style = style or SkeletonStyle()
    offset = style.point_offset
    circles = tuple(
        CircleCommand(index=index, center=(x - offset, y - offset), radius=style.point_radius)
        for index, (x, y, _) in enumerate(landmarks.points)
    )
    polylines = tuple(
        PolylineCommand(
            finger=finger,
            indices=indices,
            points=tuple((landmarks.points[i][0], landmarks.points[i][1]) for i in indices),
        )
        for finger, indices in FINGER_LOOKUP_INDICES.items()
    )
    return SkeletonProjection(circles=circles, polylines=polylines)


def draw_skeleton(
    canvas: _Canvas,
    projection: SkeletonProjection,
    style: SkeletonStyle | None = None,
) -> None:
    """Emit a skeleton projection onto a drawing surface."""
    style = style or SkeletonStyle()
    for circle in projection.circles:
        canvas.draw_circle(circle.center, circle.radius, style.color)
    for polyline in projection.polylines:
        canvas.draw_polyline(
            polyline.points,
            style.color,
            thickness=style.line_thickness,
            closed=polyline.closed,
        )
