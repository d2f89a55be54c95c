"""Coordinate conversion utilities for hand landmarks."""

from __future__ import annotations

from handpose_overlay.models import HandLandmarks, Point3D


def normalized_to_pixel_position(
    x: float,
    y: float,
    z: float,
    *,
    width: int,
    height: int,
) -> Point3D:
    """Scale one normalized landmark into pixel space.

    Estimators report ``x`` and ``y`` in ``[0, 1]`` relative to the image and
    ``z`` on roughly the same scale as ``x``, so depth is scaled by width.

    :param x:
        Normalized horizontal position.
    :param y:
        Normalized vertical position.
    :param z:
        Normalized depth relative to the wrist.
    :param width:
        Image width in pixels.
    :param height:
        Image height in pixels.
    :returns:
        ``(x, y, z)`` in pixel units.
    """
    return (x * width, y * height, z * width)


def convert_landmarks_normalized_to_pixel(
    landmarks: HandLandmarks,
    *,
    width: int,
    height: int,
) -> HandLandmarks:
    """Convert a normalized landmark set into pixel space.

    :param landmarks:
        Landmark set in normalized coordinates.
    :param width:
        Image width in pixels.
    :param height:
        Image height in pixels.
    :returns:
        Converted landmark set preserving point order.
    """
    converted = tuple(
        normalized_to_pixel_position(x, y, z, width=width, height=height)
        for x, y, z in landmarks.points
    )
    return HandLandmarks(points=converted)


def negate_position(x: float, y: float, z: float) -> Point3D:
    """Flip all three axes of one point.

    The point-cloud viewer uses the opposite orientation of image space on
    every axis.
    """
    return (-x, -y, -z)


def convert_landmarks_to_point_cloud(landmarks: HandLandmarks) -> tuple[Point3D, ...]:
    """Return landmark points in point-cloud orientation, preserving order."""
    return tuple(negate_position(x, y, z) for x, y, z in landmarks.points)
