"""Angle metric between tracked landmarks."""

from __future__ import annotations

import math

from handpose_overlay.constants import INDEX_FINGER_TIP, THUMB_TIP
from handpose_overlay.exceptions import NotComputableError
from handpose_overlay.models import HandLandmarks, Point3D


def vector_angle_degrees(a: Point3D, b: Point3D) -> float:
    """Return the angle between two origin-based vectors in degrees.

    The cosine ratio is clamped to ``[-1, 1]`` so nearly colinear vectors do
    not fail on floating-point overshoot.

    :param a:
        First vector ``(x, y, z)``.
    :param b:
        Second vector ``(x, y, z)``.
    :returns:
        Angle in ``[0, 180]`` degrees.
    :raises NotComputableError:
        If either vector has zero or non-finite magnitude.
    """
    norm_a = math.hypot(*a)
    norm_b = math.hypot(*b)
    if norm_a == 0.0 or norm_b == 0.0:
        raise NotComputableError("Angle is undefined for a zero-magnitude vector.")
    if not (math.isfinite(norm_a) and math.isfinite(norm_b)):
        raise NotComputableError(f"Vector magnitude is not finite: {norm_a!r}, {norm_b!r}")

    # Unit vectors first; the dot product stays within float range.
    ratio = sum((p / norm_a) * (q / norm_b) for p, q in zip(a, b, strict=True))
    ratio = max(-1.0, min(1.0, ratio))
    return math.degrees(math.acos(ratio))


def landmark_angle_degrees(
    landmarks: HandLandmarks,
    first: int = THUMB_TIP,
    second: int = INDEX_FINGER_TIP,
) -> float:
    """Return the angle between two landmarks seen from the coordinate origin.

    :param landmarks:
        Landmark set of one hand.
    :param first:
        Index of the first landmark, thumb tip by default.
    :param second:
        Index of the second landmark, index-finger tip by default.
    :returns:
        Angle in degrees.
    :raises NotComputableError:
        If the angle is undefined for the selected points.
    """
    return vector_angle_degrees(landmarks.points[first], landmarks.points[second])


def format_angle(angle: float) -> str:
    return f"Angle: {angle:.2f} deg"
