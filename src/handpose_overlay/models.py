"""Typed hand landmark models shared by the overlay pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from handpose_overlay.constants import LANDMARK_NAMES

Point3D = tuple[float, float, float]


class ComputeBackend(StrEnum):
    """Compute backend used by the inference collaborator."""

    CPU = "cpu"
    GPU = "gpu"


class JointName(StrEnum):
    """Canonical landmark names matching hand landmark order."""

    WRIST = "wrist"
    THUMB_CMC = "thumb_cmc"
    THUMB_MCP = "thumb_mcp"
    THUMB_IP = "thumb_ip"
    THUMB_TIP = "thumb_tip"
    INDEX_FINGER_MCP = "index_finger_mcp"
    INDEX_FINGER_PIP = "index_finger_pip"
    INDEX_FINGER_DIP = "index_finger_dip"
    INDEX_FINGER_TIP = "index_finger_tip"
    MIDDLE_FINGER_MCP = "middle_finger_mcp"
    MIDDLE_FINGER_PIP = "middle_finger_pip"
    MIDDLE_FINGER_DIP = "middle_finger_dip"
    MIDDLE_FINGER_TIP = "middle_finger_tip"
    RING_FINGER_MCP = "ring_finger_mcp"
    RING_FINGER_PIP = "ring_finger_pip"
    RING_FINGER_DIP = "ring_finger_dip"
    RING_FINGER_TIP = "ring_finger_tip"
    PINKY_MCP = "pinky_mcp"
    PINKY_PIP = "pinky_pip"
    PINKY_DIP = "pinky_dip"
    PINKY_TIP = "pinky_tip"


class FingerName(StrEnum):
    """The five fingers drawn as polylines."""

    THUMB = "thumb"
    INDEX_FINGER = "indexFinger"
    MIDDLE_FINGER = "middleFinger"
    RING_FINGER = "ringFinger"
    PINKY = "pinky"


FINGER_LOOKUP_INDICES: Mapping[FingerName, tuple[int, ...]] = MappingProxyType(
    {
        FingerName.THUMB: (0, 1, 2, 3, 4),
        FingerName.INDEX_FINGER: (0, 5, 6, 7, 8),
        FingerName.MIDDLE_FINGER: (0, 9, 10, 11, 12),
        FingerName.RING_FINGER: (0, 13, 14, 15, 16),
        FingerName.PINKY: (0, 17, 18, 19, 20),
    }
)
"""Landmark indices of each finger polyline, always starting at the wrist."""

_JOINT_INDEX_BY_NAME: dict[str, int] = {name: index for index, name in enumerate(LANDMARK_NAMES)}


@dataclass(frozen=True, slots=True)
class HandLandmarks:
    """Ordered hand landmarks as ``(x, y, z)`` points in pixel/model space."""

    points: tuple[Point3D, ...]

    def __len__(self) -> int:
        return len(self.points)

    def get_joint(self, joint: JointName | str) -> Point3D:
        """Return one landmark point by name.

        :param joint:
            Joint to query, either as :class:`JointName` or its string value
            (for example ``"index_finger_tip"``).
        :returns:
            Landmark ``(x, y, z)`` tuple.
        :raises ValueError:
            If the joint name is unknown.
        """
        joint_name = joint.value if isinstance(joint, JointName) else joint
        index = _JOINT_INDEX_BY_NAME.get(joint_name)
        if index is None:
            raise ValueError(f"Unknown joint name: {joint_name!r}")
        return self.points[index]

    def get_finger(self, finger: FingerName | str) -> dict[JointName, Point3D]:
        """Return the joints of one finger, excluding the shared wrist.

        :param finger:
            Finger to query, as :class:`FingerName` or its string value.
        :returns:
            Dictionary mapping :class:`JointName` to points, base to tip.
        :raises ValueError:
            If the finger name is unknown.
        """
        try:
            finger_name = FingerName(finger)
        except ValueError as exc:
            raise ValueError(f"Unknown finger name: {finger!r}") from exc

        joints = list(JointName)
        return {
            joints[index]: self.points[index] for index in FINGER_LOOKUP_INDICES[finger_name][1:]
        }

    def to_dict(self) -> dict[str, list[list[float]]]:
        """Serialize landmarks into a mapping-friendly dictionary."""
        return {"points": [[x, y, z] for x, y, z in self.points]}

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> HandLandmarks:
        """Build :class:`HandLandmarks` from serialized mapping data.

        :param values:
            Mapping containing ``points`` as nested coordinate lists.
        :returns:
            Parsed landmarks preserving point order.
        """
        return cls.from_sequence(values["points"])

    @classmethod
    def from_sequence(cls, raw_points: Any) -> HandLandmarks:
        """Build :class:`HandLandmarks` from any iterable of 3-element points."""
        return cls(
            points=tuple(
                (float(point[0]), float(point[1]), float(point[2])) for point in raw_points
            )
        )


@dataclass(frozen=True, slots=True)
class HandPrediction:
    """One hand result returned by the inference collaborator.

    :param landmarks:
        Landmark set for the detected hand.
    :param handedness:
        Optional handedness label reported by the estimator.
    :param score:
        Optional detection confidence in ``[0, 1]``.
    """

    landmarks: HandLandmarks
    handedness: str | None = None
    score: float | None = None
