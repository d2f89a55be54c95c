from __future__ import annotations

import pytest

from handpose_overlay import FINGER_LOOKUP_INDICES, FingerName, HandLandmarks, JointName


def _sample_landmarks() -> HandLandmarks:
    return HandLandmarks(
        points=tuple((float(i), float(i) + 0.1, float(i) + 0.2) for i in range(21))
    )


def test_hand_landmarks_get_joint_by_enum_and_str() -> None:
    landmarks = _sample_landmarks()

    assert landmarks.get_joint(JointName.INDEX_FINGER_TIP) == (8.0, 8.1, 8.2)
    assert landmarks.get_joint("thumb_tip") == (4.0, 4.1, 4.2)
    assert len(landmarks) == 21


def test_hand_landmarks_get_finger() -> None:
    landmarks = _sample_landmarks()
    index_joints = landmarks.get_finger(FingerName.INDEX_FINGER)

    assert list(index_joints.keys()) == [
        JointName.INDEX_FINGER_MCP,
        JointName.INDEX_FINGER_PIP,
        JointName.INDEX_FINGER_DIP,
        JointName.INDEX_FINGER_TIP,
    ]
    assert index_joints[JointName.INDEX_FINGER_TIP] == (8.0, 8.1, 8.2)


def test_hand_landmarks_get_finger_by_string() -> None:
    pinky = _sample_landmarks().get_finger("pinky")

    assert pinky[JointName.PINKY_TIP] == (20.0, 20.1, 20.2)


def test_hand_landmarks_invalid_joint_and_finger() -> None:
    landmarks = _sample_landmarks()

    with pytest.raises(ValueError, match="Unknown joint name"):
        landmarks.get_joint("Nope")
    with pytest.raises(ValueError, match="Unknown finger name"):
        landmarks.get_finger("palm")


def test_finger_lookup_is_read_only() -> None:
    with pytest.raises(TypeError):
        FINGER_LOOKUP_INDICES[FingerName.THUMB] = (0,)  # type: ignore[index]
    assert all(indices[0] == 0 for indices in FINGER_LOOKUP_INDICES.values())


def test_landmarks_dict_conversion() -> None:
    landmarks = HandLandmarks(points=((1.0, 2.0, 3.0), (4.0, 5.0, 6.0)))

    assert landmarks.to_dict() == {"points": [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]}
    assert HandLandmarks.from_dict({"points": [[1, 2, 3], [4, 5, 6]]}) == landmarks
