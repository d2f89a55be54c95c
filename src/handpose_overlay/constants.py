LANDMARK_COUNT = 21

THUMB_TIP = 4
INDEX_FINGER_TIP = 8

DEFAULT_VIDEO_WIDTH = 640
DEFAULT_VIDEO_HEIGHT = 500

HAND_POINT_COLOR = "steelblue"
ANCHOR_POINT_COLOR = "white"

ANGLE_SENTINEL_TEXT = "Angle: --"

LANDMARK_NAMES: tuple[str, ...] = (
    "wrist",
    "thumb_cmc",
    "thumb_mcp",
    "thumb_ip",
    "thumb_tip",
    "index_finger_mcp",
    "index_finger_pip",
    "index_finger_dip",
    "index_finger_tip",
    "middle_finger_mcp",
    "middle_finger_pip",
    "middle_finger_dip",
    "middle_finger_tip",
    "ring_finger_mcp",
    "ring_finger_pip",
    "ring_finger_dip",
    "ring_finger_tip",
    "pinky_mcp",
    "pinky_pip",
    "pinky_dip",
    "pinky_tip",
)
