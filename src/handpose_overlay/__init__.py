"""Public API surface for the hand pose overlay."""

from handpose_overlay.__about__ import __version__
from handpose_overlay.app import KeyboardControlPanel, OverlayConfig, run_overlay
from handpose_overlay.backend import BackendSwitchController
from handpose_overlay.camera import OpenCVVideoSource, OpenCVVideoSourceConfig
from handpose_overlay.convert import (
    convert_landmarks_normalized_to_pixel,
    convert_landmarks_to_point_cloud,
    negate_position,
    normalized_to_pixel_position,
)
from handpose_overlay.display import OpenCVDisplaySurface, OverlayReadout, format_frame_rate
from handpose_overlay.exceptions import (
    AcquisitionError,
    BackendActivationError,
    ConfigurationError,
    DependencyError,
    HandposeOverlayError,
    InvalidLandmarkSetError,
    NotComputableError,
)
from handpose_overlay.geometry import format_angle, landmark_angle_degrees, vector_angle_degrees
from handpose_overlay.inference import (
    BackendActivator,
    HandPoseEstimator,
    MediaPipeEstimatorConfig,
    MediaPipeHandEstimator,
)
from handpose_overlay.models import (
    FINGER_LOOKUP_INDICES,
    ComputeBackend,
    FingerName,
    HandLandmarks,
    HandPrediction,
    JointName,
)
from handpose_overlay.pointcloud import (
    PointCloudDataset,
    PointCloudProjector,
    PointCloudWidget,
    build_anchor_points,
    build_point_cloud_dataset,
    finger_sequences,
)
from handpose_overlay.render_loop import (
    LogEventKind,
    RenderLogEvent,
    RenderLoop,
    RenderLoopConfig,
    RenderStats,
)
from handpose_overlay.scheduling import AsyncioFrameHandle, AsyncioFrameScheduler, FrameScheduler
from handpose_overlay.session import LoopState, RenderSession
from handpose_overlay.skeleton import (
    CircleCommand,
    PolylineCommand,
    SkeletonProjection,
    SkeletonStyle,
    draw_skeleton,
    project_skeleton,
)
from handpose_overlay.visualization import RerunPointCloudWidget, RerunWidgetConfig

__all__ = [
    "FINGER_LOOKUP_INDICES",
    "AcquisitionError",
    "AsyncioFrameHandle",
    "AsyncioFrameScheduler",
    "BackendActivationError",
    "BackendActivator",
    "BackendSwitchController",
    "CircleCommand",
    "ComputeBackend",
    "ConfigurationError",
    "DependencyError",
    "FingerName",
    "FrameScheduler",
    "HandLandmarks",
    "HandPoseEstimator",
    "HandPrediction",
    "HandposeOverlayError",
    "InvalidLandmarkSetError",
    "JointName",
    "KeyboardControlPanel",
    "LogEventKind",
    "LoopState",
    "MediaPipeEstimatorConfig",
    "MediaPipeHandEstimator",
    "NotComputableError",
    "OpenCVDisplaySurface",
    "OpenCVVideoSource",
    "OpenCVVideoSourceConfig",
    "OverlayConfig",
    "OverlayReadout",
    "PointCloudDataset",
    "PointCloudProjector",
    "PointCloudWidget",
    "PolylineCommand",
    "RenderLogEvent",
    "RenderLoop",
    "RenderLoopConfig",
    "RenderSession",
    "RenderStats",
    "RerunPointCloudWidget",
    "RerunWidgetConfig",
    "SkeletonProjection",
    "SkeletonStyle",
    "__version__",
    "build_anchor_points",
    "build_point_cloud_dataset",
    "convert_landmarks_normalized_to_pixel",
    "convert_landmarks_to_point_cloud",
    "draw_skeleton",
    "finger_sequences",
    "format_angle",
    "format_frame_rate",
    "landmark_angle_degrees",
    "negate_position",
    "normalized_to_pixel_position",
    "project_skeleton",
    "run_overlay",
    "vector_angle_degrees",
]
