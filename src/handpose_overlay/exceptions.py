"""Custom exception hierarchy for overlay setup and per-frame errors."""

class HandposeOverlayError(Exception):
    """Base exception for overlay errors."""


class ConfigurationError(HandposeOverlayError):
    """Raised when a configuration value is invalid for runtime operation."""


class DependencyError(HandposeOverlayError):
    """Raised when an optional third-party dependency is not installed."""


class AcquisitionError(HandposeOverlayError):
    """Raised when the video source cannot be opened at startup."""


class InvalidLandmarkSetError(HandposeOverlayError):
    """Raised when an inference result does not have the fixed hand topology."""


class NotComputableError(HandposeOverlayError):
    """Raised when the angle metric is undefined for degenerate geometry."""


class BackendActivationError(HandposeOverlayError):
    """Raised when the selected compute backend fails to initialize."""
