"""
Error types for the fingerprint identification pipelines.

Every failure a pipeline can surface is one of the exceptions below.
Biometric outcomes (no match, ambiguous) are results, not errors, and
never appear here.

Hierarchy:
    FingerprintError
    ├── CaptureError              sensor-level failure
    ├── CodecError
    │   ├── InsufficientQualityError   scan lacks features (re-scan)
    │   └── MalformedTemplateError     structural / corrupt data
    ├── StoreError
    │   └── StoreUnavailableError      persistence I/O failure
    └── PipelineError             stage failure wrapping one of the above
"""

from enum import Enum
from typing import Optional


class FingerprintError(Exception):
    """Base class for all errors raised by this package."""


# =============================================================================
# CAPTURE
# =============================================================================


class CaptureFailure(Enum):
    """Reasons a sensor can fail to deliver a scan."""
    TIMEOUT = "timeout"
    NO_FINGER = "no_finger"
    RETRY = "retry"
    TOO_SHORT = "too_short"
    CENTER_FINGER = "center_finger"
    REMOVE_FINGER = "remove_finger"
    DEVICE = "device"

    @property
    def prompt(self) -> str:
        """Human-readable instruction for the person at the sensor."""
        return _CAPTURE_PROMPTS[self]


_CAPTURE_PROMPTS = {
    CaptureFailure.TIMEOUT: "Timed out waiting for a finger.",
    CaptureFailure.NO_FINGER: "No finger detected on the sensor.",
    CaptureFailure.RETRY: "Didn't quite catch that. Please try again.",
    CaptureFailure.TOO_SHORT: "Your swipe was too short, please try again.",
    CaptureFailure.CENTER_FINGER: "Please center your finger on the sensor and try again.",
    CaptureFailure.REMOVE_FINGER: "Please remove your finger and then try again.",
    CaptureFailure.DEVICE: "The sensor reported a device error.",
}


class CaptureError(FingerprintError):
    """
    Raised by a sensor when no usable scan could be captured.

    Attributes:
        reason: Why the capture failed
    """

    def __init__(self, reason: CaptureFailure, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or reason.prompt)


# =============================================================================
# CODEC
# =============================================================================


class CodecError(FingerprintError):
    """Base class for template encoding / decoding failures."""


class InsufficientQualityError(CodecError):
    """
    The scan is structurally valid but too poor to extract a template.

    Callers typically respond by asking for a new scan.
    """


class MalformedTemplateError(CodecError):
    """The input could not be parsed: corrupt blob or invalid raw scan."""


# =============================================================================
# STORE
# =============================================================================


class StoreError(FingerprintError):
    """Base class for template store failures."""


class StoreUnavailableError(StoreError):
    """The persistent store could not be read or written."""


# =============================================================================
# PIPELINES
# =============================================================================


class PipelineError(FingerprintError):
    """
    A pipeline stage failed and the whole invocation was aborted.

    Attributes:
        stage: Stage that failed (a ``fpident.pipelines.Stage`` member)
        cause: The underlying capture, codec or store error
    """

    def __init__(self, stage, cause: FingerprintError):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage.value} failed: {cause}")

    @property
    def retryable(self) -> bool:
        """True when a fresh scan may succeed (capture or quality failures)."""
        return isinstance(self.cause, (CaptureError, InsufficientQualityError))
