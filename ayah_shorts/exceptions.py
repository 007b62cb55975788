"""Custom exceptions for the ayah-shorts render core.

Every error carries a machine-readable code (see constants/error_codes.py),
an HTTP status for the API layer, and a user-facing message looked up from
the error code dictionary.
"""

from typing import Any

from ayah_shorts.constants.error_codes import get_error_spec


class AyahShortsError(Exception):
    """Base exception for all ayah-shorts errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        """Friendly text for end users, falling back to the raw message."""
        return get_error_spec(self.code).get("user_message") or self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        spec = get_error_spec(self.code)
        return {
            "code": self.code,
            "message": self.message,
            "retryable": spec.get("retryable", False),
            "user_message": self.user_message,
        }


# =============================================================================
# Media / input errors
# =============================================================================


class ProbeFailureError(AyahShortsError):
    """ffprobe could not produce a usable value.

    Duration probing absorbs this via the fallback duration; it only escapes
    the strict helpers in utils/media_info.py.
    """

    code = "PROBE_FAILED"
    status_code = 422
    message = "Media probe failed"

    def __init__(self, path: str | None = None, reason: str | None = None):
        self.path = path
        self.reason = reason
        msg = self.message
        if path:
            msg = f"Media probe failed for {path}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class MissingSourceFileError(AyahShortsError):
    """A source audio/video file does not exist on disk."""

    code = "SOURCE_FILE_MISSING"
    status_code = 422
    message = "Source file not found"

    def __init__(self, path: str | None = None):
        self.path = path
        message = f"Source file not found: {path}" if path else self.message
        super().__init__(message)


class InvalidRenderRequestError(AyahShortsError):
    """The render inputs cannot produce a plan."""

    code = "INVALID_RENDER_REQUEST"
    status_code = 422
    message = "Invalid render request"


# =============================================================================
# Encoding errors
# =============================================================================


class EncodeFailureError(AyahShortsError):
    """ffmpeg exited unsuccessfully.

    ``diagnostic_tail`` holds the trailing window of ffmpeg's stderr, already
    truncated by the executor.
    """

    code = "ENCODE_FAILED"
    status_code = 500
    message = "Encoding failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        exit_code: int | None = None,
        diagnostic_tail: str = "",
    ):
        self.exit_code = exit_code
        self.diagnostic_tail = diagnostic_tail
        msg = message or self.message
        if exit_code is not None:
            msg = f"{msg} (exit {exit_code})"
        if diagnostic_tail:
            msg = f"{msg}: {diagnostic_tail}"
        super().__init__(msg)


class EncodeTimeoutError(EncodeFailureError):
    """The encode watchdog expired and ffmpeg was killed."""

    code = "ENCODE_TIMEOUT"
    message = "Encoding timed out"

    def __init__(self, timeout_s: float, diagnostic_tail: str = ""):
        self.timeout_s = timeout_s
        super().__init__(f"Encoding timed out after {timeout_s:g}s", diagnostic_tail=diagnostic_tail)


class EncodeCancelledError(EncodeFailureError):
    """The caller abandoned the encode; ffmpeg was killed."""

    code = "ENCODE_CANCELLED"
    message = "Encoding cancelled"


# =============================================================================
# Job errors
# =============================================================================


class RenderJobNotFoundError(AyahShortsError):
    """Render job id is not in the registry."""

    code = "RENDER_JOB_NOT_FOUND"
    status_code = 404
    message = "Render job not found"

    def __init__(self, job_id: str | None = None):
        self.job_id = job_id
        message = f"Render job not found: {job_id}" if job_id else self.message
        super().__init__(message)


class InvalidStateTransitionError(AyahShortsError):
    """Requested job status change is not in the transition table."""

    code = "INVALID_STATE_TRANSITION"
    status_code = 409
    message = "Invalid job status transition"

    def __init__(self, job_id: str, current: str, requested: str):
        self.job_id = job_id
        self.current = current
        self.requested = requested
        super().__init__(f"Invalid status transition for job {job_id}: {current} -> {requested}")
