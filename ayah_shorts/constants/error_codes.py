"""Error codes dictionary for the render API.

This is the single source of truth for all error codes, their retryability,
and the user-facing message shown in place of low-level diagnostics.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    user_message: str


# Error codes dictionary - single source of truth
ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Media errors
    # ==========================================================================
    "PROBE_FAILED": {
        "retryable": True,
        "user_message": "Could not read the media file. Please check the file and try again.",
    },
    "SOURCE_FILE_MISSING": {
        "retryable": False,
        "user_message": "A source file is missing. Please make sure the audio and video are downloaded.",
    },
    "INVALID_RENDER_REQUEST": {
        "retryable": False,
        "user_message": "The render request is incomplete. Please select at least one ayah.",
    },
    # ==========================================================================
    # Encoding errors (resubmit as a new job)
    # ==========================================================================
    "ENCODE_FAILED": {
        "retryable": True,
        "user_message": "Video processing failed. Please check your video file and try again.",
    },
    "ENCODE_TIMEOUT": {
        "retryable": True,
        "user_message": "Video processing took too long and was stopped. Try a shorter range or lower resolution.",
    },
    "ENCODE_CANCELLED": {
        "retryable": True,
        "user_message": "Video processing was cancelled.",
    },
    # ==========================================================================
    # Job errors
    # ==========================================================================
    "RENDER_JOB_NOT_FOUND": {
        "retryable": False,
        "user_message": "Render job not found.",
    },
    "INVALID_STATE_TRANSITION": {
        "retryable": False,
        "user_message": "The render job is not in a state that allows this action.",
    },
    "INTERNAL_ERROR": {
        "retryable": False,
        "user_message": "An unexpected error occurred.",
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with retryable flag and user message. Unknown codes
        resolve to the INTERNAL_ERROR spec.
    """
    return ERROR_CODES.get(code, ERROR_CODES["INTERNAL_ERROR"])


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    spec = get_error_spec(code)
    return spec.get("retryable", False)
