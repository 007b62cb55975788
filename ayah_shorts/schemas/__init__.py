from ayah_shorts.schemas.render import (
    CancelResponse,
    CaptionConfig,
    CaptionSegmentText,
    RenderJobResponse,
    RenderRequest,
)

__all__ = [
    "CaptionSegmentText",
    "CaptionConfig",
    "RenderRequest",
    "RenderJobResponse",
    "CancelResponse",
]
