from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from ayah_shorts.render.style import CaptionColor, CaptionPosition


class CaptionSegmentText(BaseModel):
    primary: str = ""  # Arabic verse text
    secondary: str | None = None  # translation


class CaptionConfig(BaseModel):
    enabled: bool = False
    segments: list[CaptionSegmentText] = Field(default_factory=list)
    color: CaptionColor = CaptionColor.WHITE
    position: CaptionPosition = CaptionPosition.BOTTOM
    font_size: int | None = Field(default=None, ge=24, le=72)  # default: settings.caption_font_size
    show_secondary: bool = False
    secondary_font_size: int | None = Field(default=None, ge=12, le=36)


class RenderRequest(BaseModel):
    audio_paths: list[str] = Field(min_length=1)  # ayah order
    video_path: str
    aspect_ratio: Literal["9:16", "1:1", "4:5", "16:9"] = "9:16"
    resolution: Literal["low", "high"] = "low"
    captions: CaptionConfig | None = None
    output_path: str | None = None

    # Provenance, used for the output file name
    surah_number: int | None = Field(default=None, ge=1, le=114)
    ayah_start: int | None = Field(default=None, ge=1)
    ayah_end: int | None = Field(default=None, ge=1)
    reciter_id: str | None = None

    @model_validator(mode="after")
    def check_caption_segments(self) -> "RenderRequest":
        captions = self.captions
        if captions and captions.enabled and captions.segments:
            if len(captions.segments) != len(self.audio_paths):
                raise ValueError(
                    f"captions.segments has {len(captions.segments)} entries "
                    f"but there are {len(self.audio_paths)} audio paths"
                )
        if self.ayah_start is not None and self.ayah_end is not None and self.ayah_end < self.ayah_start:
            raise ValueError("ayah_end must not be before ayah_start")
        return self

    @property
    def has_provenance(self) -> bool:
        return None not in (self.surah_number, self.ayah_start, self.ayah_end, self.reciter_id)


class RenderJobResponse(BaseModel):
    id: str
    status: str
    progress: int
    output_file_path: str | None
    error_message: str | None
    error_code: str | None
    user_message: str | None
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None
    processing_time_ms: int | None
    processing_time: str | None


class CancelResponse(BaseModel):
    cancelled: bool
