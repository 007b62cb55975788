import json
from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Ayah Shorts Render API"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: str = "INFO"

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "http://localhost:5173,http://localhost:3000"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from pipe/comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        if "|" in v:
            return [origin.strip() for origin in v.split("|") if origin.strip()]
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    probe_timeout_s: float = 30.0

    # Duration used for an ayah whose probe fails or returns garbage
    probe_fallback_seconds: float = 5.0

    # Encode presets (veryfast + crf 28: fast, perceptually acceptable for shorts)
    render_video_codec: str = "libx264"
    render_crf: int = 28
    render_preset: str = "veryfast"
    render_pix_fmt: str = "yuv420p"
    render_audio_codec: str = "aac"
    render_audio_bitrate: str = "128k"

    # Executor
    # Watchdog for a single encode, in seconds. 0 = no watchdog.
    render_timeout_s: float = 1800.0
    # Trailing characters of ffmpeg stderr kept on failure
    render_error_tail_chars: int = 500
    # Max stderr lines buffered while ffmpeg runs
    render_stderr_max_lines: int = 200

    # Paths
    render_output_dir: str = "/tmp/ayah-shorts/output"
    render_work_dir: str = "/tmp/ayah-shorts/work"

    # Caption defaults
    caption_font_size: int = 48
    caption_secondary_font_size: int = 24


@lru_cache
def get_settings() -> Settings:
    return Settings()
