import tempfile
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "SlideReel Render API"
    app_version: str = "0.1.0"
    git_hash: str = "unknown"  # Set via GIT_HASH env var at build time
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    # Matches the 20mb JSON body limit of the previous Node service
    max_request_body_bytes: int = 20 * 1024 * 1024

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    font_path: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"

    # Render defaults
    render_default_width: int = 1920
    render_default_height: int = 1080
    render_default_fps: int = 30
    render_preset: str = "veryfast"

    # Slide normalization
    slide_min_duration_s: float = 4
    slide_max_duration_s: float = 15
    slide_default_duration_s: float = 8
    caption_max_chars: int = 250

    # Timeouts (seconds). None = wait for the engine indefinitely.
    fetch_timeout_s: float = 30.0
    encode_timeout_s: float | None = None
    concat_timeout_s: float | None = None

    # Concurrency
    # Number of render jobs allowed to run at once; later requests wait for a slot
    render_max_concurrent_jobs: int = 2
    # Per-job clip encodes in flight. 1 = strictly sequential in slide order
    render_clip_concurrency: int = 1

    # Workspace / streaming
    workspace_root: str = tempfile.gettempdir()
    stream_chunk_size: int = 64 * 1024
    # ffprobe the joined file and log its duration
    probe_output: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
