"""Wire schemas for the render API."""

from pydantic import BaseModel, ConfigDict, Field


class SlideIn(BaseModel):
    """One slide as sent by the caller.

    camelCase is the wire format; snake_case is accepted too.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "imageUrl": "https://example.com/slide-1.jpg",
                    "text": "Welcome",
                    "durationSec": 6,
                }
            ]
        },
    )

    image_url: str = Field(..., alias="imageUrl", min_length=1, description="Source image URL")
    text: str | None = Field(None, description="Caption drawn near the bottom of the slide")
    duration_sec: float | None = Field(
        None,
        alias="durationSec",
        description="Seconds on screen; clamped to [4, 15], default 8",
    )


class RenderRequest(BaseModel):
    """Body of ``POST /render``. Unset dimensions fall back to settings."""

    model_config = ConfigDict(populate_by_name=True)

    width: int | None = Field(None, gt=0, description="Output width in pixels (default 1920)")
    height: int | None = Field(None, gt=0, description="Output height in pixels (default 1080)")
    fps: int | None = Field(None, gt=0, description="Output frame rate (default 30)")
    slides: list[SlideIn] = Field(..., min_length=1)


class ErrorResponse(BaseModel):
    error: str
    detail: str | None = None


class HealthResponse(BaseModel):
    ok: bool = True
