"""Request validation and defaulting.

Pure functions only: nothing in here touches the filesystem or network.
"""

from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from slidereel.config import get_settings
from slidereel.exceptions import SlidesRequiredError, ValidationError
from slidereel.render.models import NormalizedRequest, NormalizedSlide
from slidereel.render.overlay import sanitize_caption
from slidereel.schemas.render import RenderRequest


def clamp_duration(
    duration_sec: Optional[float],
    *,
    minimum: float = 4,
    maximum: float = 15,
    default: float = 8,
) -> float:
    """Clamp a slide duration into [minimum, maximum].

    Missing or zero durations fall back to ``default`` before clamping.
    """
    return max(minimum, min(maximum, duration_sec or default))


def _format_validation_error(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Request validation failed"
    first_error = errors[0]
    loc = ".".join(str(x) for x in first_error.get("loc", []))
    msg = first_error.get("msg", "Validation error")
    return f"{loc}: {msg}" if loc else msg


def normalize_request(raw: Any) -> NormalizedRequest:
    """Validate a raw ``POST /render`` body and apply defaults.

    Raises:
        SlidesRequiredError: ``slides`` missing, not a list, or empty
        ValidationError: any other malformed field
    """
    settings = get_settings()

    if not isinstance(raw, dict):
        raw = {}
    slides = raw.get("slides")
    if not isinstance(slides, list) or not slides:
        raise SlidesRequiredError()

    try:
        request = RenderRequest.model_validate(raw)
    except PydanticValidationError as e:
        raise ValidationError(detail=_format_validation_error(e))

    normalized_slides = tuple(
        NormalizedSlide(
            sequence_index=i,
            image_url=slide.image_url,
            text=sanitize_caption(slide.text, max_chars=settings.caption_max_chars),
            duration_s=clamp_duration(
                slide.duration_sec,
                minimum=settings.slide_min_duration_s,
                maximum=settings.slide_max_duration_s,
                default=settings.slide_default_duration_s,
            ),
        )
        for i, slide in enumerate(request.slides, start=1)
    )

    return NormalizedRequest(
        width=request.width or settings.render_default_width,
        height=request.height or settings.render_default_height,
        fps=request.fps or settings.render_default_fps,
        slides=normalized_slides,
    )
