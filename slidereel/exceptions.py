"""Custom exceptions for the slidereel render service.

Every error raised by the render pipeline derives from ``SlideReelError`` so
the HTTP layer can translate it into a JSON body with one exception handler.
"""

from typing import Any


class SlideReelError(Exception):
    """Base exception for all slidereel application errors."""

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

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logs."""
        return {
            "code": self.code,
            "status_code": self.status_code,
            "message": self.message,
        }


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(SlideReelError):
    """Request body is malformed. Raised before any workspace exists."""

    code = "VALIDATION_ERROR"
    status_code = 400
    message = "invalid_request"

    def __init__(self, message: str | None = None, *, detail: str | None = None):
        self.detail = detail
        super().__init__(message)


class SlidesRequiredError(ValidationError):
    """The ``slides`` field is missing, not a list, or empty."""

    code = "SLIDES_REQUIRED"
    message = "slides[] required"


# =============================================================================
# Render Errors (500)
# =============================================================================


class RenderError(SlideReelError):
    """Base class for failures after the workspace has been opened."""

    code = "RENDER_FAILED"
    status_code = 500
    message = "render_failed"
    stage: str = "render"

    def __init__(self, cause: Any = None, *, slide_index: int | None = None):
        self.cause = cause
        self.slide_index = slide_index
        if slide_index is not None:
            message = f"{self.stage} failed for slide {slide_index}: {cause}"
        else:
            message = f"{self.stage} failed: {cause}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["stage"] = self.stage
        data["slide_index"] = self.slide_index
        return data


class FetchError(RenderError):
    """Remote image could not be downloaded (timeout, non-2xx, network)."""

    code = "FETCH_FAILED"
    stage = "fetch"


class OverlayError(RenderError):
    """Caption side-file could not be written."""

    code = "OVERLAY_FAILED"
    stage = "overlay"


class EncodeError(RenderError):
    """Encoding engine failed while synthesizing a slide clip."""

    code = "ENCODE_FAILED"
    stage = "encode"


class ConcatError(RenderError):
    """Encoding engine failed while joining clips."""

    code = "CONCAT_FAILED"
    stage = "concat"
