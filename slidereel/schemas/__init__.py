from slidereel.schemas.render import ErrorResponse, HealthResponse, RenderRequest, SlideIn

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "RenderRequest",
    "SlideIn",
]
