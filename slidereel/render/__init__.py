"""Slide video render pipeline."""

from slidereel.render.models import JobState, NormalizedRequest, NormalizedSlide, RenderJob, SlideArtifact, Workspace
from slidereel.render.normalizer import normalize_request
from slidereel.render.pipeline import RenderPipeline, get_render_pipeline

__all__ = [
    "JobState",
    "NormalizedRequest",
    "NormalizedSlide",
    "RenderJob",
    "RenderPipeline",
    "SlideArtifact",
    "Workspace",
    "get_render_pipeline",
    "normalize_request",
]
