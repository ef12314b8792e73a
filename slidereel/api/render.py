"""Render API endpoint - renders synchronously and streams the MP4 back."""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from slidereel.config import get_settings
from slidereel.exceptions import ValidationError
from slidereel.render.normalizer import normalize_request
from slidereel.render.pipeline import RenderPipeline, get_render_pipeline
from slidereel.schemas.render import ErrorResponse, RenderRequest

router = APIRouter()
logger = logging.getLogger(__name__)


async def _read_body(request: Request) -> Any:
    """Read the JSON body, enforcing the configured size limit."""
    max_bytes = get_settings().max_request_body_bytes
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Request body exceeds {max_bytes} bytes",
        )

    body = await request.body()
    if len(body) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Request body exceeds {max_bytes} bytes",
        )
    if not body:
        return None
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(detail=f"Body is not valid JSON: {e}")


@router.post(
    "/render",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"video/mp4": {}}, "description": "Rendered video"},
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": RenderRequest.model_json_schema()}},
            "required": True,
        }
    },
)
async def render_video(
    request: Request,
    pipeline: RenderPipeline = Depends(get_render_pipeline),
) -> StreamingResponse:
    """
    Render slides into one MP4 and stream it back.

    Validation errors are answered before any workspace is created. Any
    failure after that deletes the workspace and surfaces as 500.
    """
    raw = await _read_body(request)
    normalized = normalize_request(raw)

    job = await pipeline.render(normalized)

    headers = {"X-Render-Job-Id": job.job_id or ""}
    try:
        headers["Content-Length"] = str(job.output_path.stat().st_size)
    except OSError as e:
        pipeline.close(job, failure_reason=f"output missing: {e}")
        raise

    return StreamingResponse(
        pipeline.iter_output(job),
        media_type="video/mp4",
        headers=headers,
        # Only takes effect on disconnects before the first chunk; a finished
        # stream has already closed the job
        background=BackgroundTask(pipeline.close, job, failure_reason="stream not consumed"),
    )
