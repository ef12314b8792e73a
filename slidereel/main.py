import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from slidereel.api import render
from slidereel.config import get_settings
from slidereel.exceptions import RenderError, ValidationError
from slidereel.schemas.render import HealthResponse

settings = get_settings()
logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    configure_logging()
    logger.info(
        f"{settings.app_name} {settings.app_version} starting "
        f"(ffmpeg={settings.ffmpeg_path}, jobs={settings.render_max_concurrent_jobs}, "
        f"clip_concurrency={settings.render_clip_concurrency})"
    )
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Bad request shape (400). No workspace was created."""
    logger.info(f"Rejected {request.url.path}: {exc.message} {exc.detail or ''}".rstrip())
    content = {"error": exc.message}
    if exc.detail:
        content["detail"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RenderError)
async def render_error_handler(request: Request, exc: RenderError) -> JSONResponse:
    """Any pipeline failure after the workspace opened (500)."""
    logger.error(f"Render failed: {exc.to_dict()}")
    return JSONResponse(
        status_code=500,
        content={"error": "render_failed", "detail": str(exc)},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "http_error", "detail": str(exc.detail)},
    )


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "render_failed", "detail": str(exc) or type(exc).__name__},
    )


# Routers
app.include_router(render.router, tags=["render"])


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(ok=True)


@app.get("/version")
async def get_version() -> dict[str, str]:
    """Return the service version info."""
    return {"version": settings.app_version, "git_hash": settings.git_hash}


def run() -> None:
    """Console entry point: serve the app on ``PORT``."""
    configure_logging()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
