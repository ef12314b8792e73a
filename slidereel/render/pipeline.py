"""
Render pipeline for slide videos.

This module orchestrates one render job:
1. Open an isolated workspace
2. Download slide images
3. Write caption side-files
4. Encode one clip per slide
5. Concatenate clips (stream copy)
6. Stream the result to the caller
7. Delete the workspace, on every exit path

Stages run strictly in sequence for a job. A process-wide semaphore bounds
how many jobs encode at once; engine calls are async subprocesses so the
event loop keeps serving other requests meanwhile.
"""

import asyncio
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import AsyncIterator, Optional

from slidereel.config import get_settings
from slidereel.render.concatenator import Concatenator
from slidereel.render.fetcher import AssetFetcher
from slidereel.render.models import JobState, NormalizedRequest, RenderJob
from slidereel.render.overlay import OverlayPreparer
from slidereel.render.synthesizer import ClipSynthesizer
from slidereel.render.workspace import WorkspaceManager
from slidereel.utils.media_info import get_video_info

logger = logging.getLogger(__name__)


class RenderPipeline:
    """Runs render jobs from a normalized request to a streamable file."""

    def __init__(
        self,
        workspace_manager: Optional[WorkspaceManager] = None,
        fetcher: Optional[AssetFetcher] = None,
        overlay: Optional[OverlayPreparer] = None,
        synthesizer: Optional[ClipSynthesizer] = None,
        concatenator: Optional[Concatenator] = None,
        max_concurrent_jobs: Optional[int] = None,
        probe_output: Optional[bool] = None,
    ):
        settings = get_settings()
        self.workspace_manager = workspace_manager or WorkspaceManager()
        self.fetcher = fetcher or AssetFetcher()
        self.overlay = overlay or OverlayPreparer()
        self.synthesizer = synthesizer or ClipSynthesizer()
        self.concatenator = concatenator or Concatenator()
        self.max_concurrent_jobs = max(1, max_concurrent_jobs or settings.render_max_concurrent_jobs)
        self.probe_output = settings.probe_output if probe_output is None else probe_output
        self.chunk_size = settings.stream_chunk_size
        self._slots = asyncio.Semaphore(self.max_concurrent_jobs)

    def _transition(self, job: RenderJob, state: JobState) -> None:
        logger.debug(f"[RENDER] Job {job.job_id}: {job.state.value} -> {state.value}")
        job.state = state

    async def render(self, request: NormalizedRequest) -> RenderJob:
        """
        Execute every stage up to and including concatenation.

        On success the returned job is ready to stream and still owns its
        workspace; the caller must hand it to ``iter_output`` or ``close``.
        On failure the workspace is already deleted and the error re-raised.

        Raises:
            RenderError: FetchError, OverlayError, EncodeError or ConcatError
        """
        job = RenderJob(request=request, state=JobState.VALIDATED)

        async with self._slots:
            job.workspace = self.workspace_manager.open()
            self._transition(job, JobState.WORKSPACE_OPEN)
            logger.info(
                f"[RENDER] Job {job.job_id}: {len(request.slides)} slides "
                f"at {request.width}x{request.height}@{request.fps}"
            )

            try:
                self._transition(job, JobState.FETCHING)
                job.artifacts = await self.fetcher.fetch_all(request.slides, job.workspace)

                self._transition(job, JobState.OVERLAYING)
                self.overlay.prepare(request.slides, job.artifacts, job.workspace)

                self._transition(job, JobState.ENCODING)
                await self.synthesizer.synthesize_all(request, job.artifacts, job.workspace)

                self._transition(job, JobState.CONCATENATING)
                job.output_path = await self.concatenator.concatenate(
                    job.ordered_artifacts(), job.workspace
                )

                if self.probe_output:
                    await self._probe(job)
            except BaseException as e:
                logger.error(f"[RENDER] Job {job.job_id} failed during {job.state.value}: {e}")
                self.close(job, failure_reason=str(e) or type(e).__name__)
                raise

        return job

    async def _probe(self, job: RenderJob) -> None:
        """Record the output duration. ffprobe failures only log a warning."""
        try:
            info = await asyncio.to_thread(get_video_info, str(job.output_path))
        except RuntimeError as e:
            logger.warning(f"[RENDER] Could not probe output of job {job.job_id}: {e}")
            return
        job.output_duration_ms = info.duration_ms
        logger.info(
            f"[RENDER] Job {job.job_id} output: {info.duration_ms}ms, "
            f"{info.width}x{info.height}, {info.video_codec}"
        )

    async def iter_output(self, job: RenderJob) -> AsyncIterator[bytes]:
        """Yield the output file in chunks, then close the job.

        Closing happens in ``finally`` so a client disconnect (generator
        cancelled or closed) still deletes the workspace.
        """
        self._transition(job, JobState.STREAMING)
        completed = False
        try:
            with open(job.output_path, "rb") as f:
                while True:
                    chunk = await asyncio.to_thread(f.read, self.chunk_size)
                    if not chunk:
                        break
                    yield chunk
            completed = True
        finally:
            self.close(job, failure_reason=None if completed else "stream interrupted")

    def close(self, job: RenderJob, failure_reason: Optional[str] = None) -> None:
        """Move the job to CLOSED and delete its workspace. Runs once."""
        if job.state == JobState.CLOSED:
            return
        job.state = JobState.CLOSED
        job.failure_reason = failure_reason
        job.completed_at = datetime.now(timezone.utc)
        if job.workspace is not None:
            self.workspace_manager.close(job.workspace)

        elapsed_ms = int((job.completed_at - job.created_at).total_seconds() * 1000)
        if failure_reason:
            logger.info(f"[RENDER] Job {job.job_id} closed (failed: {failure_reason}) after {elapsed_ms}ms")
        else:
            logger.info(f"[RENDER] Job {job.job_id} closed (success) after {elapsed_ms}ms")


@lru_cache
def get_render_pipeline() -> RenderPipeline:
    return RenderPipeline()
