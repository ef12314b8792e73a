"""Per-slide clip synthesis.

Each slide becomes a fixed-duration H.264 clip: the still image looped for
the slide duration, letterboxed/pillarboxed to the output size, with the
caption drawn near the bottom over a semi-opaque box. All clips of a job
share codec, size, frame rate and pixel format so they can be joined with
stream copy.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from slidereel.config import get_settings
from slidereel.exceptions import EncodeError
from slidereel.render.engine import EngineProcessError, run_engine
from slidereel.render.models import (
    NormalizedRequest,
    NormalizedSlide,
    SlideArtifact,
    Workspace,
    sequence_label,
)

logger = logging.getLogger(__name__)

# Caption placement and styling
CAPTION_X = 50
CAPTION_BOTTOM_MARGIN = 60
CAPTION_FONT_SIZE = 36
CAPTION_LINE_SPACING = 8
CAPTION_BOX_COLOR = "black@0.45"
CAPTION_BOX_BORDER = 15


def escape_filter_value(value: str) -> str:
    """Escape a value for use as a filter option inside a filtergraph.

    Applies ffmpeg's two escaping levels: option value (``\\ ' :``), then
    filtergraph description (``\\ ' [ ] , ;``).
    """
    escaped = value.replace("\\", "\\\\").replace("'", "\\'").replace(":", "\\:")
    for ch in ("\\", "'", "[", "]", ",", ";"):
        escaped = escaped.replace(ch, "\\" + ch)
    return escaped


def build_video_filter(
    width: int,
    height: int,
    text_path: Path,
    font_path: str,
) -> str:
    """Build the ``-vf`` chain: scale-to-fit, center pad, caption overlay."""
    drawtext = ":".join(
        [
            f"drawtext=fontfile={escape_filter_value(font_path)}",
            f"textfile={escape_filter_value(str(text_path))}",
            # Caption text is literal: no %{...} expansion, no backslash escapes
            "expansion=none",
            f"x={CAPTION_X}",
            f"y=H-th-{CAPTION_BOTTOM_MARGIN}",
            f"fontsize={CAPTION_FONT_SIZE}",
            "fontcolor=white",
            f"line_spacing={CAPTION_LINE_SPACING}",
            "box=1",
            f"boxcolor={CAPTION_BOX_COLOR}",
            f"boxborderw={CAPTION_BOX_BORDER}",
        ]
    )
    return ",".join(
        [
            f"scale={width}:{height}:force_original_aspect_ratio=decrease",
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2",
            drawtext,
        ]
    )


def build_clip_command(
    image_path: Path,
    text_path: Path,
    clip_path: Path,
    *,
    duration_s: float,
    width: int,
    height: int,
    fps: int,
    ffmpeg_path: str = "ffmpeg",
    font_path: str = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    preset: str = "veryfast",
) -> list[str]:
    """Build the FFmpeg command for one slide clip without executing it."""
    return [
        ffmpeg_path,
        "-y",
        "-loop", "1",
        "-t", f"{duration_s:g}",
        "-i", str(image_path),
        "-vf", build_video_filter(width, height, text_path, font_path),
        "-r", str(fps),
        "-pix_fmt", "yuv420p",
        "-c:v", "libx264",
        "-preset", preset,
        str(clip_path),
    ]


class ClipSynthesizer:
    """Encodes one clip per slide.

    ``concurrency`` bounds how many encodes run at once for a job. With the
    default of 1, slides are encoded strictly in ascending order. On the first
    failure no further slides are started and in-flight encodes are killed.
    """

    def __init__(
        self,
        concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.ffmpeg_path = settings.ffmpeg_path
        self.font_path = settings.font_path
        self.preset = settings.render_preset
        self.concurrency = max(1, concurrency or settings.render_clip_concurrency)
        self.timeout = timeout if timeout is not None else settings.encode_timeout_s

    async def synthesize_all(
        self,
        request: NormalizedRequest,
        artifacts: Sequence[SlideArtifact],
        workspace: Workspace,
    ) -> None:
        slides = {s.sequence_index: s for s in request.slides}
        ordered = sorted(artifacts, key=lambda a: a.sequence_index)

        if self.concurrency == 1:
            for artifact in ordered:
                await self._synthesize_one(request, slides[artifact.sequence_index], artifact, workspace)
        else:
            await self._synthesize_parallel(request, slides, ordered, workspace)

        logger.info(f"[ENCODE] Encoded {len(ordered)} clips for job {workspace.job_id}")

    async def _synthesize_parallel(
        self,
        request: NormalizedRequest,
        slides: dict[int, NormalizedSlide],
        ordered: list[SlideArtifact],
        workspace: Workspace,
    ) -> None:
        semaphore = asyncio.Semaphore(self.concurrency)
        failed = asyncio.Event()

        async def worker(artifact: SlideArtifact) -> None:
            async with semaphore:
                if failed.is_set():
                    return
                try:
                    await self._synthesize_one(
                        request, slides[artifact.sequence_index], artifact, workspace
                    )
                except Exception:
                    failed.set()
                    raise

        tasks = [asyncio.create_task(worker(a)) for a in ordered]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _synthesize_one(
        self,
        request: NormalizedRequest,
        slide: NormalizedSlide,
        artifact: SlideArtifact,
        workspace: Workspace,
    ) -> None:
        if artifact.image_path is None or artifact.overlay_text_path is None:
            raise EncodeError("slide assets were not staged", slide_index=slide.sequence_index)

        label = sequence_label(slide.sequence_index, len(request.slides))
        clip_path = workspace.clips_dir / f"clip_{label}.mp4"
        cmd = build_clip_command(
            artifact.image_path,
            artifact.overlay_text_path,
            clip_path,
            duration_s=slide.duration_s,
            width=request.width,
            height=request.height,
            fps=request.fps,
            ffmpeg_path=self.ffmpeg_path,
            font_path=self.font_path,
            preset=self.preset,
        )

        logger.info(
            f"[ENCODE] Slide {slide.sequence_index}/{len(request.slides)}: "
            f"{slide.duration_s:g}s at {request.width}x{request.height}@{request.fps}"
        )
        try:
            await run_engine(cmd, timeout=self.timeout, tag="ENCODE")
        except EngineProcessError as e:
            raise EncodeError(e, slide_index=slide.sequence_index) from e

        artifact.clip_path = clip_path
