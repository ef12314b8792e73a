"""Joins slide clips into the final MP4 with ffmpeg's concat demuxer."""

import logging
from pathlib import Path
from typing import Optional, Sequence

from slidereel.config import get_settings
from slidereel.exceptions import ConcatError
from slidereel.render.engine import EngineProcessError, run_engine
from slidereel.render.models import SlideArtifact, Workspace
from slidereel.render.workspace import safe_name

logger = logging.getLogger(__name__)


def build_manifest(artifacts: Sequence[SlideArtifact]) -> str:
    """Concat-demuxer list of clip paths in slide order."""
    lines = []
    for artifact in sorted(artifacts, key=lambda a: a.sequence_index):
        if artifact.clip_path is None:
            raise ConcatError(f"slide {artifact.sequence_index} has no clip")
        # FFmpeg concat requires escaped paths
        escaped = str(artifact.clip_path).replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    return "\n".join(lines) + "\n"


def build_concat_command(
    manifest_path: Path,
    output_path: Path,
    ffmpeg_path: str = "ffmpeg",
) -> list[str]:
    """Build the stream-copy concat command without executing it."""
    return [
        ffmpeg_path,
        "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", str(manifest_path),
        "-c", "copy",
        "-movflags", "+faststart",
        str(output_path),
    ]


class Concatenator:
    """Writes the manifest and runs a lossless concat of all clips."""

    def __init__(self, timeout: Optional[float] = None):
        settings = get_settings()
        self.ffmpeg_path = settings.ffmpeg_path
        self.timeout = timeout if timeout is not None else settings.concat_timeout_s

    async def concatenate(
        self,
        artifacts: Sequence[SlideArtifact],
        workspace: Workspace,
    ) -> Path:
        if not artifacts:
            raise ConcatError("no clips to join")

        manifest_path = workspace.root / "concat.txt"
        output_path = workspace.root / f"{safe_name(workspace.job_id)}.mp4"
        try:
            manifest_path.write_text(build_manifest(artifacts), encoding="utf-8")
        except OSError as e:
            raise ConcatError(e) from e

        cmd = build_concat_command(manifest_path, output_path, self.ffmpeg_path)
        try:
            await run_engine(cmd, timeout=self.timeout, tag="CONCAT")
        except EngineProcessError as e:
            raise ConcatError(e) from e

        logger.info(f"[CONCAT] Joined {len(artifacts)} clips into {output_path}")
        return output_path
