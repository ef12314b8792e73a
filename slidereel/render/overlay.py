"""Caption side-files for the drawtext overlay.

Captions are written to a text file per slide and referenced from the filter
graph with ``textfile=`` so quotes, colons and newlines in user text never
reach the ffmpeg argument list.
"""

import logging
from typing import Optional, Sequence

from slidereel.exceptions import OverlayError
from slidereel.render.models import NormalizedSlide, SlideArtifact, Workspace, sequence_label

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 250


def sanitize_caption(text: Optional[str], max_chars: int = DEFAULT_MAX_CHARS) -> str:
    """Truncate a caption and strip carriage returns.

    drawtext counts lines on ``\\n`` only; a stray ``\\r`` renders as a glyph
    box and shifts the box height.
    """
    return (text or "")[:max_chars].replace("\r", "")


class OverlayPreparer:
    """Writes one caption file per slide into the workspace root."""

    def prepare(
        self,
        slides: Sequence[NormalizedSlide],
        artifacts: Sequence[SlideArtifact],
        workspace: Workspace,
    ) -> None:
        by_index = {a.sequence_index: a for a in artifacts}
        total = len(slides)
        for slide in slides:
            artifact = by_index[slide.sequence_index]
            label = sequence_label(slide.sequence_index, total)
            path = workspace.root / f"text_{label}.txt"
            try:
                path.write_text(slide.text, encoding="utf-8")
            except OSError as e:
                logger.error(f"[OVERLAY] Failed to write {path}: {e}")
                raise OverlayError(e, slide_index=slide.sequence_index) from e
            artifact.overlay_text_path = path

        logger.info(f"[OVERLAY] Wrote {total} caption files for job {workspace.job_id}")

