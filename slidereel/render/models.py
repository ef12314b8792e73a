"""Data model for a single render job."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class JobState(Enum):
    """Render job lifecycle. CLOSED is terminal."""

    RECEIVED = "received"
    VALIDATED = "validated"
    WORKSPACE_OPEN = "workspace_open"
    FETCHING = "fetching"
    OVERLAYING = "overlaying"
    ENCODING = "encoding"
    CONCATENATING = "concatenating"
    STREAMING = "streaming"
    CLOSED = "closed"


@dataclass(frozen=True)
class NormalizedSlide:
    """A validated slide with defaults applied."""

    sequence_index: int  # 1-based, input order
    image_url: str
    text: str
    duration_s: float


@dataclass(frozen=True)
class NormalizedRequest:
    """A validated render request."""

    width: int
    height: int
    fps: int
    slides: tuple[NormalizedSlide, ...]


@dataclass
class Workspace:
    """Per-job temp directory tree. Owned by exactly one job."""

    job_id: str
    root: Path
    frames_dir: Path
    clips_dir: Path
    closed: bool = False


@dataclass
class SlideArtifact:
    """Files staged for one slide.

    Each path is filled by exactly one stage: fetcher, overlay preparer,
    clip synthesizer.
    """

    sequence_index: int
    image_path: Optional[Path] = None
    overlay_text_path: Optional[Path] = None
    clip_path: Optional[Path] = None


@dataclass
class RenderJob:
    """Everything one render request owns while it is in flight."""

    request: NormalizedRequest
    workspace: Optional[Workspace] = None
    artifacts: list[SlideArtifact] = field(default_factory=list)
    output_path: Optional[Path] = None
    state: JobState = JobState.RECEIVED
    failure_reason: Optional[str] = None
    output_duration_ms: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def job_id(self) -> Optional[str]:
        return self.workspace.job_id if self.workspace else None

    @property
    def succeeded(self) -> bool:
        return self.state == JobState.CLOSED and self.failure_reason is None

    def ordered_artifacts(self) -> list[SlideArtifact]:
        """Artifacts sorted by slide order."""
        return sorted(self.artifacts, key=lambda a: a.sequence_index)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "job_id": self.job_id,
            "state": self.state.value,
            "slides": len(self.request.slides),
            "width": self.request.width,
            "height": self.request.height,
            "fps": self.request.fps,
            "output_path": str(self.output_path) if self.output_path else None,
            "output_duration_ms": self.output_duration_ms,
            "failure_reason": self.failure_reason,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


def sequence_label(sequence_index: int, total: int) -> str:
    """Zero-padded slide label used in artifact filenames.

    Padded to at least three digits and widened for jobs past 999 slides so
    names stay unique and sortable.
    """
    width = max(3, len(str(total)))
    return str(sequence_index).zfill(width)
