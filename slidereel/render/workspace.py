"""Per-job workspace lifecycle.

A workspace is a temp directory tree that belongs to exactly one render job:

    <workspace_root>/slidereel-<job_id>-XXXXXX/
        frames/     downloaded slide images
        clips/      per-slide encoded clips
        text_NNN.txt, concat.txt, <job_id>.mp4

It is created when a job starts and deleted once when the job ends, whichever
exit path is taken.
"""

import logging
import re
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional
from uuid import uuid4

from slidereel.config import get_settings
from slidereel.render.models import Workspace

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.-]+", re.ASCII)
MAX_NAME_LENGTH = 80


def safe_name(value: str) -> str:
    """Restrict a string to ``[A-Za-z0-9_.-]`` and cap its length."""
    return _UNSAFE_CHARS.sub("_", value)[:MAX_NAME_LENGTH]


def new_job_id() -> str:
    """Random short job id, already safe for filesystem use."""
    return safe_name(uuid4().hex[:8])


class WorkspaceManager:
    """Creates and destroys job workspaces under a root directory."""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or get_settings().workspace_root)

    def open(self, job_id: Optional[str] = None) -> Workspace:
        """Create a fresh workspace with ``frames/`` and ``clips/``."""
        job_id = safe_name(job_id) if job_id else new_job_id()
        self.root.mkdir(parents=True, exist_ok=True)
        root = Path(tempfile.mkdtemp(prefix=f"slidereel-{job_id}-", dir=self.root))
        workspace = Workspace(
            job_id=job_id,
            root=root,
            frames_dir=root / "frames",
            clips_dir=root / "clips",
        )
        try:
            workspace.frames_dir.mkdir()
            workspace.clips_dir.mkdir()
        except OSError:
            self.close(workspace)
            raise
        logger.info(f"[WORKSPACE] Opened {root} for job {job_id}")
        return workspace

    def close(self, workspace: Workspace) -> None:
        """Delete the workspace tree. Idempotent; never raises."""
        if workspace.closed:
            return
        workspace.closed = True
        try:
            shutil.rmtree(workspace.root)
            logger.info(f"[WORKSPACE] Removed {workspace.root} (job {workspace.job_id})")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"[WORKSPACE] Failed to remove {workspace.root}: {e}")

    @contextmanager
    def session(self, job_id: Optional[str] = None) -> Iterator[Workspace]:
        """Open a workspace that is closed when the block exits."""
        workspace = self.open(job_id)
        try:
            yield workspace
        finally:
            self.close(workspace)
