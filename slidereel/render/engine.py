"""Async invocation of the ffmpeg encoding engine.

Commands are always argv lists handed to ``create_subprocess_exec``; nothing
is passed through a shell.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

# ffmpeg stderr can be long; keep the tail where the actual error is printed
STDERR_TAIL_CHARS = 2000


@dataclass
class EngineResult:
    """Outcome of one engine invocation."""

    returncode: int
    stderr: str


class EngineProcessError(RuntimeError):
    """The engine exited non-zero, timed out, or could not be started."""

    def __init__(self, message: str, *, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


def _tail(text: str) -> str:
    return text[-STDERR_TAIL_CHARS:].strip()


async def run_engine(
    cmd: Sequence[str],
    *,
    timeout: Optional[float] = None,
    tag: str = "ENGINE",
) -> EngineResult:
    """Run ``cmd`` to completion without blocking the event loop.

    Raises:
        EngineProcessError: non-zero exit, timeout, or missing binary
    """
    logger.info(f"[{tag}] Command: {' '.join(cmd)}")

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error(f"[{tag}] Could not start {cmd[0]}: {e}")
        raise EngineProcessError(f"could not start {cmd[0]}: {e}") from e

    try:
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.error(f"[{tag}] Timed out after {timeout}s")
        raise EngineProcessError(f"timed out after {timeout}s")
    except asyncio.CancelledError:
        # Job aborted: kill the encoder before propagating
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise

    stderr_text = stderr.decode("utf-8", errors="replace") if stderr else ""
    if proc.returncode != 0:
        logger.error(f"[{tag}] Exited with code {proc.returncode}: {_tail(stderr_text)}")
        raise EngineProcessError(
            f"exit code {proc.returncode}: {_tail(stderr_text)}",
            returncode=proc.returncode,
            stderr=stderr_text,
        )

    return EngineResult(returncode=proc.returncode, stderr=stderr_text)
