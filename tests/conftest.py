"""
Pytest fixtures for slidereel tests.

Most tests replace the ffmpeg engine with a fake that writes marker bytes,
and serve slide images from an httpx MockTransport, so they need neither a
network nor an ffmpeg binary.

CI/CD Note:
Tests that run the real encoder are marked with @pytest.mark.requires_ffmpeg
and are skipped locally when ffmpeg, ffprobe or the caption font is missing.
CI installs them and sets REQUIRE_FFMPEG=1, which turns that skip into a failure.
"""

import os
import re
import shutil
from pathlib import Path
from typing import Callable

import httpx
import pytest

from slidereel.config import get_settings
from slidereel.render.concatenator import Concatenator
from slidereel.render.engine import EngineResult
from slidereel.render.fetcher import AssetFetcher
from slidereel.render.pipeline import RenderPipeline
from slidereel.render.synthesizer import ClipSynthesizer
from slidereel.render.workspace import WorkspaceManager

_MANIFEST_LINE = re.compile(r"^file '(.*)'$")


def pytest_configure(config):
    """Register custom markers for CI/CD test filtering."""
    config.addinivalue_line(
        "markers",
        "requires_ffmpeg: mark test as requiring ffmpeg/ffprobe and a TTF font"
    )


def _ffmpeg_available() -> bool:
    settings = get_settings()
    return (
        shutil.which(settings.ffmpeg_path) is not None
        and shutil.which(settings.ffprobe_path) is not None
        and Path(settings.font_path).exists()
    )


# Skip decorator for tests requiring the real encoder
requires_ffmpeg = pytest.mark.skipif(
    not _ffmpeg_available() and not os.environ.get("REQUIRE_FFMPEG"),
    reason="ffmpeg, ffprobe or the caption font is not installed",
)


def image_bytes_for(url: str) -> bytes:
    """Deterministic fake image payload for a URL."""
    return f"<image {url}>".encode()


def workspace_dirs(root: Path) -> list[Path]:
    """Workspace directories currently under ``root``."""
    return sorted(p for p in root.iterdir() if p.name.startswith("slidereel-"))


@pytest.fixture
def workspace_root(tmp_path) -> Path:
    """Isolated directory that receives job workspaces."""
    root = tmp_path / "workspaces"
    root.mkdir()
    return root


@pytest.fixture
def workspace_manager(workspace_root) -> WorkspaceManager:
    return WorkspaceManager(root=str(workspace_root))


@pytest.fixture
def requested_urls() -> list[str]:
    """URLs requested through ``image_transport``, in order."""
    return []


@pytest.fixture
def failing_urls() -> dict[str, int]:
    """URL -> HTTP status to answer with instead of an image."""
    return {}


@pytest.fixture
def image_transport(requested_urls, failing_urls) -> httpx.MockTransport:
    """Serves fake image bytes for any URL unless listed in ``failing_urls``."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        requested_urls.append(url)
        if url in failing_urls:
            return httpx.Response(failing_urls[url], text="nope")
        return httpx.Response(200, content=image_bytes_for(url), headers={"Content-Type": "image/jpeg"})

    return httpx.MockTransport(handler)


@pytest.fixture
def engine_calls() -> list[list[str]]:
    """argv of every fake engine invocation, in order."""
    return []


@pytest.fixture
def fake_engine(engine_calls) -> Callable:
    """Stand-in for ``run_engine``.

    Encode: writes the slide image bytes plus ``|`` to the clip path.
    Concat: reads the manifest and joins the clip files in listed order.
    """

    async def _run(cmd, *, timeout=None, tag="ENGINE"):
        engine_calls.append(list(cmd))
        output = Path(cmd[-1])
        if "concat" in cmd:
            manifest = Path(cmd[cmd.index("-i") + 1])
            data = b""
            for line in manifest.read_text().splitlines():
                match = _MANIFEST_LINE.match(line)
                data += Path(match.group(1)).read_bytes()
            output.write_bytes(data)
        else:
            image = Path(cmd[cmd.index("-i") + 1])
            output.write_bytes(image.read_bytes() + b"|")
        return EngineResult(returncode=0, stderr="")

    return _run


@pytest.fixture
def patch_engine(monkeypatch, fake_engine):
    """Route synthesizer and concatenator engine calls to ``fake_engine``."""
    monkeypatch.setattr("slidereel.render.synthesizer.run_engine", fake_engine)
    monkeypatch.setattr("slidereel.render.concatenator.run_engine", fake_engine)
    return fake_engine


@pytest.fixture
def pipeline(workspace_manager, image_transport) -> RenderPipeline:
    """Pipeline wired to temp workspaces and the mock image server."""
    return RenderPipeline(
        workspace_manager=workspace_manager,
        fetcher=AssetFetcher(timeout=5, transport=image_transport),
        synthesizer=ClipSynthesizer(concurrency=1),
        concatenator=Concatenator(),
        max_concurrent_jobs=2,
        probe_output=False,
    )
