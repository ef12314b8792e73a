"""Downloads slide images into the job workspace."""

import logging
from pathlib import Path
from typing import Optional, Sequence

import httpx

from slidereel.config import get_settings
from slidereel.exceptions import FetchError
from slidereel.render.models import NormalizedSlide, SlideArtifact, Workspace, sequence_label

logger = logging.getLogger(__name__)


class AssetFetcher:
    """Fetches each slide's image, one request at a time, in slide order.

    A single failed download aborts the whole job.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout if timeout is not None else get_settings().fetch_timeout_s
        self._transport = transport

    async def fetch_all(
        self,
        slides: Sequence[NormalizedSlide],
        workspace: Workspace,
    ) -> list[SlideArtifact]:
        artifacts: list[SlideArtifact] = []
        total = len(slides)
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            for slide in sorted(slides, key=lambda s: s.sequence_index):
                label = sequence_label(slide.sequence_index, total)
                image_path = workspace.frames_dir / f"img_{label}.jpg"
                await self._fetch_one(client, slide, image_path)
                artifacts.append(
                    SlideArtifact(sequence_index=slide.sequence_index, image_path=image_path)
                )

        logger.info(f"[FETCH] Downloaded {total} images for job {workspace.job_id}")
        return artifacts

    async def _fetch_one(
        self,
        client: httpx.AsyncClient,
        slide: NormalizedSlide,
        image_path: Path,
    ) -> None:
        try:
            response = await client.get(slide.image_url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"[FETCH] Slide {slide.sequence_index} timed out: {slide.image_url}")
            raise FetchError(f"timed out after {self.timeout}s", slide_index=slide.sequence_index) from e
        except httpx.HTTPStatusError as e:
            logger.error(
                f"[FETCH] Slide {slide.sequence_index} got HTTP {e.response.status_code}: {slide.image_url}"
            )
            raise FetchError(
                f"HTTP {e.response.status_code} from {slide.image_url}",
                slide_index=slide.sequence_index,
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"[FETCH] Slide {slide.sequence_index} failed: {e}")
            raise FetchError(e, slide_index=slide.sequence_index) from e

        try:
            image_path.write_bytes(response.content)
        except OSError as e:
            raise FetchError(e, slide_index=slide.sequence_index) from e
