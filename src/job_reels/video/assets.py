"""Local storage for rendered clips, posters and caption files."""

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path

import httpx

from job_reels.config import settings
from job_reels.domain.models import Caption, VideoAssetManifest
from job_reels.errors import ProviderError
from job_reels.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CAPTION_TEXT = "Apply now to join the team."


def format_srt_timestamp(seconds: float) -> str:
    total_ms = max(0, round(seconds * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def build_caption_file(caption: Caption | None, duration_seconds: float | None) -> str:
    """Single-cue SRT covering the whole clip, hashtags on the second line."""
    text = (caption.text.strip() if caption else "") or DEFAULT_CAPTION_TEXT
    hashtags = " ".join(f"#{tag.lstrip('#')}" for tag in (caption.hashtags if caption else []))
    body = f"{text}\n{hashtags}" if hashtags else text
    safe_duration = max(2, round(duration_seconds or 30))
    return f"1\n00:00:00,000 --> {format_srt_timestamp(safe_duration)}\n{body}\n"


@dataclass
class MaterializedClip:
    """Public URLs of a clip written to the output directory."""

    video_url: str
    caption_file_url: str
    poster_url: str | None = None


class AssetStore:
    """Writes generated clips to disk and exposes them under a public base URL."""

    def __init__(
        self,
        output_dir: Path | str | None = None,
        public_base_url: str | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        retry_delay: float = 2.0,
    ) -> None:
        """Initialize the asset store.

        Args:
            output_dir: Directory rendered files are written to
            public_base_url: URL prefix that serves ``output_dir``
            timeout: Per-request download timeout in seconds
            retries: Download attempts before giving up
            retry_delay: Base delay between attempts (grows linearly, capped at 8s)
        """
        self.output_dir = Path(output_dir or settings.video_render_output_dir)
        self.public_base_url = (public_base_url or settings.video_render_public_base_url).rstrip(
            "/"
        )
        self.timeout = timeout or settings.asset_download_timeout_seconds
        self.retries = max(1, retries or settings.asset_download_retries)
        self.retry_delay = retry_delay

    def public_url(self, filename: str) -> str:
        return f"{self.public_base_url}/{filename}"

    async def download(
        self, url: str, destination: Path, headers: dict[str, str] | None = None
    ) -> int:
        """Download ``url`` to ``destination``, retrying transient failures.

        Returns:
            Number of bytes written

        Raises:
            httpx.HTTPError: When the last attempt fails
        """
        for attempt in range(self.retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url, headers=headers)
                    response.raise_for_status()
                    content = response.content
                destination.write_bytes(content)
                return len(content)
            except httpx.HTTPError as e:
                if attempt == self.retries - 1:
                    logger.error("asset_download_failed", url=url[:100], error=str(e))
                    raise
                logger.warning(
                    "asset_download_retry",
                    url=url[:100],
                    attempt=attempt + 1,
                    retries=self.retries,
                    error=str(e),
                )
                await asyncio.sleep(min(self.retry_delay * (attempt + 1), 8.0))
        return 0

    async def materialize_clip(
        self,
        manifest: VideoAssetManifest,
        duration_seconds: float | None,
        video_url: str | None = None,
        video_bytes: bytes | None = None,
        poster_url: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> MaterializedClip:
        """Store a generated clip plus its SRT caption file.

        Args:
            manifest: Manifest the clip was rendered from
            duration_seconds: Clip length, used for the caption cue
            video_url: Remote clip location (downloaded)
            video_bytes: Inline clip content (written as is)
            poster_url: Optional remote poster frame
            headers: Extra headers for authenticated downloads

        Returns:
            Public URLs for the stored files

        Raises:
            ProviderError: If the provider gave neither a URL nor bytes, or
                the download failed
        """
        if not video_url and not video_bytes:
            raise ProviderError(
                "Provider response is missing the video payload",
                code="missing_video_payload",
            )

        self.output_dir.mkdir(parents=True, exist_ok=True)
        file_base = f"{manifest.manifest_id}-{int(time.time() * 1000)}"
        video_path = self.output_dir / f"{file_base}.mp4"
        caption_path = self.output_dir / f"{file_base}.srt"

        if video_url:
            try:
                await self.download(video_url, video_path, headers=headers)
            except httpx.HTTPError as e:
                raise ProviderError(f"Clip download failed: {e}", code="download_failed") from e
        else:
            video_path.write_bytes(video_bytes or b"")

        poster_public: str | None = None
        if poster_url:
            poster_path = self.output_dir / f"{file_base}.jpg"
            try:
                await self.download(poster_url, poster_path, headers=headers)
                poster_public = self.public_url(poster_path.name)
            except httpx.HTTPError as e:
                logger.warning("poster_download_failed", error=str(e))

        caption_path.write_text(build_caption_file(manifest.caption, duration_seconds), "utf-8")

        logger.info(
            "clip_materialized",
            manifest_id=manifest.manifest_id,
            video_path=str(video_path),
            size_bytes=video_path.stat().st_size,
        )

        return MaterializedClip(
            video_url=self.public_url(video_path.name),
            caption_file_url=self.public_url(caption_path.name),
            poster_url=poster_public,
        )
