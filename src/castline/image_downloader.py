"""Downloading of cover and episode images into local storage."""

import hashlib
import logging
from pathlib import Path

import aiofiles
import aiofiles.os
import httpx

from .db import AssetDatabase
from .db.types import Asset
from .exceptions import ImageDownloadError
from .mimetypes import is_http_url, mime_type_for_url, mimetypes

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jpg"


def source_key_for(url: str) -> str:
    """Key under which the image at ``url`` is stored."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


class ImageDownloader:
    """Fetch images over HTTP and record them as assets.

    Each source URL is stored once; repeat requests return the existing
    asset.

    Attributes:
        _client: HTTP client.
        _images_dir: Directory images are written to.
        _assets: Asset table access.
    """

    def __init__(
        self, client: httpx.AsyncClient, images_dir: Path, asset_db: AssetDatabase
    ):
        self._client = client
        self._images_dir = images_dir
        self._assets = asset_db
        logger.debug("ImageDownloader initialized.", extra={"images_dir": str(images_dir)})

    @staticmethod
    def _extension(url: str, content_type: str | None) -> str:
        if content_type:
            guessed = mimetypes.guess_extension(content_type.split(";")[0].strip())
            if guessed:
                return ".jpg" if guessed == ".jpe" else guessed
        mime = mime_type_for_url(url)
        if mime:
            return mimetypes.guess_extension(mime) or DEFAULT_EXTENSION
        return DEFAULT_EXTENSION

    async def download(self, url: str, title: str = "") -> int:
        """Download the image at ``url`` unless it is already stored.

        Args:
            url: Image URL.
            title: Title of the podcast or episode the image belongs to.

        Returns:
            The asset id.

        Raises:
            ImageDownloadError: If the URL is invalid, the request fails or the
                file cannot be written.
        """
        if not is_http_url(url):
            raise ImageDownloadError("Image URL is not an http(s) URL.", url=url)

        source_key = source_key_for(url)
        existing = await self._assets.get_ids_by_source_keys([source_key])
        if source_key in existing:
            return existing[source_key]

        try:
            response = await self._client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ImageDownloadError("HTTP request for image failed.", url=url) from e

        content_type = response.headers.get("content-type")
        if content_type and not content_type.startswith("image/"):
            raise ImageDownloadError(
                f"Response is not an image (content type '{content_type}').", url=url
            )

        filename = f"{source_key}{self._extension(url, content_type)}"
        final_path = self._images_dir / filename
        tmp_path = final_path.with_name(f".{filename}.part")
        try:
            await aiofiles.os.makedirs(self._images_dir, exist_ok=True)
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(response.content)
            await aiofiles.os.replace(tmp_path, final_path)
        except OSError as e:
            raise ImageDownloadError("Failed to write image file.", url=url) from e

        asset_id = await self._assets.add_asset(
            Asset(
                source_key=source_key,
                url=url,
                path=filename,
                title=title,
                mime_type=content_type,
            )
        )
        logger.info(
            "Downloaded image.",
            extra={"url": url, "asset_id": asset_id, "path": str(final_path)},
        )
        return asset_id
