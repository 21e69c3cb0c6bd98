# pyright: reportPrivateUsage=false

"""Tests for ImageDownloader."""

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
import respx

from castline.db import AssetDatabase
from castline.db.sqlalchemy_core import SqlalchemyCore
from castline.exceptions import ImageDownloadError
from castline.image_downloader import ImageDownloader, source_key_for

IMAGE_URL = "https://cdn.example.com/cover.png"


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def asset_db(db_core: SqlalchemyCore) -> AssetDatabase:
    return AssetDatabase(db_core)


@pytest.fixture
def images_dir(tmp_path: Path) -> Path:
    return tmp_path / "images"


@pytest.fixture
def downloader(
    client: httpx.AsyncClient, images_dir: Path, asset_db: AssetDatabase
) -> ImageDownloader:
    return ImageDownloader(client, images_dir, asset_db)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_download_writes_file_and_records_asset(
    respx_mock: respx.Router,
    downloader: ImageDownloader,
    asset_db: AssetDatabase,
    images_dir: Path,
):
    respx_mock.get(IMAGE_URL).mock(
        return_value=httpx.Response(
            200, content=b"\x89PNG data", headers={"content-type": "image/png"}
        )
    )

    asset_id = await downloader.download(IMAGE_URL, title="Show")

    asset = await asset_db.get_asset(asset_id)
    assert asset is not None
    assert asset.source_key == source_key_for(IMAGE_URL)
    assert asset.path == f"{source_key_for(IMAGE_URL)}.png"
    assert asset.title == "Show"
    assert (images_dir / asset.path).read_bytes() == b"\x89PNG data"
    assert not list(images_dir.glob(".*.part"))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_download_reuses_existing_asset(
    respx_mock: respx.Router, downloader: ImageDownloader
):
    route = respx_mock.get(IMAGE_URL).mock(
        return_value=httpx.Response(200, content=b"img", headers={"content-type": "image/png"})
    )

    first = await downloader.download(IMAGE_URL)
    second = await downloader.download(IMAGE_URL)

    assert first == second
    assert route.call_count == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_non_image_response_is_rejected(
    respx_mock: respx.Router, downloader: ImageDownloader
):
    respx_mock.get(IMAGE_URL).mock(
        return_value=httpx.Response(
            200, content=b"<html/>", headers={"content-type": "text/html"}
        )
    )

    with pytest.raises(ImageDownloadError) as exc:
        await downloader.download(IMAGE_URL)
    assert exc.value.url == IMAGE_URL


@pytest.mark.unit
@pytest.mark.asyncio
async def test_http_error_is_wrapped(respx_mock: respx.Router, downloader: ImageDownloader):
    respx_mock.get(IMAGE_URL).mock(return_value=httpx.Response(404))

    with pytest.raises(ImageDownloadError):
        await downloader.download(IMAGE_URL)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invalid_url_is_rejected(downloader: ImageDownloader):
    with pytest.raises(ImageDownloadError):
        await downloader.download("cover.png")
