"""Tests for URL and MIME type classification helpers."""

import pytest

from castline.mimetypes import (
    is_http_url,
    is_image_url,
    media_type_for_mime,
    media_type_for_url,
    mime_type_for_url,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://example.com/feed.xml", True),
        ("http://example.com", True),
        ("  https://example.com/feed  ", True),
        ("ftp://example.com/feed.xml", False),
        ("example.com/feed.xml", False),
        ("https://", False),
        ("", False),
    ],
)
def test_is_http_url(url: str, expected: bool):
    assert is_http_url(url) is expected


@pytest.mark.unit
@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://cdn.example.com/ep.mp3", "audio/mpeg"),
        ("https://cdn.example.com/ep.M4A?token=abc", "audio/mp4"),
        ("https://cdn.example.com/ep.opus", "audio/ogg"),
        ("https://cdn.example.com/ep.m4v", "video/mp4"),
        ("https://cdn.example.com/cover.webp", "image/webp"),
        ("https://cdn.example.com/episode", None),
    ],
)
def test_mime_type_for_url(url: str, expected: str | None):
    assert mime_type_for_url(url) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://cdn.example.com/ep.mp3", "audio"),
        ("https://cdn.example.com/ep.mp4", "video"),
        ("https://cdn.example.com/ep.webm", "video"),
        ("https://cdn.example.com/cover.jpg", None),
        ("https://cdn.example.com/stream", None),
    ],
)
def test_media_type_for_url(url: str, expected: str | None):
    assert media_type_for_url(url) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    ("mime", "expected"),
    [
        ("audio/mpeg", "audio"),
        ("Video/MP4", "video"),
        ("application/octet-stream", None),
        ("", None),
    ],
)
def test_media_type_for_mime(mime: str, expected: str | None):
    assert media_type_for_mime(mime) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://cdn.example.com/cover.jpg", True),
        ("https://cdn.example.com/cover.PNG?w=300", True),
        ("https://cdn.example.com/cover", False),
        ("https://cdn.example.com/ep.mp3", False),
        ("file:///tmp/cover.jpg", False),
    ],
)
def test_is_image_url(url: str, expected: bool):
    assert is_image_url(url) is expected
