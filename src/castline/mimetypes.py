"""MIME type helpers for feed media and images.

Registers podcast-specific mappings missing on some platforms and classifies
URLs by the extension of their path.
"""

import mimetypes
from pathlib import PurePosixPath
from typing import Literal
from urllib.parse import urlparse

mimetypes.add_type("audio/mp4", ".m4a")
mimetypes.add_type("audio/flac", ".flac")
mimetypes.add_type("audio/ogg", ".oga")
mimetypes.add_type("audio/ogg", ".opus")
mimetypes.add_type("audio/aac", ".aac")
mimetypes.add_type("video/mp4", ".m4v")
mimetypes.add_type("video/webm", ".webm")
mimetypes.add_type("image/webp", ".webp")

MediaType = Literal["audio", "video"]


def is_http_url(url: str) -> bool:
    """Whether ``url`` is an absolute http(s) URL."""
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def mime_type_for_url(url: str) -> str | None:
    """Guess the MIME type of a URL from its path extension, ignoring the query."""
    suffix = PurePosixPath(urlparse(url.strip()).path).suffix.lower()
    if not suffix:
        return None
    mime, _ = mimetypes.guess_type(f"file{suffix}")
    return mime


def media_type_for_url(url: str) -> MediaType | None:
    """Classify a URL as ``audio`` or ``video`` by its extension."""
    return media_type_for_mime(mime_type_for_url(url) or "")


def media_type_for_mime(mime_type: str) -> MediaType | None:
    """Classify a MIME type string such as ``audio/mpeg``."""
    mime = mime_type.lower()
    if "audio" in mime:
        return "audio"
    if "video" in mime:
        return "video"
    return None


def is_image_url(url: str) -> bool:
    """Whether ``url`` is an http(s) URL with an image file extension."""
    if not is_http_url(url):
        return False
    mime = mime_type_for_url(url)
    return mime is not None and mime.startswith("image/")


__all__ = [
    "MediaType",
    "is_http_url",
    "is_image_url",
    "media_type_for_mime",
    "media_type_for_url",
    "mime_type_for_url",
    "mimetypes",
]
