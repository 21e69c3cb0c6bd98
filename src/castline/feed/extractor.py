"""Extraction of feed and episode records from a parsed RSS document.

Podcast feeds describe the same field in several vocabularies (plain RSS,
iTunes, Atom, Media RSS, Podcasting 2.0). Each field is read through an
ordered fallback chain and the first non-empty value wins.
"""

from collections.abc import Iterable
import hashlib
import logging

from lxml import etree

from ..mimetypes import (
    MediaType,
    is_http_url,
    is_image_url,
    media_type_for_mime,
    media_type_for_url,
)
from .types import EpisodeRecord, FeedRecord, Owner, PodcastCategory, Transcript

logger = logging.getLogger(__name__)

NAMESPACES = {
    "itunes": "http://www.itunes.com/dtds/podcast-1.0.dtd",
    "atom": "http://www.w3.org/2005/Atom",
    "podcast": "https://podcastindex.org/namespace/1.0",
    "media": "http://search.yahoo.com/mrss/",
    "content": "http://purl.org/rss/1.0/modules/content/",
}


def _md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


def _text(el: etree._Element | None) -> str:
    if el is None:
        return ""
    return "".join(el.itertext()).strip()


def _find_text(parent: etree._Element, path: str) -> str:
    return _text(parent.find(path, NAMESPACES))


def _first_text(parent: etree._Element, paths: Iterable[str]) -> str:
    for path in paths:
        for el in parent.findall(path, NAMESPACES):
            value = _text(el)
            if value:
                return value
    return ""


def _attr(el: etree._Element | None, name: str) -> str:
    if el is None:
        return ""
    return (el.get(name) or "").strip()


def _unique(values: Iterable[str]) -> list[str]:
    return [v for v in dict.fromkeys(v.strip() for v in values) if v]


def _category_key(label: str) -> str:
    return label.lower().replace(" ", "")


def _authors(parent: etree._Element) -> list[str]:
    names = [_text(el) for el in parent.findall("itunes:author", NAMESPACES)]
    names += [_text(el) for el in parent.findall("atom:author/atom:name", NAMESPACES)]
    return _unique(names)


class FeedExtractor:
    """Turn a parsed RSS ``<rss>`` root into a :class:`FeedRecord`."""

    # --- Items ---

    @staticmethod
    def _media(item: etree._Element) -> tuple[str, MediaType] | None:
        candidates: list[tuple[str, str]] = []
        for content in item.findall("media:group/media:content", NAMESPACES):
            candidates.append((_attr(content, "url"), _attr(content, "type")))
        for content in item.findall("media:content", NAMESPACES):
            candidates.append((_attr(content, "url"), _attr(content, "type")))
        for url, mime in candidates:
            if url and (from_mime := media_type_for_mime(mime)):
                return url, media_type_for_url(url) or from_mime

        enclosures = [
            (_attr(enc, "url"), _attr(enc, "type")) for enc in item.findall("enclosure")
        ]
        for url, mime in enclosures:
            if url and (from_mime := media_type_for_mime(mime)):
                return url, media_type_for_url(url) or from_mime
        for url, _ in enclosures:
            if url and (media_type := media_type_for_url(url)):
                return url, media_type
        return None

    @staticmethod
    def _description(item: etree._Element) -> str:
        return _first_text(
            item,
            (
                "atom:content",
                "content:encoded",
                "description",
                "atom:summary",
                "itunes:summary",
                "itunes:subtitle",
            ),
        )

    @staticmethod
    def _publish_date(item: etree._Element) -> str:
        return _first_text(item, ("pubDate", "atom:published", "atom:updated"))

    @staticmethod
    def _link(item: etree._Element, media_url: str) -> str:
        for el in item.findall("atom:link", NAMESPACES):
            if href := _attr(el, "href"):
                return href
        if link := _find_text(item, "link"):
            return link
        guid = item.find("guid")
        if guid is not None and guid.get("isPermaLink", "").strip().lower() != "false":
            value = _text(guid)
            if is_http_url(value):
                return value
        return media_url

    @staticmethod
    def _featured_image(item: etree._Element) -> str:
        candidates = [_attr(item.find("itunes:image", NAMESPACES), "href")]
        candidates += [
            _attr(enc, "url")
            for enc in item.findall("enclosure")
            if "image" in _attr(enc, "type").lower()
        ]
        candidates += [
            _attr(content, "url")
            for content in item.findall(".//media:content", NAMESPACES)
            if _attr(content, "medium").lower() == "image"
        ]
        for url in candidates:
            if url and is_image_url(url):
                return url
        return ""

    @staticmethod
    def _categories(item: etree._Element) -> dict[str, str]:
        labels = [_text(el) for el in item.findall("category")]
        labels += [_attr(el, "term") for el in item.findall("atom:category", NAMESPACES)]
        return {_category_key(label): label for label in _unique(labels)}

    @staticmethod
    def _transcripts(item: etree._Element) -> list[Transcript]:
        transcripts: list[Transcript] = []
        for el in item.findall("podcast:transcript", NAMESPACES):
            url, mime = _attr(el, "url"), _attr(el, "type")
            if not url or not mime:
                continue
            transcripts.append(
                Transcript(
                    url=url, type=mime, lang=_attr(el, "language"), rel=_attr(el, "rel")
                )
            )
        return transcripts

    @staticmethod
    def _chapters(item: etree._Element) -> dict[str, str]:
        chapters: dict[str, str] = {}
        for el in item.findall("podcast:chapters", NAMESPACES):
            url, mime = _attr(el, "url"), _attr(el, "type")
            if url and mime:
                chapters[url] = mime
        return chapters

    def extract_item(
        self, item: etree._Element, feed_authors: list[str]
    ) -> tuple[str, EpisodeRecord] | None:
        """Extract one ``<item>``.

        Args:
            item: The item element.
            feed_authors: Channel-level authors, used when the item has none.

        Returns:
            ``(episode key, record)``, or None when the item has no playable media.
        """
        media = self._media(item)
        if media is None:
            logger.debug(
                "Skipping item without media.",
                extra={"item_title": _find_text(item, "title")},
            )
            return None
        media_url, media_type = media

        title = _find_text(item, "title")
        episode_id = (
            _find_text(item, "atom:id") or _find_text(item, "guid") or _md5(title)
        )
        authors = _authors(item) or feed_authors
        season = _find_text(item, "itunes:season")
        episode = _find_text(item, "itunes:episode")
        if season and episode:
            episode = f"{season}-{episode}"

        record = EpisodeRecord(
            title=title,
            description=self._description(item),
            author=authors[0] if authors else "",
            published=self._publish_date(item),
            link=self._link(item, media_url),
            media_url=media_url,
            media_type=media_type,
            featured_image=self._featured_image(item),
            episode=episode,
            season=season,
            categories=self._categories(item),
            episode_id=episode_id,
            duration=_find_text(item, "itunes:duration"),
            episode_type=_find_text(item, "itunes:episodeType"),
            transcripts=self._transcripts(item),
            chapters=self._chapters(item),
        )
        return _md5(media_url), record

    # --- Channel ---

    @staticmethod
    def _podcast_categories(channel: etree._Element) -> dict[str, PodcastCategory]:
        podcats: dict[str, PodcastCategory] = {}
        for el in channel.findall("itunes:category", NAMESPACES):
            label = _attr(el, "text")
            if not label:
                continue
            subcats = _unique(
                _attr(sub, "text") for sub in el.findall("itunes:category", NAMESPACES)
            )
            podcats[_category_key(label)] = PodcastCategory(label=label, subcats=subcats)
        return podcats

    @staticmethod
    def _funding(channel: etree._Element) -> dict[str, str]:
        funding: dict[str, str] = {}
        for el in channel.findall("podcast:funding", NAMESPACES):
            if url := _attr(el, "url"):
                funding[url] = _text(el)
        return funding

    def extract(self, root: etree._Element) -> FeedRecord | None:
        """Extract the channel and its playable items.

        Args:
            root: Parsed document root.

        Returns:
            The feed record, or None if the document has no ``<channel>``.
        """
        channel = root.find("channel")
        if channel is None:
            return None

        feed_authors = _authors(channel)
        items: dict[str, EpisodeRecord] = {}
        for item in channel.findall("item"):
            extracted = self.extract_item(item, feed_authors)
            if extracted is not None:
                key, record = extracted
                items[key] = record

        owner_el = channel.find("itunes:owner", NAMESPACES)
        owner = (
            Owner(
                name=_find_text(owner_el, "itunes:name"),
                email=_find_text(owner_el, "itunes:email"),
            )
            if owner_el is not None
            else Owner()
        )

        record = FeedRecord(
            title=_find_text(channel, "title"),
            description=_first_text(channel, ("description", "itunes:summary")),
            link=_first_text(channel, ("link",)),
            image=_attr(channel.find("itunes:image", NAMESPACES), "href")
            or _find_text(channel, "image/url"),
            copyright=_find_text(channel, "copyright"),
            author=feed_authors[0] if feed_authors else "",
            podcats=self._podcast_categories(channel),
            owner=owner,
            funding=self._funding(channel),
            items=items,
        )
        record.refresh_derived()
        return record
