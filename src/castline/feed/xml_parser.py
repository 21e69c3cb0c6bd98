"""Strict XML parsing of feed bodies with lxml."""

from collections.abc import Iterable
import logging
from typing import Any

from lxml import etree

from ..exceptions import XmlMessage, XmlParseError

logger = logging.getLogger(__name__)

ITUNES_DTD_WRONG_CASE = "http://www.itunes.com/DTDs/Podcast-1.0.dtd"
ITUNES_DTD = "http://www.itunes.com/dtds/podcast-1.0.dtd"

_LEVEL_NAMES = {
    "WARNING": "Warning",
    "ERROR": "Error",
    "FATAL": "Fatal Error",
}


def _messages_from_log(error_log: Iterable[Any]) -> list[XmlMessage]:
    return [
        XmlMessage(
            level=_LEVEL_NAMES.get(entry.level_name, "Error"),
            code=entry.type,
            message=entry.message.strip(),
        )
        for entry in error_log
    ]


def parse_feed_xml(body: bytes, feed_url: str | None = None) -> etree._Element:
    """Parse a feed body into an element tree root.

    The miscapitalized iTunes namespace URL that some publishers emit is
    rewritten to the canonical one first, so namespace lookups match.

    Args:
        body: Raw response body.
        feed_url: Feed URL, for error context.

    Returns:
        The document root element.

    Raises:
        XmlParseError: If the body is not well-formed XML.
    """
    body = body.replace(ITUNES_DTD_WRONG_CASE.encode(), ITUNES_DTD.encode())
    parser = etree.XMLParser(
        recover=False,
        resolve_entities=False,
        no_network=True,
        huge_tree=True,
        remove_blank_text=True,
    )
    try:
        root = etree.fromstring(body, parser=parser)
    except etree.XMLSyntaxError as e:
        messages = _messages_from_log(parser.error_log) or _messages_from_log(e.error_log)
        if not messages:
            messages = [XmlMessage(level="Fatal Error", code=e.code, message=str(e.msg).strip())]
        raise XmlParseError(
            "Feed body is not well-formed XML.", feed_url=feed_url, messages=messages
        ) from e

    if root is None:
        raise XmlParseError(
            "Feed body contains no XML document.",
            feed_url=feed_url,
            messages=[XmlMessage(level="Fatal Error", code=4, message="Document is empty")],
        )

    if len(parser.error_log):
        logger.debug(
            "Feed parsed with warnings.",
            extra={
                "feed_url": feed_url,
                "warnings": [str(m) for m in _messages_from_log(parser.error_log)],
            },
        )
    return root
