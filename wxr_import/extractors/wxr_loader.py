"""
Loading and validation of WordPress WXR export files.

:func:`load_export` parses the file, collects the namespace bindings it
declares and checks that the ``<generator>`` tag names WordPress 6.0 or
newer.  The ``extract_*`` helpers turn individual ``wp:category``,
``wp:author`` and ``<item>`` nodes into the normalized models consumed by
the importers.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from wxr_import.models import AuthorRecord, CategoryRecord, ImportItem
from wxr_import.utils.errors import ExtractionError, ParseError, ValidationError
from wxr_import.utils.term_meta import SEO_TERM_META_KEY, term_description

MIN_WORDPRESS_MAJOR = 6

# Used when the export does not declare a prefix itself.
DEFAULT_NAMESPACES: Dict[str, str] = {
    "wp": "http://wordpress.org/export/1.2/",
    "content": "http://purl.org/rss/1.0/modules/content/",
    "excerpt": "http://wordpress.org/export/1.2/excerpt/",
    "dc": "http://purl.org/dc/elements/1.1/",
}

_VERSION_PATTERNS = (
    re.compile(r"v=([0-9]+\.?[0-9]*)"),
    re.compile(r"WordPress/?\s*([0-9]+\.?[0-9]*)", re.IGNORECASE),
)

WP_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class WxrDocument:
    path: str
    root: ET.Element
    channel: ET.Element
    namespaces: Dict[str, str] = field(default_factory=dict)
    generator: str = ""
    version: str = ""

    def categories(self) -> List[ET.Element]:
        return self.channel.findall("wp:category", self.namespaces)

    def authors(self) -> List[ET.Element]:
        return self.channel.findall("wp:author", self.namespaces)

    def items(self) -> List[ET.Element]:
        return self.channel.findall("item")

    def attachment_count(self) -> int:
        return sum(1 for item in self.items() if _text(item, "wp:post_type", self.namespaces) == "attachment")


def _text(node: ET.Element, path: str, ns: Dict[str, str]) -> str:
    return node.findtext(path, default="", namespaces=ns) or ""


def parse_export(path: str) -> Tuple[ET.Element, Dict[str, str]]:
    """Parse ``path`` and return the root element plus its namespace bindings.

    Raises:
        ParseError: If the file is not well-formed XML.
    """
    namespaces: Dict[str, str] = {}
    try:
        for _event, (prefix, uri) in ET.iterparse(path, events=("start-ns",)):
            namespaces.setdefault(prefix, uri)
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ParseError(f"Invalid XML file format: {e}") from e
    merged = dict(DEFAULT_NAMESPACES)
    merged.update({prefix: uri for prefix, uri in namespaces.items() if prefix})
    return root, merged


def extract_version(generator: str) -> Optional[str]:
    """
    Pull the version number out of a generator string such as
    ``https://wordpress.org/?v=6.3`` or ``WordPress/6.3``.
    """
    for pattern in _VERSION_PATTERNS:
        m = pattern.search(generator or "")
        if m:
            return m.group(1)
    return None


def validate_generator(generator: str) -> Tuple[str, int]:
    """Return ``(version, major)`` or raise :class:`ValidationError`."""
    generator = (generator or "").strip()
    if not generator:
        raise ValidationError("Invalid WXR file: <generator> tag missing.")
    version = extract_version(generator)
    if version is None:
        raise ValidationError(f"Could not determine WordPress version from generator '{generator}'.")
    major = int(version.split(".")[0])
    if major < MIN_WORDPRESS_MAJOR:
        raise ValidationError(
            f"Unsupported WordPress version ({version}). This tool requires WordPress 6.0 or higher."
        )
    return version, major


def load_export(path: str) -> WxrDocument:
    """Parse and validate a WXR export.  Nothing is written anywhere."""
    root, namespaces = parse_export(path)
    channel = root.find("channel")
    if channel is None:
        raise ValidationError("Invalid WXR file: <channel> element missing.")
    generator = channel.findtext("generator", default="") or ""
    version, _major = validate_generator(generator)
    return WxrDocument(
        path=path,
        root=root,
        channel=channel,
        namespaces=namespaces,
        generator=generator.strip(),
        version=version,
    )


def extract_category(node: ET.Element, ns: Dict[str, str]) -> CategoryRecord:
    wp_id = _text(node, "wp:term_id", ns).strip()
    if not wp_id:
        raise ExtractionError("category node has no term_id")

    description = ""
    for meta in node.findall("wp:termmeta", ns):
        if _text(meta, "wp:meta_key", ns) == SEO_TERM_META_KEY:
            description = term_description(_text(meta, "wp:meta_value", ns))

    return CategoryRecord(
        wp_id=wp_id,
        parent_slug=_text(node, "wp:category_parent", ns).strip(),
        name=_text(node, "wp:cat_name", ns),
        slug=_text(node, "wp:category_nicename", ns).strip(),
        description=description,
    )


def extract_author(node: ET.Element, ns: Dict[str, str]) -> AuthorRecord:
    login = _text(node, "wp:author_login", ns).strip()
    if not login:
        raise ExtractionError("author node has no author_login")
    return AuthorRecord(
        login=login,
        email=_text(node, "wp:author_email", ns).strip(),
        display_name=_text(node, "wp:author_display_name", ns),
    )


def parse_wp_date(value: str) -> Optional[datetime]:
    value = (value or "").strip()
    if not value or value.startswith("0000-00-00"):
        return None
    try:
        return datetime.strptime(value, WP_DATE_FORMAT)
    except ValueError:
        return None


def extract_item(node: ET.Element, ns: Dict[str, str]) -> ImportItem:
    wp_id = _text(node, "wp:post_id", ns).strip()
    if not wp_id:
        raise ExtractionError("item has no post_id")

    categories: List[str] = []
    tags: List[str] = []
    for cat in node.findall("category"):
        domain = cat.get("domain")
        if domain == "category":
            categories.append(cat.get("nicename", ""))
        elif domain == "post_tag":
            tags.append(cat.text or "")

    meta = [
        (_text(m, "wp:meta_key", ns), _text(m, "wp:meta_value", ns))
        for m in node.findall("wp:postmeta", ns)
    ]

    # WordPress exports carry the author login in dc:creator.
    author = _text(node, "wp:post_author", ns).strip() or _text(node, "dc:creator", ns).strip()

    try:
        return ImportItem(
            wp_id=wp_id,
            post_type=_text(node, "wp:post_type", ns).strip(),
            title=_text(node, "title", ns),
            slug=_text(node, "wp:post_name", ns).strip(),
            body_html=_text(node, "content:encoded", ns),
            excerpt_html=_text(node, "excerpt:encoded", ns),
            published_at=parse_wp_date(_text(node, "wp:post_date", ns)),
            published=_text(node, "wp:status", ns).strip() == "publish",
            author_login=author,
            parent_wp_id=_text(node, "wp:post_parent", ns).strip() or "0",
            category_refs=categories,
            tag_refs=tags,
            attachment_url=_text(node, "wp:attachment_url", ns).strip(),
            raw_meta=meta,
        )
    except ValueError as e:
        raise ExtractionError(f"item {wp_id}: {e}") from e
