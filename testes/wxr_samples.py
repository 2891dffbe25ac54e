"""Builders for small WXR exports and a canned HTTP transport used across the tests."""

import io
import os
import struct
import sys
import zlib
from typing import Dict, List, Optional

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from wxr_import.media.transport import FetchResponse
from wxr_import.utils.errors import TransportError

WXR_HEADER = """<?xml version="1.0" encoding="UTF-8" ?>
<rss version="2.0"
    xmlns:excerpt="http://wordpress.org/export/1.2/excerpt/"
    xmlns:content="http://purl.org/rss/1.0/modules/content/"
    xmlns:wfw="http://wellformedweb.org/CommentAPI/"
    xmlns:dc="http://purl.org/dc/elements/1.1/"
    xmlns:wp="http://wordpress.org/export/1.2/">
<channel>
    <title>Travel Blog</title>
    <generator>{generator}</generator>
"""

WXR_FOOTER = """
</channel>
</rss>
"""


def category_xml(term_id, slug, name=None, parent="", termmeta=""):
    return f"""
    <wp:category>
        <wp:term_id>{term_id}</wp:term_id>
        <wp:category_nicename><![CDATA[{slug}]]></wp:category_nicename>
        <wp:category_parent><![CDATA[{parent}]]></wp:category_parent>
        <wp:cat_name><![CDATA[{name or slug.title()}]]></wp:cat_name>
        {termmeta}
    </wp:category>"""


def author_xml(login, email="", display_name=""):
    return f"""
    <wp:author>
        <wp:author_id>1</wp:author_id>
        <wp:author_login><![CDATA[{login}]]></wp:author_login>
        <wp:author_email><![CDATA[{email or login + '@example.com'}]]></wp:author_email>
        <wp:author_display_name><![CDATA[{display_name or login.title()}]]></wp:author_display_name>
    </wp:author>"""


def item_xml(
    post_id,
    post_type="post",
    slug="",
    title="",
    content="",
    excerpt="",
    status="publish",
    author="",
    parent="0",
    categories: Optional[List[tuple]] = None,
    meta: Optional[List[tuple]] = None,
    attachment_url="",
    post_date="2024-01-02 10:00:00",
):
    cats = "".join(
        f'\n        <category domain="{domain}" nicename="{nicename}"><![CDATA[{label}]]></category>'
        for domain, nicename, label in (categories or [])
    )
    metas = "".join(
        f"""
        <wp:postmeta>
            <wp:meta_key><![CDATA[{key}]]></wp:meta_key>
            <wp:meta_value><![CDATA[{value}]]></wp:meta_value>
        </wp:postmeta>"""
        for key, value in (meta or [])
    )
    attachment = f"<wp:attachment_url><![CDATA[{attachment_url}]]></wp:attachment_url>" if attachment_url else ""
    return f"""
    <item>
        <title><![CDATA[{title}]]></title>
        <dc:creator><![CDATA[{author}]]></dc:creator>
        <content:encoded><![CDATA[{content}]]></content:encoded>
        <excerpt:encoded><![CDATA[{excerpt}]]></excerpt:encoded>
        <wp:post_id>{post_id}</wp:post_id>
        <wp:post_date><![CDATA[{post_date}]]></wp:post_date>
        <wp:post_name><![CDATA[{slug}]]></wp:post_name>
        <wp:status><![CDATA[{status}]]></wp:status>
        <wp:post_parent>{parent}</wp:post_parent>
        <wp:post_type><![CDATA[{post_type}]]></wp:post_type>
        {attachment}{cats}{metas}
    </item>"""


def build_wxr(body: str, generator: str = "https://wordpress.org/?v=6.4.2") -> str:
    return WXR_HEADER.format(generator=generator) + body + WXR_FOOTER


def scenario_body() -> str:
    """One category, one author, one page and one post with a custom field."""
    return (
        category_xml(5, "travel", "Travel")
        + author_xml("alice")
        + item_xml(10, post_type="page", slug="about", title="About", author="alice")
        + item_xml(
            11,
            slug="trip",
            title="Trip",
            content="<p>Off we go</p>",
            author="alice",
            categories=[("category", "travel", "Travel")],
            meta=[("price", "120")],
        )
    )


def png_bytes(color: str = "red") -> bytes:
    from PIL import Image

    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color=color).save(buf, format="PNG")
    return buf.getvalue()


def oversized_png(width: int = 30000, height: int = 30000) -> bytes:
    """PNG signature plus a header chunk declaring a huge canvas; no pixel data."""
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    chunk = struct.pack(">I", len(ihdr)) + b"IHDR" + ihdr + struct.pack(">I", zlib.crc32(b"IHDR" + ihdr))
    iend = struct.pack(">I", 0) + b"IEND" + struct.pack(">I", zlib.crc32(b"IEND"))
    return b"\x89PNG\r\n\x1a\n" + chunk + iend


def ok_response(content: bytes, content_type: str = "image/png") -> FetchResponse:
    return FetchResponse(content=content, content_type=content_type, status=200, status_lines=["HTTP/1.1 200 OK"])


class FakeTransport:
    """Serves canned responses and remembers every URL requested."""

    def __init__(self, responses: Optional[Dict[str, FetchResponse]] = None) -> None:
        self.responses = responses or {}
        self.calls: List[str] = []

    def fetch(self, url: str) -> FetchResponse:
        self.calls.append(url)
        if url not in self.responses:
            raise TransportError(f"Failed to open URL {url}: connection refused")
        return self.responses[url]
