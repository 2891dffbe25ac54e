from __future__ import annotations

from html import escape
from typing import Callable, List

from bs4 import BeautifulSoup


def image_sources(html: str) -> List[str]:
    """Distinct ``<img src>`` values of ``html`` in document order."""
    if not html or "<img" not in html.lower():
        return []
    soup = BeautifulSoup(html, "html.parser")
    seen = set()
    urls: List[str] = []
    for img in soup.find_all("img"):
        src = img.get("src")
        if src and src not in seen:
            seen.add(src)
            urls.append(src)
    return urls


def rewrite_image_sources(html: str, localize: Callable[[str], str]) -> str:
    """
    Pass every remote image URL of ``html`` through ``localize`` and substitute
    the result in place.  The markup itself is left untouched; only the URL
    text changes, so entities and formatting survive the rewrite.
    """
    if not html:
        return html
    for url in image_sources(html):
        if not url.startswith("http"):
            continue
        new_url = localize(url)
        if new_url == url:
            continue
        if url in html:
            html = html.replace(url, new_url)
        else:
            # src attributes written with entity-escaped ampersands
            html = html.replace(escape(url, quote=False), new_url)
    return html
