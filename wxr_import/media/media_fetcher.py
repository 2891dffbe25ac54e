"""
Download of remote media referenced by imported content.

:class:`MediaFetcher` turns a remote image (or PDF) URL into a reference to
a local copy stored under ``<base_path>/YYYY/MM/<slug>.<ext>``.  Fetching is
best effort: every failure is recorded in :attr:`MediaFetcher.errors` and the
original URL is handed back, so a broken asset never stops an import.
"""

from __future__ import annotations

import io
import os
import re
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from PIL import Image, UnidentifiedImageError

from wxr_import.media.transport import FetchResponse, HttpTransport, Transport
from wxr_import.utils.errors import ContentValidationError, TransportError
from wxr_import.utils.slugs import slugify_key

MIME_EXTENSIONS: Dict[str, str] = {
    "image/jpeg": "jpg",
    "image/pjpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "application/pdf": "pdf",
}
DEFAULT_EXTENSION = "jpg"

_DATE_PATH = re.compile(r"/(\d{4})/(\d{2})/")
_STATUS_LINE = re.compile(r"^HTTP/\d(?:\.\d)?\s+(\d{3})", re.IGNORECASE)


def split_filename(url: str) -> Tuple[str, Optional[str]]:
    """``https://x/a/My Photo.JPG?w=1`` -> ``("My Photo", "JPG")``."""
    name = os.path.basename(unquote(urlparse(url).path))
    stem, ext = os.path.splitext(name)
    if not stem and ext:
        stem, ext = ext, ""
    return stem or "image", ext.lstrip(".") or None


def date_subpath(url: str, now: Optional[datetime] = None) -> str:
    m = _DATE_PATH.search(url)
    if m:
        return f"{m.group(1)}/{m.group(2)}"
    return (now or datetime.now()).strftime("%Y/%m")


def final_status(response: FetchResponse) -> int:
    """Status of the last status line; redirects report one line per hop."""
    status = response.status
    for line in response.status_lines:
        m = _STATUS_LINE.match(line)
        if m:
            status = int(m.group(1))
    return status


def is_image(content: bytes) -> bool:
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError):
        return False
    return True


class MediaFetcher:
    def __init__(
        self,
        base_path: str,
        base_url: str,
        *,
        transport: Optional[Transport] = None,
        request_delay: float = 0.2,
        allow_pdf: bool = True,
        downloads_enabled: bool = True,
        overwrite_existing: bool = False,
        sleep_fn: Callable[[float], None] = time.sleep,
        log: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.base_path = base_path
        self.base_url = base_url.rstrip("/")
        self.transport = transport or HttpTransport()
        self.request_delay = request_delay
        self.allow_pdf = allow_pdf
        self.downloads_enabled = downloads_enabled
        self.overwrite_existing = overwrite_existing
        self.sleep_fn = sleep_fn
        self.log = log
        self.errors: List[str] = []

    def _reference(self, date_path: str, filename: str) -> str:
        return f"{self.base_url}/{date_path}/{filename}"

    def _record(self, message: str, level: str = "WARNING") -> None:
        self.errors.append(message)
        if self.log:
            self.log(message, level)

    def fetch(self, url: str) -> str:
        """
        Return a local reference for ``url``, downloading it when needed.

        Never raises: on any failure the error is recorded and ``url`` itself
        is returned.
        """
        if not self.downloads_enabled:
            return url

        if self.request_delay:
            self.sleep_fn(self.request_delay)

        try:
            return self._download(url)
        except (TransportError, ContentValidationError) as e:
            self._record(str(e))
        except Exception as e:
            self._record(f"Exception downloading {url}: {e}", level="ERROR")
        return url

    def _download(self, url: str) -> str:
        stem, ext = split_filename(url)
        date_path = date_subpath(url)
        full_dir = os.path.join(self.base_path, *date_path.split("/"))
        clean_name = slugify_key(stem) or "image"

        if ext and not self.overwrite_existing:
            filename = f"{clean_name}.{ext}"
            if os.path.exists(os.path.join(full_dir, filename)):
                return self._reference(date_path, filename)

        response = self.transport.fetch(url)

        status = final_status(response)
        if status != 200:
            last = response.status_lines[-1] if response.status_lines else str(status)
            raise ContentValidationError(f"HTTP Error for {url}: {last}")

        content_type = (response.content_type or "").strip()
        mime = content_type.split(";")[0].strip().lower()
        if mime.startswith("application/pdf") and not self.allow_pdf:
            raise ContentValidationError(f"Skipped PDF {url} (PDF downloads are disabled)")
        if not (mime.startswith("image/") or mime.startswith("application/pdf")):
            raise ContentValidationError(f"Invalid Content-Type for {url}: {content_type or 'unknown'}")

        content = response.content or b""
        if not (self.allow_pdf and content[:4] == b"%PDF") and not is_image(content):
            raise ContentValidationError(f"Invalid image data for {url}")

        if not ext:
            ext = MIME_EXTENSIONS.get(mime, DEFAULT_EXTENSION)

        os.makedirs(full_dir, exist_ok=True)
        filename = f"{clean_name}.{ext}"
        local_path = os.path.join(full_dir, filename)

        # The extension may only be known now.
        if os.path.exists(local_path) and not self.overwrite_existing:
            return self._reference(date_path, filename)

        with open(local_path, "wb") as f:
            f.write(content)
        return self._reference(date_path, filename)
