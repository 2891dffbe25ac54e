"""
Media download helpers.

This subpackage fetches remote images and PDFs referenced by imported
content, validates them and stores them under the local media directory.
"""

from .media_fetcher import MediaFetcher
from .transport import FetchResponse, HttpTransport, Transport

__all__ = ["FetchResponse", "HttpTransport", "MediaFetcher", "Transport"]
