"""
HTTP transport for remote assets.

A thin wrapper over :mod:`requests` reduced to what the media fetcher
needs: the body, the declared content type and the chain of status lines
(one per redirect hop, the final response last).  Non-2xx responses are
returned, not raised; only connection-level failures raise
:class:`~wxr_import.utils.errors.TransportError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import requests

from wxr_import.utils.errors import TransportError

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass
class FetchResponse:
    content: bytes
    content_type: str = ""
    status: int = 0
    status_lines: List[str] = field(default_factory=list)


class Transport(Protocol):
    def fetch(self, url: str) -> FetchResponse:
        pass


def _status_line(resp: requests.Response) -> str:
    return f"HTTP/1.1 {resp.status_code} {resp.reason or ''}".rstrip()


class HttpTransport:
    def __init__(
        self,
        *,
        timeout: float = 5,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session or requests.Session()

    def fetch(self, url: str) -> FetchResponse:
        try:
            resp = self.session.get(
                url,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            raise TransportError(f"Failed to open URL {url}: {e}") from e
        return FetchResponse(
            content=resp.content,
            content_type=resp.headers.get("Content-Type", ""),
            status=resp.status_code,
            status_lines=[_status_line(r) for r in [*resp.history, resp]],
        )
