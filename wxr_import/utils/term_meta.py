"""
Decoding of SEO-plugin term settings.

The ``autodescription-term-settings`` term meta is stored either as JSON or,
on older sites, in PHP's ``serialize()`` format.  Both decoders are tried in
that order; anything that decodes to neither gives an empty description.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import phpserialize

SEO_TERM_META_KEY = "autodescription-term-settings"


def decode_term_settings(raw: str) -> Optional[Any]:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        pass
    try:
        return phpserialize.loads(raw.encode("utf-8"), decode_strings=True)
    except Exception:
        return None


def term_description(raw: str) -> str:
    data = decode_term_settings(raw)
    if isinstance(data, dict):
        value = data.get("description")
        if isinstance(value, str):
            return value
        if value is not None and not isinstance(value, (dict, list)):
            return str(value)
    return ""
