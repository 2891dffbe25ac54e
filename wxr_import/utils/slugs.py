from __future__ import annotations

import re
from typing import Optional, Tuple

from slugify import slugify


# "<base>-<index>-<sub>" (repeater row with sub-field) or "<base>-<index>"
_NESTED_KEY = re.compile(r"^(.+)-(\d+)-(.+)$")
_FLAT_KEY = re.compile(r"^(.+)-(\d+)$")
_GROUPED_KEY = re.compile(r"^(.+)-(\d+)(-.+)?$")

# Cyrillic letters spelled the way the TV type table expects (cena, celovek,
# izobrazenie, bronirovaniya); the rest follows python-slugify.
_CYRILLIC = {"ц": "c", "ч": "c", "ж": "z", "я": "ya"}
_REPLACEMENTS = [[k, v] for k, v in _CYRILLIC.items()] + [[k.upper(), v.capitalize()] for k, v in _CYRILLIC.items()]


def slugify_key(value: str) -> str:
    """Transliterate ``value`` to ASCII, lowercase it and join words with hyphens.

    Returns an empty string when nothing survives transliteration.
    """
    if not value:
        return ""
    return slugify(value, replacements=_REPLACEMENTS)


def tv_name_for(key: str) -> str:
    """Name under which a raw meta ``key`` is stored; the raw key if it slugifies to nothing."""
    return slugify_key(key) or key


def split_grouped_key(key: str) -> Tuple[str, Optional[int], Optional[str]]:
    """Classify a slugified key.

    ``price-0-amount`` -> ``("price", 0, "amount")``, ``price-1`` ->
    ``("price", 1, None)``, ``price`` -> ``("price", None, None)``.
    """
    m = _NESTED_KEY.match(key)
    if m:
        return m.group(1), int(m.group(2)), m.group(3)
    m = _FLAT_KEY.match(key)
    if m:
        return m.group(1), int(m.group(2)), None
    return key, None, None


def group_base(key: str) -> Optional[str]:
    """Base name of a grouped key, or ``None`` for a scalar key."""
    m = _GROUPED_KEY.match(key)
    return m.group(1) if m else None


def humanize(name: str) -> str:
    """``"tour-dates"`` -> ``"Tour dates"``."""
    text = name.replace("-", " ")
    return text[:1].upper() + text[1:]
