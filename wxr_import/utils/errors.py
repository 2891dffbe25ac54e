"""
Error taxonomy and structured logging helpers for the import.

The :mod:`wxr_import.utils.errors` module centralizes the exceptions raised by
the pipeline and the writing of log entries for both failed and successful
per-entity operations.  Each entry is appended to a JSON Lines file under
``reports/import`` so that the information can be reviewed or parsed after a
run.

Fatal errors (:class:`ParseError`, :class:`ValidationError`) stop a run before
anything is written.  Every other error is isolated to the entity being
processed: importers wrap each per-node step in :func:`attempt`, collect the
resulting :class:`Outcome` objects in an :class:`ImportReport` and keep going.

The ``ERRORS`` dictionary maps error or event codes to human readable
messages.  Codes not present in the dictionary fall back to the code itself.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ImportToolError(Exception):
    """Base class for every error raised by the import pipeline."""


class ParseError(ImportToolError):
    """The export is not well-formed XML."""


class ValidationError(ImportToolError):
    """The export has no usable ``<generator>`` tag or is too old."""


class ExtractionError(ImportToolError):
    """A node of the export carries malformed data."""


class PersistenceError(ImportToolError):
    """The content store refused a create, update or delete."""


class TransportError(ImportToolError):
    """A remote asset could not be fetched."""


class ContentValidationError(ImportToolError):
    """A fetched asset has a bad status, a disallowed type or corrupt bytes."""


# Mapping of event codes used throughout the import to descriptive messages.
ERRORS: Dict[str, str] = {
    "CATEGORY_EXTRACT": "Malformed category node",
    "CATEGORY_SAVE": "Failed to save category",
    "USER_IMPORT": "Failed to import user",
    "POST_IMPORT": "Failed to import post",
    "POST_PARENT": "Failed to link page to its parent",
    "CATEGORY_CREATED": "Category created",
    "CATEGORY_REUSED": "Existing category reused",
    "USER_CREATED": "User created",
    "USER_REUSED": "Existing user reused",
    "POST_CREATED": "Post created",
}

_REPORT_DIR = os.path.join("reports", "import")
_ERROR_LOG = os.path.join(_REPORT_DIR, "errors.jsonl")
_OK_LOG = os.path.join(_REPORT_DIR, "success.jsonl")


def _write_jsonl(path: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline to ``path``."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
        f.write("\n")


def report_error(code: str, entity: Dict[str, Any], exc: Optional[BaseException] = None) -> None:
    """Log an error event for ``entity``.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`ERRORS` its value will be used as the message.
    entity:
        A small dictionary describing the entity.  Only the ``slug`` and
        ``title`` keys are referenced if present.
    exc:
        Optional exception instance that triggered the error.
    """
    message = ERRORS.get(code, code)
    entry: Dict[str, Any] = {
        "code": code,
        "message": message,
        "slug": entity.get("slug"),
        "title": entity.get("title"),
    }
    if exc is not None:
        entry["error"] = str(exc)
    print(f"[ERROR] {message} - {entity.get('slug', '')}" + (f": {exc}" if exc else ""))
    _write_jsonl(_ERROR_LOG, entry)


def report_ok(code: str, entity: Dict[str, Any], extra: Optional[Dict[str, Any]] = None) -> None:
    """Log a successful event for ``entity``.

    Unlike :func:`report_error` this does not print; successes are only
    recorded in the JSON Lines file.
    """
    message = ERRORS.get(code, code)
    entry: Dict[str, Any] = {
        "code": code,
        "message": message,
        "slug": entity.get("slug"),
        "title": entity.get("title"),
    }
    if extra:
        entry.update(extra)
    _write_jsonl(_OK_LOG, entry)


@dataclass
class Outcome(Generic[T]):
    """Result of one per-node operation: either ``value`` or ``error``."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def attempt(fn: Callable[[], T]) -> Outcome[T]:
    """Run ``fn`` and capture its return value or the exception it raised."""
    try:
        return Outcome(value=fn())
    except Exception as exc:
        return Outcome(error=exc)


@dataclass
class Failure:
    stage: str
    code: str
    subject: str
    error: str


@dataclass
class ImportReport:
    """Failures collected by one pipeline stage."""

    stage: str
    processed: int = 0
    failures: List[Failure] = field(default_factory=list)

    def record(self, outcome: Outcome[Any], code: str, entity: Dict[str, Any], *, count: bool = True) -> bool:
        """Count ``outcome``; on failure log it and keep it for the summary.

        Stages that visit an entity twice pass ``count=False`` on the second
        visit so ``processed`` stays one per entity.
        """
        if count:
            self.processed += 1
        if outcome.ok:
            return True
        report_error(code, entity, outcome.error)
        subject = entity.get("slug") or entity.get("title") or "?"
        self.failures.append(Failure(self.stage, code, str(subject), str(outcome.error)))
        return False

    def lines(self) -> List[str]:
        return [f"[{f.stage}] {ERRORS.get(f.code, f.code)} '{f.subject}': {f.error}" for f in self.failures]


def console_log(message: str, level: str = "INFO") -> None:
    """Default progress sink when no tool-level logger is supplied."""
    print(f"[{level}] {message}")
