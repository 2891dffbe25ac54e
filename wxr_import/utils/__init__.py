"""
Utility helpers used by the import pipeline.

This subpackage exposes the error taxonomy with structured logging, slug
helpers, HTML image-URL rewriting and SEO term-meta decoding.
"""

from .errors import (
    ERRORS,
    ContentValidationError,
    ExtractionError,
    ImportReport,
    ImportToolError,
    Outcome,
    ParseError,
    PersistenceError,
    TransportError,
    ValidationError,
    attempt,
    report_error,
    report_ok,
)
from .slugs import slugify_key, tv_name_for

__all__ = [
    "ERRORS",
    "ContentValidationError",
    "ExtractionError",
    "ImportReport",
    "ImportToolError",
    "Outcome",
    "ParseError",
    "PersistenceError",
    "TransportError",
    "ValidationError",
    "attempt",
    "report_error",
    "report_ok",
    "slugify_key",
    "tv_name_for",
]
