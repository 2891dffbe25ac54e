"""
Extractors for WordPress export files.

This subpackage parses and validates WXR exports and normalizes their
categories, authors and items into the models used by the importers.
"""

from .wxr_loader import (
    WxrDocument,
    extract_author,
    extract_category,
    extract_item,
    load_export,
    validate_generator,
)

__all__ = [
    "WxrDocument",
    "extract_author",
    "extract_category",
    "extract_item",
    "load_export",
    "validate_generator",
]
