"""
Top-level package for the WordPress WXR import utility.

This package bundles all components required to load a WordPress export,
materialize its categories, authors, posts and pages as resources of the
target content store, infer template variables for custom fields and
localize remote media.  Modules are split into subpackages:

* :mod:`wxr_import.extractors` – WXR parsing, validation and node extraction
* :mod:`wxr_import.importers` – category, user and post importers plus the template/TV registry
* :mod:`wxr_import.media` – remote media download and validation
* :mod:`wxr_import.stores` – content-store bindings (in-memory, DuckDB)
* :mod:`wxr_import.utils` – error taxonomy, structured logging and helpers

Orchestration is handled in :mod:`wxr_import.import_tool`.
"""
