"""
Content-store bindings.

The importers only talk to a :class:`~wxr_import.stores.base.ContentStore`.
:func:`open_store` picks the implementation named in the ``store`` section of
the configuration.
"""

from typing import Any, Dict

from .base import ContentStore
from .memory_store import MemoryContentStore


def open_store(cfg: Dict[str, Any]) -> ContentStore:
    backend = cfg.get("backend", "duckdb")
    if backend == "memory":
        return MemoryContentStore()
    if backend == "duckdb":
        from .duckdb_store import DuckDBContentStore

        return DuckDBContentStore(cfg.get("path") or "data/cms.duckdb")
    raise ValueError(f"Unknown store backend: {backend}")


__all__ = ["ContentStore", "MemoryContentStore", "open_store"]
