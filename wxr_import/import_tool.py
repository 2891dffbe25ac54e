"""
High-level orchestration of the WordPress WXR import.

This module defines a :class:`WordPressImportTool` class that ties together
the extractors, importers, media fetcher and content store into a complete
pipeline.  It validates the export, then either imports it (categories,
users, posts/pages, in that order) or rolls a previous import back (posts,
categories, users, templates).  Progress is printed and appended to
``reports/import/import.log``; per-entity results are written by
:mod:`wxr_import.utils.errors`.

Configuration is supplied via a JSON file path or directly as a dictionary.
Every section is optional; missing keys are filled with defaults, some of
them from environment variables (``WXR_IMPORT_ROOT``, ``WXR_IMPORT_DB``).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from wxr_import.extractors.wxr_loader import WxrDocument, load_export
from wxr_import.importers.category_importer import CategoryImporter
from wxr_import.importers.post_importer import PostImporter
from wxr_import.importers.tv_registry import TemplateRegistry
from wxr_import.importers.user_importer import UserImporter
from wxr_import.media.media_fetcher import MediaFetcher
from wxr_import.media.transport import DEFAULT_USER_AGENT, HttpTransport, Transport
from wxr_import.stores import ContentStore, MemoryContentStore, open_store
from wxr_import.utils.errors import ImportReport

_LOG_DIR = os.path.join("reports", "import")


def default_confirm(question: str, default: bool = True) -> bool:
    suffix = " [Y/n] " if default else " [y/N] "
    answer = input(question + suffix).strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


@dataclass
class ImportSummary:
    category_map: Dict[str, int] = field(default_factory=dict)
    user_map: Dict[str, int] = field(default_factory=dict)
    post_map: Dict[str, int] = field(default_factory=dict)
    failures: List[str] = field(default_factory=list)
    media_errors: List[str] = field(default_factory=list)
    error_log: Optional[str] = None


class WordPressImportTool:
    """
    Encapsulates all state required to import one WXR export into the
    content store: configuration, the store itself, and the per-run
    registry, fetcher and importers built by :meth:`build_pipeline`.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        *,
        config_file: Optional[str] = None,
        store: Optional[ContentStore] = None,
        transport: Optional[Transport] = None,
        confirm: Callable[[str, bool], bool] = default_confirm,
        dry_run: bool = False,
    ) -> None:
        if config_file and os.path.exists(config_file):
            with open(config_file, "r", encoding="utf-8") as f:
                config = json.load(f)
        elif config is None:
            config = {}

        # Ensure essential keys exist to prevent KeyErrors
        config.setdefault("import", {})
        config["import"].setdefault("template_prefix", "WordPress Import")
        config["import"].setdefault("protected_login", "admin")
        config["import"].setdefault("fallback_author_id", 1)
        config["import"].setdefault("atomic_items", True)
        config["import"].setdefault("project_root", os.getenv("WXR_IMPORT_ROOT", os.getcwd()))
        project_root = config["import"]["project_root"]

        config.setdefault("media", {})
        config["media"].setdefault("base_path", os.path.join(project_root, "assets", "images", "wpi"))
        config["media"].setdefault("base_url", "assets/images/wpi")
        config["media"].setdefault("request_delay", 0.2)
        config["media"].setdefault("timeout", 5)
        config["media"].setdefault("user_agent", DEFAULT_USER_AGENT)
        config["media"].setdefault("allow_pdf", True)
        config["media"].setdefault("overwrite_existing", False)
        config["media"].setdefault("downloads_enabled", True)

        config.setdefault("store", {})
        config["store"].setdefault("backend", "duckdb")
        config["store"].setdefault("path", os.getenv("WXR_IMPORT_DB", os.path.join("data", "cms.duckdb")))

        if dry_run:
            config["media"]["downloads_enabled"] = False
            store = store or MemoryContentStore()

        self.config = config
        self.dry_run = dry_run
        self.confirm = confirm
        self._store = store
        self._transport = transport

        self.registry: Optional[TemplateRegistry] = None
        self.fetcher: Optional[MediaFetcher] = None
        self.categories: Optional[CategoryImporter] = None
        self.users: Optional[UserImporter] = None
        self.posts: Optional[PostImporter] = None

    def log_message(self, message: str, level: str = "INFO") -> None:
        print(f"[{level}] {message}")
        os.makedirs(_LOG_DIR, exist_ok=True)
        with open(os.path.join(_LOG_DIR, "import.log"), "a", encoding="utf-8") as f:
            f.write(f"{level}: {message}\n")

    @property
    def store(self) -> ContentStore:
        if self._store is None:
            self._store = open_store(self.config["store"])
        return self._store

    def resolve_input_path(self, input_path: str) -> str:
        """The path as given if it exists, else relative to the project root."""
        if os.path.exists(input_path):
            return input_path
        candidate = os.path.join(self.config["import"]["project_root"], input_path)
        if os.path.exists(candidate):
            return candidate
        raise FileNotFoundError(f"File not found: {input_path} (checked relative to project root too)")

    def load(self, input_path: str) -> WxrDocument:
        """Resolve, parse and validate the export.  Raises before anything is written."""
        path = self.resolve_input_path(input_path)
        doc = load_export(path)
        self.log_message(f"Verified WordPress version: {doc.version}")
        return doc

    def build_pipeline(self) -> None:
        """Create the per-run registry, fetcher and importers."""
        imp = self.config["import"]
        media = self.config["media"]
        self.registry = TemplateRegistry(self.store, prefix=imp["template_prefix"])
        self.fetcher = MediaFetcher(
            media["base_path"],
            media["base_url"],
            transport=self._transport or HttpTransport(timeout=media["timeout"], user_agent=media["user_agent"]),
            request_delay=media["request_delay"],
            allow_pdf=media["allow_pdf"],
            downloads_enabled=media["downloads_enabled"],
            overwrite_existing=media["overwrite_existing"],
            log=self.log_message,
        )
        self.categories = CategoryImporter(self.store, self.registry, log=self.log_message)
        self.users = UserImporter(self.store, protected_login=imp["protected_login"], log=self.log_message)
        self.posts = PostImporter(
            self.store,
            self.registry,
            self.fetcher,
            fallback_author_id=imp["fallback_author_id"],
            atomic_items=imp["atomic_items"],
            log=self.log_message,
        )

    def _ask_downloads(self, doc: WxrDocument) -> None:
        count = doc.attachment_count()
        self.log_message(f"Found {count} potential media files to download.")
        if not count or not self.fetcher.downloads_enabled:
            return
        if self.confirm(f"Do you want to download these {count} files? (Existing files will be skipped)", True):
            self.log_message("Downloads enabled. Existing files will be skipped.")
        else:
            self.fetcher.downloads_enabled = False
            self.log_message("Media downloads disabled.")

    def run_import(self, input_path: str) -> ImportSummary:
        doc = self.load(input_path)
        self.log_message(f"Starting Import from: {doc.path}")
        self.build_pipeline()
        if not self.fetcher.allow_pdf:
            self.log_message("PDF downloads disabled.")

        summary = ImportSummary()
        summary.category_map = self.categories.import_document(doc)
        summary.user_map = self.users.import_document(doc)
        self.log_message("Analyzing Media Files...")
        self._ask_downloads(doc)
        summary.post_map = self.posts.import_document(doc, summary.category_map, summary.user_map)

        reports: List[ImportReport] = [self.categories.report, self.users.report, self.posts.report]
        for report in reports:
            summary.failures.extend(report.lines())
        summary.media_errors = list(self.posts.errors)

        self.log_message(
            f"Import completed: {len(summary.category_map)} categories, {len(summary.user_map)} users, "
            f"{len(summary.post_map)} posts/pages."
        )
        if summary.failures:
            self.log_message(f"There were {len(summary.failures)} failures:", "WARNING")
            for line in summary.failures:
                self.log_message(f" - {line}", "WARNING")
        if summary.media_errors:
            self.log_message(f"There were {len(summary.media_errors)} image download failures:", "WARNING")
            for error in summary.media_errors:
                self.log_message(f" - {error}", "WARNING")
            if self.confirm("Do you want to save the error log to a file?", True):
                summary.error_log = self.save_error_log(summary.media_errors)
                self.log_message(f"Log saved to {os.path.basename(summary.error_log)}")
        return summary

    def save_error_log(self, errors: List[str]) -> str:
        filename = "import_errors_" + datetime.now().strftime("%Y-%m-%d_%H-%M-%S") + ".log"
        log_path = os.path.join(self.config["import"]["project_root"], filename)
        with open(log_path, "w", encoding="utf-8") as f:
            f.write("\n".join(errors))
        return log_path

    def run_rollback(self, input_path: str) -> bool:
        """Undo an import of ``input_path``.  Returns False when the operator declines."""
        doc = self.load(input_path)
        if not self.confirm(
            "WARNING: This will PERMANENTLY DELETE all imported data! Are you sure you want to proceed?", False
        ):
            self.log_message("Rollback aborted.")
            return False

        self.log_message(f"Rolling back import based on file: {doc.path}")
        self.build_pipeline()
        self.posts.rollback(doc)
        self.categories.rollback(doc)
        self.users.rollback(doc)
        removed = self.registry.rollback()
        self.log_message(f"Removed {len(removed)} templates.")
        self.log_message("Rollback Complete.")
        return True
