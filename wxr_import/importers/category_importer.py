"""
Import of WordPress categories as container resources.

Categories are matched to existing resources by slug (the resource alias),
never by WordPress id, so importing the same export twice reuses the
resources created the first time.  Parents may appear after their children
in the export, hence the separate collect, create and link passes.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, Optional

from wxr_import.extractors.wxr_loader import WxrDocument, extract_category
from wxr_import.importers.tv_registry import TemplateRegistry
from wxr_import.models import CategoryRecord, Resource
from wxr_import.stores.base import ContentStore
from wxr_import.utils.errors import ImportReport, attempt, console_log, report_ok


class CategoryImporter:
    def __init__(
        self,
        store: ContentStore,
        registry: TemplateRegistry,
        *,
        log: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.log = log or console_log
        self.report = ImportReport("categories")

    def collect(self, doc: WxrDocument) -> Dict[str, CategoryRecord]:
        nodes = doc.categories()
        categories: Dict[str, CategoryRecord] = {}
        for index, node in enumerate(nodes, start=1):
            outcome = attempt(lambda: extract_category(node, doc.namespaces))
            if self.report.record(outcome, "CATEGORY_EXTRACT", {"slug": f"category #{index}"}):
                categories[outcome.value.wp_id] = outcome.value
        return categories

    def _materialize(self, cat: CategoryRecord, template_id: int) -> int:
        existing = self.store.find_resource_by_alias(cat.slug)
        if existing is not None:
            if existing.template_id == 0:
                existing.template_id = template_id
                self.store.save_resource(existing)
            report_ok("CATEGORY_REUSED", {"slug": cat.slug, "title": cat.name}, {"id": existing.id})
            return existing.id

        resource = self.store.create_resource(
            Resource(
                title=cat.name,
                alias=cat.slug,
                parent=0,
                template_id=template_id,
                published=True,
                is_container=False,
                intro=cat.description,
                body="",
                created_at=int(time.time()),
            )
        )
        report_ok("CATEGORY_CREATED", {"slug": cat.slug, "title": cat.name}, {"id": resource.id})
        return resource.id

    def _mark_container(self, resource_id: int) -> None:
        parent = self.store.find_resource(resource_id)
        if parent is not None and not parent.is_container:
            parent.is_container = True
            self.store.save_resource(parent)

    def _link_parent(self, cat: CategoryRecord, parent_cms_id: int) -> None:
        res = self.store.find_resource(cat.cms_id)
        if res is None:
            return
        if res.parent != parent_cms_id:
            res.parent = parent_cms_id
            self.store.save_resource(res)
        self._mark_container(parent_cms_id)

    def link_hierarchy(self, categories: Dict[str, CategoryRecord]) -> None:
        # Parents are referenced by slug: slug -> WordPress id -> resource id.
        slug_to_wp_id = {cat.slug: wp_id for wp_id, cat in categories.items()}
        for cat in categories.values():
            if not cat.parent_slug or cat.parent_slug not in slug_to_wp_id:
                continue
            parent_cms_id = categories[slug_to_wp_id[cat.parent_slug]].cms_id
            if not cat.cms_id or not parent_cms_id:
                continue
            outcome = attempt(lambda: self._link_parent(cat, parent_cms_id))
            if not outcome.ok:
                self.log(f"Could not link category '{cat.slug}' to '{cat.parent_slug}': {outcome.error}", "DEBUG")

    def import_document(self, doc: WxrDocument) -> Dict[str, int]:
        """Import all categories of ``doc``; returns WordPress term id -> resource id."""
        self.log("Step 1: Importing Categories...", "INFO")
        categories = self.collect(doc)

        template_id = self.registry.get_template_id("Category")
        total = len(categories)
        for done, cat in enumerate(categories.values(), start=1):
            outcome = attempt(lambda: self._materialize(cat, template_id))
            if self.report.record(outcome, "CATEGORY_SAVE", {"slug": cat.slug, "title": cat.name}, count=False):
                cat.cms_id = outcome.value
            if done % 50 == 0 or done == total:
                self.log(f"Categories processed: {done}/{total}", "INFO")

        self.link_hierarchy(categories)
        self.log("Categories Imported.", "INFO")
        return {wp_id: cat.cms_id for wp_id, cat in categories.items() if cat.cms_id}

    def rollback(self, doc: WxrDocument) -> int:
        """Force-delete the resource of every category slug in ``doc``."""
        self.log("Deleting Categories...", "INFO")
        deleted = 0
        for node in doc.categories():
            slug = (node.findtext("wp:category_nicename", default="", namespaces=doc.namespaces) or "").strip()
            if not slug:
                continue
            res = self.store.find_resource_by_alias(slug, with_trashed=True)
            if res is not None:
                self.store.force_delete_resource(res.id)
                deleted += 1
        return deleted
