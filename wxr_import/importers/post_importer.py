"""
Import of WordPress posts and pages as resources.

Each ``post``/``page`` item becomes one resource.  Posts are placed under
the first of their categories that exists as a resource; pages keep their
own WordPress hierarchy, which is rebuilt in a second pass once every page
has a resource id.  Inline images and featured images are localized through
the :class:`~wxr_import.media.media_fetcher.MediaFetcher`; custom fields are
handed to the :class:`~wxr_import.importers.tv_registry.TemplateRegistry`.

With ``atomic_items`` enabled, everything written for one item (resource,
parent container flag, TV definitions, links and values) is committed
together or not at all.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, List, Optional, Set, Tuple

from wxr_import.extractors.wxr_loader import WxrDocument, extract_item
from wxr_import.importers.tv_registry import IMAGE_TV, TAGS_TV, TemplateRegistry
from wxr_import.media.media_fetcher import MediaFetcher
from wxr_import.models import ImportItem, Resource
from wxr_import.stores.base import ContentStore
from wxr_import.utils.errors import ImportReport, attempt, console_log, report_ok
from wxr_import.utils.html_images import rewrite_image_sources

IMPORTED_TYPES = ("post", "page")
THUMBNAIL_META_KEY = "_thumbnail_id"
DEFAULT_FALLBACK_AUTHOR_ID = 1


class PostImporter:
    def __init__(
        self,
        store: ContentStore,
        registry: TemplateRegistry,
        fetcher: MediaFetcher,
        *,
        fallback_author_id: int = DEFAULT_FALLBACK_AUTHOR_ID,
        atomic_items: bool = True,
        log: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.fetcher = fetcher
        self.fallback_author_id = fallback_author_id
        self.atomic_items = atomic_items
        self.log = log or console_log
        self.report = ImportReport("posts")

    @property
    def errors(self) -> List[str]:
        """Media download failures collected during the run."""
        return self.fetcher.errors

    def split_items(self, doc: WxrDocument) -> Tuple[Dict[str, str], Dict[str, ImportItem]]:
        """Single pass over ``<item>``: attachment id -> URL, and the posts/pages to import."""
        attachments: Dict[str, str] = {}
        items: Dict[str, ImportItem] = {}
        for index, node in enumerate(doc.items(), start=1):
            outcome = attempt(lambda: extract_item(node, doc.namespaces))
            if not outcome.ok:
                self.report.record(outcome, "POST_IMPORT", {"slug": f"item #{index}"})
                continue
            item = outcome.value
            if item.post_type == "attachment":
                if item.attachment_url:
                    attachments[item.wp_id] = item.attachment_url
            elif item.post_type in IMPORTED_TYPES:
                items[item.wp_id] = item
        return attachments, items

    def resolve_category_parent(self, item: ImportItem) -> int:
        if item.post_type != "post":
            return 0
        for nicename in item.category_refs:
            if not nicename:
                continue
            folder = self.store.find_resource_by_alias(nicename)
            if folder is not None:
                return folder.id
        return 0

    def _mark_container(self, resource_id: int) -> None:
        parent = self.store.find_resource(resource_id)
        if parent is not None and not parent.is_container:
            parent.is_container = True
            self.store.save_resource(parent)

    def _featured_image(self, item: ImportItem, attachments: Dict[str, str]) -> Optional[str]:
        thumb_id = item.meta_value(THUMBNAIL_META_KEY)
        if thumb_id and thumb_id in attachments:
            return self.fetcher.fetch(attachments[thumb_id])
        return None

    def _write_resource(
        self, item: ImportItem, resource: Resource, template_id: int, featured: Optional[str]
    ) -> int:
        created = self.store.create_resource(resource)
        if created.parent:
            self._mark_container(created.parent)

        self.registry.process_metadata(created.id, item, template_id)

        if featured:
            self.registry.ensure_tv_linked(IMAGE_TV, template_id, "Post Image", value_type="image")
            self.registry.save_tv_value(created.id, IMAGE_TV, featured)
        return created.id

    def create_resource(
        self,
        item: ImportItem,
        user_map: Dict[str, int],
        attachments: Dict[str, str],
    ) -> int:
        # Network work happens before any write so a transaction stays short.
        body = rewrite_image_sources(item.body_html, self.fetcher.fetch)
        intro = rewrite_image_sources(item.excerpt_html, self.fetcher.fetch)
        featured = self._featured_image(item, attachments)

        parent = self.resolve_category_parent(item)

        kind = "Page" if item.post_type == "page" else "Post"
        template_id = self.registry.get_template_id(kind)

        created_at = int(item.published_at.timestamp()) if item.published_at else int(time.time())
        resource = Resource(
            title=item.title,
            alias=item.slug,
            intro=intro,
            body=body,
            parent=parent,
            template_id=template_id,
            published=item.published,
            created_at=created_at,
            created_by=user_map.get(item.author_login, self.fallback_author_id),
        )

        if not self.atomic_items:
            return self._write_resource(item, resource, template_id, featured)
        try:
            with self.store.transaction():
                return self._write_resource(item, resource, template_id, featured)
        except Exception:
            # Cached TV ids and links may point at rolled back rows.
            self.registry.cache.clear()
            raise

    def link_pages(self, items: Dict[str, ImportItem], post_map: Dict[str, int]) -> None:
        for wp_id, item in items.items():
            if item.post_type != "page" or item.parent_wp_id in ("", "0"):
                continue
            if wp_id not in post_map or item.parent_wp_id not in post_map:
                continue
            parent_id = post_map[item.parent_wp_id]

            def relink() -> None:
                res = self.store.find_resource(post_map[wp_id])
                if res is None:
                    return
                res.parent = parent_id
                self.store.save_resource(res)
                self._mark_container(parent_id)

            outcome = attempt(relink)
            if not outcome.ok:
                self.log(f"Could not link page '{item.slug}' to its parent: {outcome.error}", "DEBUG")

    def import_document(
        self, doc: WxrDocument, category_map: Dict[str, int], user_map: Dict[str, int]
    ) -> Dict[str, int]:
        """Import posts and pages; returns WordPress post id -> resource id.

        Posts are parented by alias lookup, so ``category_map`` is not consulted:
        categories reused from an earlier run are found the same way.
        """
        self.log("Step 3: Importing Posts and Attachments...", "INFO")
        attachments, items = self.split_items(doc)
        self.log(f"Found {len(attachments)} attachments.", "INFO")

        post_map: Dict[str, int] = {}
        total = len(items)
        for done, (wp_id, item) in enumerate(items.items(), start=1):
            outcome = attempt(lambda: self.create_resource(item, user_map, attachments))
            if self.report.record(outcome, "POST_IMPORT", {"slug": item.slug, "title": item.title}):
                post_map[wp_id] = outcome.value
                report_ok("POST_CREATED", {"slug": item.slug, "title": item.title}, {"id": outcome.value})
            if done % 25 == 0 or done == total:
                self.log(f"Posts processed: {done}/{total}", "INFO")

        self.link_pages(items, post_map)
        self.log("Posts Imported.", "INFO")
        return post_map

    def rollback(self, doc: WxrDocument) -> int:
        """Delete the resources, TV values and TV definitions created for ``doc``'s posts."""
        self.log("Deleting Posts...", "INFO")
        _attachments, items = self.split_items(doc)

        deleted = 0
        deleted_tv_keys: Set[str] = set()
        for item in items.values():
            res = self.store.find_resource_by_alias(item.slug, with_trashed=True) if item.slug else None
            if res is not None:
                self.store.delete_tv_values(res.id)
                self.store.force_delete_resource(res.id)
                deleted += 1

            for key, _value in item.public_meta:
                if key not in deleted_tv_keys:
                    self.registry.delete_tv(key)
                    deleted_tv_keys.add(key)

            if item.tag_refs and TAGS_TV not in deleted_tv_keys:
                self.registry.delete_tv(TAGS_TV)
                deleted_tv_keys.add(TAGS_TV)

        self.registry.delete_tv(IMAGE_TV)
        return deleted
