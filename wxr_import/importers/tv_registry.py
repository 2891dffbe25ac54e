"""
Templates and template variables (TVs) for imported content.

Every imported entity kind (``Category``, ``Post``, ``Page``) is rendered
with its own template named ``"<prefix> - <Kind>"``; the name is the
deduplication key, so repeated runs reuse the same template.  Custom fields
of an item become TVs: one definition per distinct slugified key, linked to
the item's template and holding one value per resource.

Keys of the form ``<base>-<n>`` or ``<base>-<n>-<sub>`` (ACF repeaters and
groups) are folded into a single TV named ``<base>`` whose value is a JSON
array ordered by ``n``.

A :class:`RegistryCache` memoizes template ids, TV definitions and the links
already ensured during one run.  It is created with the registry and thrown
away with it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from wxr_import.models import ImportItem, MetadataGroups, TemplateRecord, TvDefinition
from wxr_import.stores.base import ContentStore
from wxr_import.utils.slugs import group_base, humanize, split_grouped_key, tv_name_for

DEFAULT_TEMPLATE_PREFIX = "WordPress Import"

TAGS_TV = "tags"
IMAGE_TV = "image"

# Exact TV name -> TV type.  Anything not listed is a textarea.
TV_TYPE_MAP: Dict[str, str] = {
    # Numbers
    "nights": "number",
    "price": "number",
    "cost": "number",
    "count": "number",
    "order": "number",
    "cena": "number",
    "stoimost": "number",
    "kol-vo": "number",
    "kol-vo-celovek": "number",
    "skidka": "number",
    "sale": "number",
    # Dates
    "date": "date",
    "start_date": "date",
    "end_date": "date",
    "data": "date",
    "daty-tura": "textarea",
    # Images
    "image": "image",
    "img": "image",
    "photo": "image",
    "thumb": "image",
    "picture": "image",
    "foto": "image",
    "izobrazenie": "image",
}

# Booking forms and plans are free text whatever the table says.
TEXTAREA_KEYWORDS = ("bronirovaniya", "plan")


def infer_tv_type(name: str) -> str:
    if any(keyword in name for keyword in TEXTAREA_KEYWORDS):
        return "textarea"
    return TV_TYPE_MAP.get(name, "textarea")


def group_metadata(item: ImportItem) -> MetadataGroups:
    """Split the public custom fields of ``item`` into scalars and groups."""
    all_meta: Dict[str, str] = {}
    captions: Dict[str, str] = {}
    for key, value in item.public_meta:
        name = tv_name_for(key)
        all_meta[name] = value
        captions[name] = key

    groups = MetadataGroups(captions=dict(captions))
    groups.tags = ",".join(item.tag_refs) if item.tag_refs else None

    for key, value in all_meta.items():
        base, index, sub = split_grouped_key(key)
        if index is None:
            groups.single[key] = value
            continue
        rows = groups.grouped.setdefault(base, {})
        if sub is not None:
            row = rows.get(index)
            if not isinstance(row, dict):
                row = rows[index] = {}
            row[sub] = value
        else:
            rows[index] = value
        if base not in groups.captions:
            groups.captions[base] = humanize(base)
    return groups


def encode_group(rows: Dict[int, object]) -> str:
    """Dense JSON array of ``rows`` in ascending index order."""
    return json.dumps([rows[i] for i in sorted(rows)], ensure_ascii=False)


@dataclass
class RegistryCache:
    templates: Dict[str, int] = field(default_factory=dict)
    tvs: Dict[str, TvDefinition] = field(default_factory=dict)
    links: Set[Tuple[int, int]] = field(default_factory=set)

    def clear(self) -> None:
        self.templates.clear()
        self.tvs.clear()
        self.links.clear()


class TemplateRegistry:
    def __init__(self, store: ContentStore, *, prefix: str = DEFAULT_TEMPLATE_PREFIX) -> None:
        self.store = store
        self.prefix = prefix
        self.cache = RegistryCache()

    def template_name(self, kind: str) -> str:
        return f"{self.prefix} - {kind}"

    def get_template_id(self, kind: str) -> int:
        """Get or create the template for an entity kind (``"Category"``, ``"Post"``, ``"Page"``)."""
        name = self.template_name(kind)
        if name in self.cache.templates:
            return self.cache.templates[name]

        tpl = self.store.find_template_by_name(name)
        if tpl is None:
            tpl = self.store.create_template(
                TemplateRecord(
                    name=name,
                    content="[*content*]",
                    description=f"Template for imported WordPress {kind}s",
                )
            )
        self.cache.templates[name] = tpl.id
        return tpl.id

    def find_tv(self, name: str) -> Optional[TvDefinition]:
        tv = self.cache.tvs.get(name)
        if tv is None:
            tv = self.store.find_tv(name)
            if tv is not None:
                self.cache.tvs[name] = tv
        return tv

    def ensure_tv_linked(
        self, name: str, template_id: int, caption: str, value_type: Optional[str] = None
    ) -> TvDefinition:
        """Make sure TV ``name`` exists and is linked to ``template_id``."""
        tv = self.find_tv(name)
        if tv is None:
            tv = self.store.create_tv(
                TvDefinition(
                    name=name,
                    caption=caption,
                    value_type=value_type or infer_tv_type(name),
                    category=0,
                )
            )
            self.cache.tvs[name] = tv

        link = (tv.id, template_id)
        if link not in self.cache.links:
            self.store.link_tv_template(tv.id, template_id)
            self.cache.links.add(link)
        return tv

    def save_tv_value(self, resource_id: int, name: str, value: str) -> None:
        if not value:
            return
        tv = self.find_tv(name)
        if tv is not None:
            self.store.upsert_tv_value(resource_id, tv.id, value)

    def process_metadata(self, resource_id: int, item: ImportItem, template_id: int) -> None:
        """Store the custom fields and tags of ``item`` as TV values of ``resource_id``."""
        groups = group_metadata(item)

        for name, value in groups.single.items():
            caption = groups.captions.get(name) or humanize(name)
            self.ensure_tv_linked(name, template_id, caption)
            self.save_tv_value(resource_id, name, value)

        for base, rows in groups.grouped.items():
            caption = groups.captions.get(base) or humanize(base)
            self.ensure_tv_linked(base, template_id, caption)
            self.save_tv_value(resource_id, base, encode_group(rows))

        if groups.tags:
            self.ensure_tv_linked(TAGS_TV, template_id, "Tags", value_type="textarea")
            self.save_tv_value(resource_id, TAGS_TV, groups.tags)

    def delete_tv(self, key: str) -> None:
        """Delete the TV created for a raw meta ``key`` and, for grouped keys, the group TV."""
        name = tv_name_for(key)
        names = [name]
        base = group_base(name)
        if base:
            names.append(base)
        for candidate in names:
            self.cache.tvs.pop(candidate, None)
            tv = self.store.find_tv(candidate)
            if tv is not None:
                self.store.delete_tv(tv.id)
                self.cache.links = {link for link in self.cache.links if link[0] != tv.id}

    def rollback(self) -> List[str]:
        """Delete every template created by the import, detaching its TVs first."""
        removed: List[str] = []
        for tpl in self.store.find_templates_by_prefix(f"{self.prefix} - "):
            self.store.unlink_template_tvs(tpl.id)
            self.store.delete_template(tpl.id)
            removed.append(tpl.name)
        self.cache.clear()
        return removed
