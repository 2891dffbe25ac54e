from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wxr_import.utils.slugs import slugify_key


TvType = Literal["number", "date", "image", "textarea"]


class ImportItem(BaseModel):
    """One ``<item>`` of the export, normalized.  Lives for a single run."""

    model_config = ConfigDict(str_strip_whitespace=False)

    wp_id: str
    post_type: str
    title: str = ""
    slug: str = ""
    body_html: str = ""
    excerpt_html: str = ""
    published_at: Optional[datetime] = None
    published: bool = False
    author_login: str = ""
    parent_wp_id: str = "0"
    category_refs: List[str] = Field(default_factory=list)
    tag_refs: List[str] = Field(default_factory=list)
    attachment_url: str = ""
    raw_meta: List[tuple[str, str]] = Field(default_factory=list)

    @field_validator("slug", mode="before")
    @classmethod
    def _ensure_slug(cls, v: Optional[str], info):  # type: ignore[override]
        if v is not None and v.strip():
            return v
        title = info.data.get("title")
        if isinstance(title, str) and title.strip():
            return slugify_key(title)
        return v or ""

    def meta_value(self, key: str) -> Optional[str]:
        for k, v in self.raw_meta:
            if k == key:
                return v
        return None

    @property
    def public_meta(self) -> List[tuple[str, str]]:
        # Keys starting with "_" are WordPress internals.
        return [(k, v) for k, v in self.raw_meta if not k.startswith("_")]


class CategoryRecord(BaseModel):
    wp_id: str
    parent_slug: str = ""
    name: str = ""
    slug: str = ""
    description: str = ""
    cms_id: int = 0


class AuthorRecord(BaseModel):
    login: str
    email: str = ""
    display_name: str = ""


class Resource(BaseModel):
    id: int = 0
    title: str = ""
    alias: str = ""
    parent: int = 0
    template_id: int = 0
    published: bool = False
    body: str = ""
    intro: str = ""
    created_at: int = 0
    created_by: int = 0
    is_container: bool = False
    deleted: bool = False


class TemplateRecord(BaseModel):
    id: int = 0
    name: str
    content: str = "[*content*]"
    description: str = ""


class TvDefinition(BaseModel):
    id: int = 0
    name: str
    caption: str = ""
    value_type: TvType = "textarea"
    category: int = 0


class User(BaseModel):
    id: int = 0
    username: str
    password: Optional[str] = None


class UserProfile(BaseModel):
    user_id: int
    fullname: str = ""
    email: str = ""
    role: int = 0
    blocked: bool = False


class MetadataGroups(BaseModel):
    """Custom fields of one item split into scalars and repeater groups."""

    single: Dict[str, str] = Field(default_factory=dict)
    grouped: Dict[str, dict] = Field(default_factory=dict)
    captions: Dict[str, str] = Field(default_factory=dict)
    tags: Optional[str] = None
