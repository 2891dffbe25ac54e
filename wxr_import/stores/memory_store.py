"""
Dictionary-backed content store.

Used by the test-suite and by ``--dry-run``.  Records are kept as pydantic
model copies so callers never hold a live reference into the store.
"""

from __future__ import annotations

import copy
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set, Tuple

from wxr_import.models import Resource, TemplateRecord, TvDefinition, User, UserProfile
from wxr_import.utils.errors import PersistenceError


class MemoryContentStore:
    def __init__(self) -> None:
        self.resources: Dict[int, Resource] = {}
        self.templates: Dict[int, TemplateRecord] = {}
        self.tvs: Dict[int, TvDefinition] = {}
        self.tv_links: Set[Tuple[int, int]] = set()
        self.tv_values: Dict[Tuple[int, int], str] = {}
        self.users: Dict[int, User] = {}
        self.profiles: Dict[int, UserProfile] = {}
        self._next_id: Dict[str, int] = {}

    def _new_id(self, table: str) -> int:
        self._next_id[table] = self._next_id.get(table, 0) + 1
        return self._next_id[table]

    # Resources

    def find_resource(self, resource_id: int) -> Optional[Resource]:
        res = self.resources.get(resource_id)
        if res is None or res.deleted:
            return None
        return res.model_copy()

    def find_resource_by_alias(self, alias: str, *, with_trashed: bool = False) -> Optional[Resource]:
        for res in self.resources.values():
            if res.alias == alias and (with_trashed or not res.deleted):
                return res.model_copy()
        return None

    def create_resource(self, resource: Resource) -> Resource:
        created = resource.model_copy(update={"id": self._new_id("resources")})
        self.resources[created.id] = created
        return created.model_copy()

    def save_resource(self, resource: Resource) -> None:
        if resource.id not in self.resources:
            raise PersistenceError(f"Resource {resource.id} does not exist")
        self.resources[resource.id] = resource.model_copy()

    def force_delete_resource(self, resource_id: int) -> None:
        self.resources.pop(resource_id, None)

    # Templates

    def find_template_by_name(self, name: str) -> Optional[TemplateRecord]:
        for tpl in self.templates.values():
            if tpl.name == name:
                return tpl.model_copy()
        return None

    def find_templates_by_prefix(self, prefix: str) -> List[TemplateRecord]:
        return [tpl.model_copy() for tpl in self.templates.values() if tpl.name.startswith(prefix)]

    def create_template(self, template: TemplateRecord) -> TemplateRecord:
        created = template.model_copy(update={"id": self._new_id("templates")})
        self.templates[created.id] = created
        return created.model_copy()

    def delete_template(self, template_id: int) -> None:
        self.templates.pop(template_id, None)

    # Template variables

    def find_tv(self, name: str) -> Optional[TvDefinition]:
        for tv in self.tvs.values():
            if tv.name == name:
                return tv.model_copy()
        return None

    def create_tv(self, tv: TvDefinition) -> TvDefinition:
        if self.find_tv(tv.name) is not None:
            raise PersistenceError(f"Template variable '{tv.name}' already exists")
        created = tv.model_copy(update={"id": self._new_id("tvs")})
        self.tvs[created.id] = created
        return created.model_copy()

    def delete_tv(self, tv_id: int) -> None:
        self.tvs.pop(tv_id, None)
        self.tv_links = {link for link in self.tv_links if link[0] != tv_id}
        self.tv_values = {k: v for k, v in self.tv_values.items() if k[1] != tv_id}

    def link_tv_template(self, tv_id: int, template_id: int) -> None:
        self.tv_links.add((tv_id, template_id))

    def unlink_template_tvs(self, template_id: int) -> None:
        self.tv_links = {link for link in self.tv_links if link[1] != template_id}

    def template_tv_ids(self, template_id: int) -> List[int]:
        return sorted(tv_id for tv_id, tpl_id in self.tv_links if tpl_id == template_id)

    def upsert_tv_value(self, resource_id: int, tv_id: int, value: str) -> None:
        self.tv_values[(resource_id, tv_id)] = value

    def get_tv_value(self, resource_id: int, tv_id: int) -> Optional[str]:
        return self.tv_values.get((resource_id, tv_id))

    def delete_tv_values(self, resource_id: int) -> None:
        self.tv_values = {k: v for k, v in self.tv_values.items() if k[0] != resource_id}

    # Users

    def find_user(self, username: str) -> Optional[User]:
        for user in self.users.values():
            if user.username == username:
                return user.model_copy()
        return None

    def create_user(self, user: User) -> User:
        if self.find_user(user.username) is not None:
            raise PersistenceError(f"User '{user.username}' already exists")
        created = user.model_copy(update={"id": self._new_id("users")})
        self.users[created.id] = created
        return created.model_copy()

    def create_user_profile(self, profile: UserProfile) -> None:
        self.profiles[profile.user_id] = profile.model_copy()

    def delete_user(self, user_id: int) -> None:
        self.users.pop(user_id, None)
        self.profiles.pop(user_id, None)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        state = copy.deepcopy(
            (self.resources, self.templates, self.tvs, self.tv_links, self.tv_values,
             self.users, self.profiles)
        )
        try:
            yield
        except BaseException:
            (self.resources, self.templates, self.tvs, self.tv_links, self.tv_values,
             self.users, self.profiles) = state
            raise
