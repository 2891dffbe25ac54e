from __future__ import annotations

from typing import ContextManager, Iterable, List, Optional, Protocol

from wxr_import.models import Resource, TemplateRecord, TvDefinition, User, UserProfile


class ContentStore(Protocol):
    """
    The target CMS as seen by the importers: plain find/create/update/delete
    over resources, templates, template variables and users.

    Implementations raise :class:`wxr_import.utils.errors.PersistenceError`
    when the backend refuses a write.
    """

    # Resources
    def find_resource(self, resource_id: int) -> Optional[Resource]:
        pass

    def find_resource_by_alias(self, alias: str, *, with_trashed: bool = False) -> Optional[Resource]:
        pass

    def create_resource(self, resource: Resource) -> Resource:
        pass

    def save_resource(self, resource: Resource) -> None:
        pass

    def force_delete_resource(self, resource_id: int) -> None:
        pass

    # Templates
    def find_template_by_name(self, name: str) -> Optional[TemplateRecord]:
        pass

    def find_templates_by_prefix(self, prefix: str) -> List[TemplateRecord]:
        pass

    def create_template(self, template: TemplateRecord) -> TemplateRecord:
        pass

    def delete_template(self, template_id: int) -> None:
        pass

    # Template variables
    def find_tv(self, name: str) -> Optional[TvDefinition]:
        pass

    def create_tv(self, tv: TvDefinition) -> TvDefinition:
        pass

    def delete_tv(self, tv_id: int) -> None:
        """Delete a definition together with its template links and values."""
        pass

    def link_tv_template(self, tv_id: int, template_id: int) -> None:
        """Associate a TV with a template; a no-op when the link exists."""
        pass

    def unlink_template_tvs(self, template_id: int) -> None:
        pass

    def template_tv_ids(self, template_id: int) -> Iterable[int]:
        pass

    def upsert_tv_value(self, resource_id: int, tv_id: int, value: str) -> None:
        pass

    def get_tv_value(self, resource_id: int, tv_id: int) -> Optional[str]:
        pass

    def delete_tv_values(self, resource_id: int) -> None:
        pass

    # Users
    def find_user(self, username: str) -> Optional[User]:
        pass

    def create_user(self, user: User) -> User:
        pass

    def create_user_profile(self, profile: UserProfile) -> None:
        pass

    def delete_user(self, user_id: int) -> None:
        pass

    def transaction(self) -> ContextManager[None]:
        """All writes inside the block are kept together or discarded together."""
        pass
