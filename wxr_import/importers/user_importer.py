"""
Import of WordPress authors as CMS users.

New users are created without a usable password; they have to reset it
before they can log in.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional

from wxr_import.extractors.wxr_loader import WxrDocument, extract_author
from wxr_import.models import AuthorRecord, User, UserProfile
from wxr_import.stores.base import ContentStore
from wxr_import.utils.errors import ImportReport, attempt, console_log, report_ok

DEFAULT_PROTECTED_LOGIN = "admin"


class UserImporter:
    def __init__(
        self,
        store: ContentStore,
        *,
        protected_login: str = DEFAULT_PROTECTED_LOGIN,
        log: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.store = store
        self.protected_login = protected_login
        self.log = log or console_log
        self.report = ImportReport("users")

    def _import_author(self, author: AuthorRecord) -> int:
        existing = self.store.find_user(author.login)
        if existing is not None:
            report_ok("USER_REUSED", {"slug": author.login}, {"id": existing.id})
            return existing.id

        user = self.store.create_user(User(username=author.login, password=None))
        self.store.create_user_profile(
            UserProfile(
                user_id=user.id,
                fullname=author.display_name,
                email=author.email,
                role=0,
                blocked=False,
            )
        )
        report_ok("USER_CREATED", {"slug": author.login}, {"id": user.id})
        return user.id

    def import_document(self, doc: WxrDocument) -> Dict[str, int]:
        """Import all ``wp:author`` nodes; returns login -> user id."""
        self.log("Step 2: Importing Users...", "INFO")
        user_map: Dict[str, int] = {}
        for index, node in enumerate(doc.authors(), start=1):
            login = (node.findtext("wp:author_login", default="", namespaces=doc.namespaces) or "").strip()
            outcome = attempt(lambda: self._import_author(extract_author(node, doc.namespaces)))
            if self.report.record(outcome, "USER_IMPORT", {"slug": login or f"author #{index}"}):
                user_map[login] = outcome.value
        self.log(f"Users Imported: {len(user_map)}.", "INFO")
        return user_map

    def rollback(self, doc: WxrDocument) -> int:
        """Delete every author of ``doc`` except the protected login."""
        self.log("Deleting Users...", "INFO")
        deleted = 0
        for node in doc.authors():
            login = (node.findtext("wp:author_login", default="", namespaces=doc.namespaces) or "").strip()
            if not login or login == self.protected_login:
                continue
            user = self.store.find_user(login)
            if user is not None:
                self.store.delete_user(user.id)
                deleted += 1
        return deleted
