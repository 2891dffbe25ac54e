"""
DuckDB-backed content store.

Mirrors the CMS tables the import writes to (resources, templates, template
variables with their template links and per-resource values, users and
their profile attributes) in a single DuckDB database file.  The schema is
created on first connection; re-opening an existing file reuses it, so
repeated runs see the resources of earlier runs.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence

import duckdb

from wxr_import.models import Resource, TemplateRecord, TvDefinition, User, UserProfile
from wxr_import.utils.errors import PersistenceError

_SCHEMA = [
    "CREATE SEQUENCE IF NOT EXISTS seq_site_content START 1",
    "CREATE SEQUENCE IF NOT EXISTS seq_site_templates START 1",
    "CREATE SEQUENCE IF NOT EXISTS seq_site_tmplvars START 1",
    "CREATE SEQUENCE IF NOT EXISTS seq_users START 1",
    """
    CREATE TABLE IF NOT EXISTS site_content (
        id INTEGER DEFAULT nextval('seq_site_content'),
        pagetitle VARCHAR,
        alias VARCHAR,
        parent INTEGER DEFAULT 0,
        template INTEGER DEFAULT 0,
        published BOOLEAN DEFAULT FALSE,
        content VARCHAR DEFAULT '',
        introtext VARCHAR DEFAULT '',
        createdon BIGINT DEFAULT 0,
        createdby INTEGER DEFAULT 0,
        isfolder BOOLEAN DEFAULT FALSE,
        deleted BOOLEAN DEFAULT FALSE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS site_templates (
        id INTEGER DEFAULT nextval('seq_site_templates'),
        templatename VARCHAR,
        content VARCHAR,
        description VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS site_tmplvars (
        id INTEGER DEFAULT nextval('seq_site_tmplvars'),
        name VARCHAR,
        caption VARCHAR,
        type VARCHAR,
        category INTEGER DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS site_tmplvar_templates (
        tmplvarid INTEGER,
        templateid INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS site_tmplvar_contentvalues (
        contentid INTEGER,
        tmplvarid INTEGER,
        value VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER DEFAULT nextval('seq_users'),
        username VARCHAR,
        password VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_attributes (
        internalKey INTEGER,
        fullname VARCHAR,
        email VARCHAR,
        role INTEGER,
        blocked BOOLEAN
    )
    """,
]

_RESOURCE_COLUMNS = (
    "id, pagetitle, alias, parent, template, published, content, introtext, "
    "createdon, createdby, isfolder, deleted"
)


def _resource_from_row(row: Sequence[Any]) -> Resource:
    return Resource(
        id=row[0],
        title=row[1] or "",
        alias=row[2] or "",
        parent=row[3] or 0,
        template_id=row[4] or 0,
        published=bool(row[5]),
        body=row[6] or "",
        intro=row[7] or "",
        created_at=row[8] or 0,
        created_by=row[9] or 0,
        is_container=bool(row[10]),
        deleted=bool(row[11]),
    )


class DuckDBContentStore:
    def __init__(self, db_path: str = ":memory:") -> None:
        if db_path != ":memory:":
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self.con = duckdb.connect(database=db_path, read_only=False)
        self._tx_depth = 0
        for statement in _SCHEMA:
            self.con.execute(statement)

    def close(self) -> None:
        self.con.close()

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> "duckdb.DuckDBPyConnection":
        try:
            return self.con.execute(sql, list(params))
        except duckdb.Error as e:
            raise PersistenceError(str(e)) from e

    def _fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[tuple]:
        return self._execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: Sequence[Any] = ()) -> List[tuple]:
        return self._execute(sql, params).fetchall()

    # Resources

    def find_resource(self, resource_id: int) -> Optional[Resource]:
        row = self._fetchone(
            f"SELECT {_RESOURCE_COLUMNS} FROM site_content WHERE id = ? AND NOT deleted",
            [resource_id],
        )
        return _resource_from_row(row) if row else None

    def find_resource_by_alias(self, alias: str, *, with_trashed: bool = False) -> Optional[Resource]:
        sql = f"SELECT {_RESOURCE_COLUMNS} FROM site_content WHERE alias = ?"
        if not with_trashed:
            sql += " AND NOT deleted"
        row = self._fetchone(sql + " ORDER BY id LIMIT 1", [alias])
        return _resource_from_row(row) if row else None

    def create_resource(self, resource: Resource) -> Resource:
        row = self._fetchone(
            """
            INSERT INTO site_content
                (pagetitle, alias, parent, template, published, content, introtext,
                 createdon, createdby, isfolder, deleted)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            [
                resource.title, resource.alias, resource.parent, resource.template_id,
                resource.published, resource.body, resource.intro, resource.created_at,
                resource.created_by, resource.is_container, resource.deleted,
            ],
        )
        return resource.model_copy(update={"id": row[0]})

    def save_resource(self, resource: Resource) -> None:
        self._execute(
            """
            UPDATE site_content SET
                pagetitle = ?, alias = ?, parent = ?, template = ?, published = ?,
                content = ?, introtext = ?, createdon = ?, createdby = ?, isfolder = ?,
                deleted = ?
            WHERE id = ?
            """,
            [
                resource.title, resource.alias, resource.parent, resource.template_id,
                resource.published, resource.body, resource.intro, resource.created_at,
                resource.created_by, resource.is_container, resource.deleted, resource.id,
            ],
        )

    def force_delete_resource(self, resource_id: int) -> None:
        self._execute("DELETE FROM site_content WHERE id = ?", [resource_id])

    # Templates

    def find_template_by_name(self, name: str) -> Optional[TemplateRecord]:
        row = self._fetchone(
            "SELECT id, templatename, content, description FROM site_templates "
            "WHERE templatename = ? ORDER BY id LIMIT 1",
            [name],
        )
        if not row:
            return None
        return TemplateRecord(id=row[0], name=row[1], content=row[2] or "", description=row[3] or "")

    def find_templates_by_prefix(self, prefix: str) -> List[TemplateRecord]:
        rows = self._fetchall(
            "SELECT id, templatename, content, description FROM site_templates "
            "WHERE starts_with(templatename, ?) ORDER BY id",
            [prefix],
        )
        return [
            TemplateRecord(id=r[0], name=r[1], content=r[2] or "", description=r[3] or "")
            for r in rows
        ]

    def create_template(self, template: TemplateRecord) -> TemplateRecord:
        row = self._fetchone(
            "INSERT INTO site_templates (templatename, content, description) "
            "VALUES (?, ?, ?) RETURNING id",
            [template.name, template.content, template.description],
        )
        return template.model_copy(update={"id": row[0]})

    def delete_template(self, template_id: int) -> None:
        self._execute("DELETE FROM site_templates WHERE id = ?", [template_id])

    # Template variables

    def find_tv(self, name: str) -> Optional[TvDefinition]:
        row = self._fetchone(
            "SELECT id, name, caption, type, category FROM site_tmplvars "
            "WHERE name = ? ORDER BY id LIMIT 1",
            [name],
        )
        if not row:
            return None
        return TvDefinition(id=row[0], name=row[1], caption=row[2] or "", value_type=row[3], category=row[4] or 0)

    def create_tv(self, tv: TvDefinition) -> TvDefinition:
        if self.find_tv(tv.name) is not None:
            raise PersistenceError(f"Template variable '{tv.name}' already exists")
        row = self._fetchone(
            "INSERT INTO site_tmplvars (name, caption, type, category) VALUES (?, ?, ?, ?) RETURNING id",
            [tv.name, tv.caption, tv.value_type, tv.category],
        )
        return tv.model_copy(update={"id": row[0]})

    def delete_tv(self, tv_id: int) -> None:
        self._execute("DELETE FROM site_tmplvar_contentvalues WHERE tmplvarid = ?", [tv_id])
        self._execute("DELETE FROM site_tmplvar_templates WHERE tmplvarid = ?", [tv_id])
        self._execute("DELETE FROM site_tmplvars WHERE id = ?", [tv_id])

    def link_tv_template(self, tv_id: int, template_id: int) -> None:
        exists = self._fetchone(
            "SELECT 1 FROM site_tmplvar_templates WHERE tmplvarid = ? AND templateid = ?",
            [tv_id, template_id],
        )
        if not exists:
            self._execute(
                "INSERT INTO site_tmplvar_templates (tmplvarid, templateid) VALUES (?, ?)",
                [tv_id, template_id],
            )

    def unlink_template_tvs(self, template_id: int) -> None:
        self._execute("DELETE FROM site_tmplvar_templates WHERE templateid = ?", [template_id])

    def template_tv_ids(self, template_id: int) -> List[int]:
        rows = self._fetchall(
            "SELECT tmplvarid FROM site_tmplvar_templates WHERE templateid = ? ORDER BY tmplvarid",
            [template_id],
        )
        return [r[0] for r in rows]

    def upsert_tv_value(self, resource_id: int, tv_id: int, value: str) -> None:
        exists = self._fetchone(
            "SELECT 1 FROM site_tmplvar_contentvalues WHERE contentid = ? AND tmplvarid = ?",
            [resource_id, tv_id],
        )
        if exists:
            self._execute(
                "UPDATE site_tmplvar_contentvalues SET value = ? WHERE contentid = ? AND tmplvarid = ?",
                [value, resource_id, tv_id],
            )
        else:
            self._execute(
                "INSERT INTO site_tmplvar_contentvalues (contentid, tmplvarid, value) VALUES (?, ?, ?)",
                [resource_id, tv_id, value],
            )

    def get_tv_value(self, resource_id: int, tv_id: int) -> Optional[str]:
        row = self._fetchone(
            "SELECT value FROM site_tmplvar_contentvalues WHERE contentid = ? AND tmplvarid = ?",
            [resource_id, tv_id],
        )
        return row[0] if row else None

    def delete_tv_values(self, resource_id: int) -> None:
        self._execute("DELETE FROM site_tmplvar_contentvalues WHERE contentid = ?", [resource_id])

    # Users

    def find_user(self, username: str) -> Optional[User]:
        row = self._fetchone(
            "SELECT id, username, password FROM users WHERE username = ? ORDER BY id LIMIT 1",
            [username],
        )
        return User(id=row[0], username=row[1], password=row[2]) if row else None

    def create_user(self, user: User) -> User:
        if self.find_user(user.username) is not None:
            raise PersistenceError(f"User '{user.username}' already exists")
        row = self._fetchone(
            "INSERT INTO users (username, password) VALUES (?, ?) RETURNING id",
            [user.username, user.password],
        )
        return user.model_copy(update={"id": row[0]})

    def create_user_profile(self, profile: UserProfile) -> None:
        self._execute(
            "INSERT INTO user_attributes (internalKey, fullname, email, role, blocked) VALUES (?, ?, ?, ?, ?)",
            [profile.user_id, profile.fullname, profile.email, profile.role, profile.blocked],
        )

    def delete_user(self, user_id: int) -> None:
        self._execute("DELETE FROM user_attributes WHERE internalKey = ?", [user_id])
        self._execute("DELETE FROM users WHERE id = ?", [user_id])

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._tx_depth:
            self._tx_depth += 1
            try:
                yield
            finally:
                self._tx_depth -= 1
            return
        self.con.begin()
        self._tx_depth = 1
        try:
            yield
        except BaseException:
            self._tx_depth = 0
            self.con.rollback()
            raise
        self._tx_depth = 0
        self.con.commit()
