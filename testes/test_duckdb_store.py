import os
import sys

import pytest

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

pytest.importorskip("duckdb")

from wxr_import.import_tool import WordPressImportTool
from wxr_import.models import Resource, TemplateRecord, TvDefinition, User, UserProfile
from wxr_import.stores import open_store
from wxr_import.stores.duckdb_store import DuckDBContentStore
from wxr_import.utils.errors import PersistenceError
from wxr_samples import FakeTransport, scenario_body


@pytest.fixture
def db():
    store = DuckDBContentStore(":memory:")
    yield store
    store.close()


def test_resource_round_trip(db):
    created = db.create_resource(Resource(title="Travel", alias="travel", published=True, created_at=1700000000))
    assert created.id > 0
    found = db.find_resource_by_alias("travel")
    assert found == created

    found.is_container = True
    db.save_resource(found)
    assert db.find_resource(created.id).is_container is True

    db.force_delete_resource(created.id)
    assert db.find_resource(created.id) is None


def test_trashed_resources_only_found_on_request(db):
    db.create_resource(Resource(title="Old", alias="old", deleted=True))
    assert db.find_resource_by_alias("old") is None
    assert db.find_resource_by_alias("old", with_trashed=True) is not None


def test_templates_by_prefix(db):
    db.create_template(TemplateRecord(name="WordPress Import - Post"))
    db.create_template(TemplateRecord(name="Homepage"))
    assert [t.name for t in db.find_templates_by_prefix("WordPress Import - ")] == ["WordPress Import - Post"]


def test_tv_links_and_values(db):
    tpl = db.create_template(TemplateRecord(name="T"))
    tv = db.create_tv(TvDefinition(name="price", caption="Price", value_type="number"))
    with pytest.raises(PersistenceError):
        db.create_tv(TvDefinition(name="price"))

    db.link_tv_template(tv.id, tpl.id)
    db.link_tv_template(tv.id, tpl.id)
    assert db.template_tv_ids(tpl.id) == [tv.id]

    db.upsert_tv_value(7, tv.id, "10")
    db.upsert_tv_value(7, tv.id, "20")
    assert db.get_tv_value(7, tv.id) == "20"

    db.delete_tv(tv.id)
    assert db.find_tv("price") is None
    assert db.template_tv_ids(tpl.id) == []
    assert db.get_tv_value(7, tv.id) is None


def test_users(db):
    user = db.create_user(User(username="alice"))
    db.create_user_profile(UserProfile(user_id=user.id, fullname="Alice", email="a@example.com"))
    assert db.find_user("alice").password is None
    db.delete_user(user.id)
    assert db.find_user("alice") is None


def test_transaction_rolls_back(db):
    with pytest.raises(RuntimeError):
        with db.transaction():
            db.create_resource(Resource(title="Gone", alias="gone"))
            raise RuntimeError("abort")
    assert db.find_resource_by_alias("gone") is None


def test_open_store_backends(tmp_path):
    from wxr_import.stores.memory_store import MemoryContentStore

    assert isinstance(open_store({"backend": "memory"}), MemoryContentStore)
    duck = open_store({"backend": "duckdb", "path": str(tmp_path / "cms.duckdb")})
    assert isinstance(duck, DuckDBContentStore)
    duck.close()
    with pytest.raises(ValueError):
        open_store({"backend": "sqlite"})


def test_full_import_on_duckdb(tmp_path, write_wxr):
    db_path = str(tmp_path / "data" / "cms.duckdb")
    config = {
        "import": {"project_root": str(tmp_path)},
        "media": {"request_delay": 0},
        "store": {"backend": "duckdb", "path": db_path},
    }
    path = write_wxr(scenario_body())
    tool = WordPressImportTool(config, transport=FakeTransport(), confirm=lambda q, d: True)
    first = tool.run_import(path)
    second = tool.run_import(path)
    assert first.category_map == second.category_map

    store = tool.store
    trip = store.find_resource(first.post_map["11"])
    assert trip.parent == first.category_map["5"]
    price = store.find_tv("price")
    assert store.get_tv_value(trip.id, price.id) == "120"

    assert tool.run_rollback(path) is True
    assert store.find_resource_by_alias("travel") is None
    assert store.find_templates_by_prefix("WordPress Import - ") == []
