import json
import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from wxr_import.extractors.wxr_loader import load_export
from wxr_import.importers.category_importer import CategoryImporter
from wxr_import.importers.tv_registry import TemplateRegistry
from wxr_import.models import Resource
from wxr_samples import category_xml


def run_import(store, path):
    importer = CategoryImporter(store, TemplateRegistry(store))
    return importer, importer.import_document(load_export(path))


def test_categories_become_published_resources(store, write_wxr):
    _importer, mapping = run_import(store, write_wxr(category_xml(5, "travel", "Travel")))
    res = store.find_resource(mapping["5"])
    assert res.alias == "travel"
    assert res.title == "Travel"
    assert res.published is True
    assert res.parent == 0
    assert res.is_container is False
    assert res.template_id == store.find_template_by_name("WordPress Import - Category").id


def test_import_is_idempotent(store, write_wxr):
    path = write_wxr(category_xml(5, "travel") + category_xml(6, "beaches", parent="travel"))
    importer, first = run_import(store, path)
    assert importer.report.processed == 2
    _i, second = run_import(store, path)
    assert first == second
    assert len(store.resources) == 2
    assert len(store.templates) == 1


def test_children_listed_before_parents_are_linked(store, write_wxr):
    body = category_xml(6, "beaches", parent="travel") + category_xml(5, "travel")
    _i, mapping = run_import(store, write_wxr(body))
    child = store.find_resource(mapping["6"])
    parent = store.find_resource(mapping["5"])
    assert child.parent == parent.id
    assert parent.is_container is True
    assert child.is_container is False


def test_unknown_parent_slug_leaves_category_at_root(store, write_wxr):
    _i, mapping = run_import(store, write_wxr(category_xml(6, "beaches", parent="nowhere")))
    assert store.find_resource(mapping["6"]).parent == 0


def test_existing_resource_is_reused_and_template_backfilled(store, write_wxr):
    existing = store.create_resource(Resource(title="Travel", alias="travel", template_id=0))
    _i, mapping = run_import(store, write_wxr(category_xml(5, "travel")))
    assert mapping == {"5": existing.id}
    assert store.find_resource(existing.id).template_id != 0
    assert len(store.resources) == 1


def test_malformed_category_is_skipped(store, write_wxr):
    body = "<wp:category><wp:category_nicename>broken</wp:category_nicename></wp:category>" + category_xml(5, "travel")
    importer, mapping = run_import(store, write_wxr(body))
    assert list(mapping) == ["5"]
    assert len(importer.report.failures) == 1
    assert importer.report.processed == 2

    with open(os.path.join("reports", "import", "errors.jsonl"), encoding="utf-8") as f:
        entry = json.loads(f.readline())
    assert entry["code"] == "CATEGORY_EXTRACT"


def test_description_goes_to_intro(store, write_wxr):
    termmeta = """
        <wp:termmeta>
            <wp:meta_key><![CDATA[autodescription-term-settings]]></wp:meta_key>
            <wp:meta_value><![CDATA[a:1:{s:11:"description";s:6:"Sunny!";}]]></wp:meta_value>
        </wp:termmeta>"""
    _i, mapping = run_import(store, write_wxr(category_xml(5, "travel", termmeta=termmeta)))
    assert store.find_resource(mapping["5"]).intro == "Sunny!"


def test_rollback_deletes_by_slug(store, write_wxr):
    path = write_wxr(category_xml(5, "travel") + category_xml(6, "beaches", parent="travel"))
    importer, _mapping = run_import(store, path)
    store.create_resource(Resource(title="Unrelated", alias="unrelated"))
    assert importer.rollback(load_export(path)) == 2
    assert [r.alias for r in store.resources.values()] == ["unrelated"]
