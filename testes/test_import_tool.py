import os
import sys

import pytest

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import main as cli
from wxr_import.import_tool import WordPressImportTool
from wxr_import.models import User
from wxr_import.stores.memory_store import MemoryContentStore
from wxr_import.utils.errors import ParseError, ValidationError
from wxr_samples import FakeTransport, author_xml, item_xml, scenario_body

IMG_URL = "https://example.com/wp-content/uploads/2023/05/missing.png"


def make_tool(tmp_path, store, answers=None, **config):
    asked = []

    def confirm(question, default):
        asked.append(question)
        return answers.pop(0) if answers else default

    cfg = {"import": {"project_root": str(tmp_path)}, "media": {"base_path": str(tmp_path / "assets"), "request_delay": 0}}
    for section, values in config.items():
        cfg.setdefault(section, {}).update(values)
    tool = WordPressImportTool(cfg, store=store, transport=FakeTransport(), confirm=confirm)
    return tool, asked


def test_config_defaults_are_filled(tmp_path):
    tool = WordPressImportTool({}, store=MemoryContentStore())
    assert tool.config["import"]["template_prefix"] == "WordPress Import"
    assert tool.config["import"]["protected_login"] == "admin"
    assert tool.config["import"]["atomic_items"] is True
    assert tool.config["media"]["request_delay"] == 0.2
    assert tool.config["media"]["timeout"] == 5
    assert tool.config["store"]["backend"] == "duckdb"


def test_config_file_is_read(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text('{"import": {"template_prefix": "Legacy"}}', encoding="utf-8")
    tool = WordPressImportTool(config_file=str(path), store=MemoryContentStore())
    assert tool.config["import"]["template_prefix"] == "Legacy"


def test_dry_run_uses_memory_store_without_downloads(tmp_path):
    tool = WordPressImportTool({}, dry_run=True)
    assert isinstance(tool.store, MemoryContentStore)
    assert tool.config["media"]["downloads_enabled"] is False


def test_run_import_summary(tmp_path, store, write_wxr):
    tool, _asked = make_tool(tmp_path, store)
    summary = tool.run_import(write_wxr(scenario_body()))
    assert list(summary.category_map) == ["5"]
    assert list(summary.user_map) == ["alice"]
    assert set(summary.post_map) == {"10", "11"}
    assert summary.failures == []
    assert summary.media_errors == []
    assert summary.error_log is None
    assert os.path.exists(os.path.join("reports", "import", "import.log"))


def test_input_path_resolved_against_project_root(tmp_path, store, write_wxr):
    write_wxr(scenario_body(), name="site.xml")
    tool, _asked = make_tool(tmp_path, store)
    os.makedirs("elsewhere")
    os.chdir("elsewhere")
    assert tool.resolve_input_path("site.xml") == os.path.join(str(tmp_path), "site.xml")


def test_missing_file(tmp_path, store):
    tool, _asked = make_tool(tmp_path, store)
    with pytest.raises(FileNotFoundError):
        tool.run_import("nope.xml")


def test_old_export_writes_nothing(tmp_path, store, write_wxr):
    tool, _asked = make_tool(tmp_path, store)
    with pytest.raises(ValidationError):
        tool.run_import(write_wxr(scenario_body(), generator="WordPress/5.9"))
    assert store.resources == {}
    assert store.templates == {}
    assert store.users == {}


def test_malformed_export_writes_nothing(tmp_path, store):
    path = tmp_path / "broken.xml"
    path.write_text("<rss><channel>", encoding="utf-8")
    tool, _asked = make_tool(tmp_path, store)
    with pytest.raises(ParseError):
        tool.run_import(str(path))
    assert store.templates == {}


def test_media_errors_saved_to_log(tmp_path, store, write_wxr):
    body = item_xml(11, slug="trip", title="Trip", content=f'<img src="{IMG_URL}">')
    tool, asked = make_tool(tmp_path, store)
    summary = tool.run_import(write_wxr(body))
    assert len(summary.media_errors) == 1
    assert summary.error_log is not None
    assert os.path.basename(summary.error_log).startswith("import_errors_")
    with open(summary.error_log, encoding="utf-8") as f:
        assert IMG_URL in f.read()
    assert asked[-1] == "Do you want to save the error log to a file?"


def test_declined_downloads_keep_remote_urls(tmp_path, store, write_wxr):
    body = item_xml(30, post_type="attachment", slug="pic", attachment_url=IMG_URL) + item_xml(
        11, slug="trip", title="Trip", content=f'<img src="{IMG_URL}">'
    )
    tool, _asked = make_tool(tmp_path, store, answers=[False])
    summary = tool.run_import(write_wxr(body))
    assert tool.fetcher.downloads_enabled is False
    assert summary.media_errors == []
    assert store.find_resource(summary.post_map["11"]).body == f'<img src="{IMG_URL}">'


def test_rollback_undoes_import(tmp_path, store, write_wxr):
    store.create_user(User(username="admin", password="secret"))
    path = write_wxr(scenario_body() + author_xml("admin"))
    tool, asked = make_tool(tmp_path, store, answers=[True])
    tool.run_import(path)

    assert tool.run_rollback(path) is True
    assert asked[-1].startswith("WARNING: This will PERMANENTLY DELETE")
    assert store.resources == {}
    assert store.templates == {}
    assert store.tvs == {}
    assert store.tv_links == set()
    assert store.tv_values == {}
    assert [u.username for u in store.users.values()] == ["admin"]


def test_rollback_declined(tmp_path, store, write_wxr):
    path = write_wxr(scenario_body())
    tool, _asked = make_tool(tmp_path, store)
    tool.run_import(path)
    tool.confirm = lambda question, default: False
    assert tool.run_rollback(path) is False
    assert len(store.resources) == 3


def test_cli_dry_run(write_wxr, capsys):
    path = write_wxr(scenario_body())
    assert cli.main([path, "--dry-run", "--yes", "--config", "missing.json"]) == 0
    assert "Import completed: 1 categories, 1 users, 2 posts/pages." in capsys.readouterr().out


def test_cli_missing_file():
    assert cli.main(["nope.xml", "--dry-run", "--config", "missing.json"]) == 1


def test_cli_rejects_old_export(write_wxr):
    path = write_wxr(scenario_body(), generator="https://wordpress.org/?v=5.9")
    assert cli.main([path, "--dry-run", "--yes", "--config", "missing.json"]) == 1


def test_cli_prompts_for_file(write_wxr, monkeypatch):
    path = write_wxr(scenario_body())
    monkeypatch.setattr("builtins.input", lambda _prompt: path)
    assert cli.main(["--dry-run", "--yes", "--config", "missing.json"]) == 0
