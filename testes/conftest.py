import os
import sys

import pytest

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from wxr_import.stores.memory_store import MemoryContentStore
from wxr_samples import build_wxr


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    """Reports and logs are written relative to the working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("WXR_IMPORT_ROOT", raising=False)
    monkeypatch.delenv("WXR_IMPORT_DB", raising=False)


@pytest.fixture
def write_wxr(tmp_path):
    def _write(body: str, generator: str = "https://wordpress.org/?v=6.4.2", name: str = "export.xml") -> str:
        path = tmp_path / name
        path.write_text(build_wxr(body, generator), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def store():
    return MemoryContentStore()
