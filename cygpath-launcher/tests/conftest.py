"""Shared test configuration and fixtures for cygpath launcher lib tests."""
import os
import sys
from pathlib import Path

import pytest


def pytest_collection_modifyitems(config, items):
    """Auto-skip E2E tests unless CYGPATH_E2E=1 is set."""
    if os.environ.get("CYGPATH_E2E") == "1":
        return
    skip_e2e = pytest.mark.skip(reason="Set CYGPATH_E2E=1 to run E2E tests")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)

# Add repo lib directory to sys.path for imports
_LIB_DIR = str(Path(__file__).resolve().parent.parent / "lib")
if _LIB_DIR not in sys.path:
    sys.path.insert(0, _LIB_DIR)


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch):
    """Isolate configuration variables and interrupt state for each test."""
    monkeypatch.delenv("CYGPATH_TIMEOUT", raising=False)
    monkeypatch.delenv("CYGPATH_LOG_LEVEL", raising=False)
    import cancellation
    cancellation.interrupted()  # clear anything a previous test left behind
    yield
    cancellation.interrupted()


@pytest.fixture
def script_dir(tmp_path, monkeypatch):
    """Directory prepended to PATH for fake command-line tools."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", str(bin_dir) + os.pathsep + os.environ.get("PATH", ""))
    return bin_dir
