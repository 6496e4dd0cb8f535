"""Shared pytest fixtures for diskwarden tests."""

import sys

import pytest

from diskwarden.thresholds import MemoryRungStore
from tests.factories import RecordingSink


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def store():
    return MemoryRungStore()


@pytest.fixture(autouse=True)
def isolated_xdg(tmp_path, monkeypatch):
    """Keep config and state lookups inside the test's temp directory."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))


def pytest_configure(config):
    # Tests build 1100-level directory trees; pytest's recursive tmp-dir
    # cleanup needs a recursion limit deeper than that.
    sys.setrecursionlimit(max(sys.getrecursionlimit(), 10000))
