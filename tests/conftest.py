"""Pytest configuration and shared fixtures for mind map tests."""

import pytest
from fastapi.testclient import TestClient

from mindmap_core import AppState, DocumentHierarchy, GraphEditor, HistoryManager
from mindmap_backend.main import create_app
from mindmap_backend.manager import MindMapManager
from mindmap_backend.persistence import JsonFileStore


@pytest.fixture
def history():
    """Empty history with the default cap."""
    return HistoryManager()


@pytest.fixture
def hierarchy(history):
    """Hierarchy holding one active document with the default root node."""
    hierarchy = DocumentHierarchy(AppState(), history)
    hierarchy.create_document("Test Map")
    return hierarchy


@pytest.fixture
def document(hierarchy):
    """The active document."""
    return hierarchy.active_document


@pytest.fixture
def editor(hierarchy, history):
    """Editor bound to the active document."""
    return GraphEditor(hierarchy, history)


@pytest.fixture
def state_file(tmp_path):
    return tmp_path / "state.json"


@pytest.fixture
def manager(state_file):
    """Manager persisting to a temporary file."""
    return MindMapManager(store=JsonFileStore(state_file), autosave_delay=0.05)


@pytest.fixture
def client(manager):
    """API client; entering the context runs the startup load."""
    with TestClient(create_app(manager)) as test_client:
        yield test_client
