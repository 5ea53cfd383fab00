"""
Shared pytest fixtures for the Program Management Assistant test suite.

Provides:
    - app: Flask application, testing config, memory storage (session-scoped)
    - _reset_workspace: empty storage + fresh dashboard state per test (autouse)
    - client: Flask test client (function-scoped)
    - workspace: the app's Workspace (services + state)
    - store: a standalone DashboardStore over its own memory backend
    - ai_session: MagicMock standing in for the AI gateway's HTTP session
"""

from unittest.mock import MagicMock

import pytest

from pmassist import create_app
from pmassist.services.dashboard_store import DashboardStore
from pmassist.services.workspace import get_workspace
from pmassist.storage import MemoryKeyValueStore, StoreAdapter


# ── App fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(autouse=True)
def _reset_workspace(app):
    """Per-test: open app context, wipe storage, reload empty state."""
    with app.app_context():
        ws = get_workspace()
        ws.state.adapter.store.clear()
        ws.load()
        yield


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def workspace(app):
    return get_workspace()


@pytest.fixture
def store():
    """DashboardStore over a private memory backend, not tied to the app."""
    state = DashboardStore(StoreAdapter(MemoryKeyValueStore()))
    state.load()
    return state


@pytest.fixture
def ai_session(workspace):
    """Swap the gateway's HTTP session for a mock; restored afterwards."""
    original = workspace.gateway.session
    mock_session = MagicMock()
    workspace.gateway.session = mock_session
    yield mock_session
    workspace.gateway.session = original
