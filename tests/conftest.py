"""
FILE: tests/conftest.py
Shared fixtures for workflow tests.
"""

from pathlib import Path

import pytest

from src.api.routers.proposals import reset_workflow_service_for_tests
from src.core.workflow import ProposalWorkflowService
from src.infrastructure.workflow import (
    InMemoryNotificationEmitter,
    InMemoryProposalStore,
    InMemoryUserDirectory,
)
from tests.factories import USERS, user_directory_json


def _has_marker(item: pytest.Item, name: str) -> bool:
    return item.get_closest_marker(name) is not None


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if _has_marker(item, "unit") or _has_marker(item, "integration"):
            continue

        path = Path(str(item.fspath)).as_posix().lower()
        if "/tests/integration/" in path or "_integration.py" in path:
            item.add_marker(pytest.mark.integration)
            continue
        item.add_marker(pytest.mark.unit)


@pytest.fixture
def proposal_store() -> InMemoryProposalStore:
    return InMemoryProposalStore()


@pytest.fixture
def notifier() -> InMemoryNotificationEmitter:
    return InMemoryNotificationEmitter()


@pytest.fixture
def workflow_service(proposal_store, notifier) -> ProposalWorkflowService:
    return ProposalWorkflowService(
        store=proposal_store,
        notifier=notifier,
        users=InMemoryUserDirectory(USERS.values()),
    )


@pytest.fixture(autouse=True)
def workflow_runtime_test_harness(monkeypatch: pytest.MonkeyPatch):
    """Run the API against a fresh in-memory store with a seeded user directory."""

    monkeypatch.setenv("WORKFLOW_STORE_BACKEND", "IN_MEMORY")
    monkeypatch.delenv("WORKFLOW_POSTGRES_DSN", raising=False)
    monkeypatch.delenv("WORKFLOW_REQUIRE_EXPECTED_STATUS", raising=False)
    monkeypatch.delenv("WORKFLOW_NOTIFICATIONS_ENABLED", raising=False)
    monkeypatch.delenv("WORKFLOW_PROPOSAL_CODE_PREFIX", raising=False)
    monkeypatch.delenv("APP_PERSISTENCE_PROFILE", raising=False)
    monkeypatch.setenv("WORKFLOW_USER_DIRECTORY_JSON", user_directory_json())
    reset_workflow_service_for_tests()
    yield
    reset_workflow_service_for_tests()
