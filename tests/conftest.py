"""Test configuration and fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import Mock

import pytest

from rdm.models import IssueStatus, User
from rdm.redmine.client import RedmineClient


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of settings-driven tests."""
    for name in ("LOG_LEVEL", "RDM_LOG_FORMAT", "RDM_CACHE_STRATEGY", "RDM_REQUEST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def statuses() -> list[IssueStatus]:
    """Statuses in the order a Redmine server returns them."""
    return [
        IssueStatus(id=1, name="New"),
        IssueStatus(id=2, name="Rejected"),
        IssueStatus(id=3, name="In Progress"),
        IssueStatus(id=4, name="Interrupted"),
        IssueStatus(id=5, name="Closed"),
    ]


@pytest.fixture
def users() -> list[User]:
    return [
        User(id=10, login="asmith", first_name="Alice", last_name="Smith"),
        User(id=11, login="bjones", first_name="Bob", last_name="Jones"),
    ]


@pytest.fixture
def source(statuses: list[IssueStatus], users: list[User]) -> Mock:
    """A Redmine client stand-in that never touches the network."""
    client = Mock(spec=RedmineClient)
    client.issue_statuses.return_value = statuses
    client.users.return_value = users
    return client


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / ".rdm.json"
    path.write_text(
        json.dumps(
            {
                "redmine_key": "test-key",
                "redmine_url": "https://redmine.example.com",
                "default_close_status": "Rej",
            }
        ),
        encoding="utf-8",
    )
    return path
