"""Unit tests for the CLI command flow (Redmine client mocked)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import Mock

import pytest

import rdm.main as main_module
from rdm.errors import ArgumentError
from rdm.main import CloseIssue, ListIssues, UpdateIssue, build_parser, main, parse_command
from rdm.models import Issue, NamedRef
from rdm.redmine.errors import Forbidden


@pytest.fixture
def workspace(
    tmp_path: Path, config_path: Path, source: Mock, monkeypatch: pytest.MonkeyPatch
) -> Mock:
    """Run the CLI from a directory with a config file and a mocked client."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(main_module, "RedmineClient", lambda **kwargs: source)
    return source


@pytest.fixture
def no_client(monkeypatch: pytest.MonkeyPatch) -> Mock:
    factory = Mock(side_effect=AssertionError("RedmineClient must not be constructed"))
    monkeypatch.setattr(main_module, "RedmineClient", factory)
    return factory


def test_parse_issues_defaults_to_open() -> None:
    args = build_parser().parse_args(["issues"])

    assert parse_command(args) == ListIssues(assigned_to=None, closed=False, status=None)


def test_parse_update_and_close() -> None:
    parser = build_parser()

    assert parse_command(parser.parse_args(["issue", "12", "update", "-s", "clo"])) == UpdateIssue(
        number=12, new_status="clo"
    )
    assert parse_command(parser.parse_args(["issue", "12", "close"])) == CloseIssue(
        number=12, close_status=None
    )


def test_parse_update_without_status_is_rejected() -> None:
    args = build_parser().parse_args(["issue", "12", "update"])

    with pytest.raises(ArgumentError):
        parse_command(args)


def test_update_without_status_fails_before_any_request(
    no_client: Mock, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["issue", "12", "update"]) == 1

    no_client.assert_not_called()
    assert "requires --status" in capsys.readouterr().err


@pytest.mark.parametrize(
    ("argv", "flag"),
    [
        (["issues", "--status="], "--status"),
        (["issues", "--assigned-to", " "], "--assigned-to"),
        (["issue", "12", "update", "--status="], "--status"),
        (["issue", "12", "close", "--status="], "--status"),
    ],
)
def test_empty_names_are_rejected_before_any_request(
    argv: list[str], flag: str, no_client: Mock, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(argv) == 1

    no_client.assert_not_called()
    assert f"{flag} must not be empty" in capsys.readouterr().err


def test_invalid_log_level_is_a_configuration_error(
    tmp_path: Path,
    no_client: Mock,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOG_LEVEL", "verbose")

    assert main(["issues"]) == 1

    no_client.assert_not_called()
    assert "Configuration error" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv",
    [
        ["issue", "abc", "close"],
        ["issue", "0", "close"],
        ["issues", "--open", "--closed"],
        ["frobnicate"],
    ],
)
def test_usage_errors_exit_with_status_1(argv: list[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(argv)

    assert excinfo.value.code == 1


def test_help_exits_with_status_0() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])

    assert excinfo.value.code == 0


def test_update_resolves_status_and_caches_it(
    tmp_path: Path, workspace: Mock, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["issue", "7", "update", "--status", "clo"]) == 0

    workspace.update_issue.assert_called_once_with(7, 5)
    assert capsys.readouterr().out.strip() == "Updated issue #7 to 'Closed'"

    cached = json.loads((tmp_path / ".rdm-cache.json").read_text(encoding="utf-8"))
    assert [s["name"] for s in cached["issue_statuses"]][-1] == "Closed"

    # The second invocation finds a fresh cache and doesn't refetch.
    assert main(["issue", "8", "update", "--status", "in p"]) == 0
    assert workspace.issue_statuses.call_count == 1
    workspace.update_issue.assert_called_with(8, 3)


def test_close_uses_default_close_status(
    workspace: Mock, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["issue", "3", "close"]) == 0

    workspace.update_issue.assert_called_once_with(3, 2)
    assert capsys.readouterr().out.strip() == "Closed issue #3 as 'Rejected'"


def test_close_status_flag_overrides_default(workspace: Mock) -> None:
    assert main(["issue", "3", "close", "--status", "CLOSED"]) == 0

    workspace.update_issue.assert_called_once_with(3, 5)


def test_close_without_any_status_fails_before_any_request(
    tmp_path: Path,
    no_client: Mock,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    (tmp_path / ".rdm.json").write_text(
        json.dumps({"redmine_key": "k", "redmine_url": "https://redmine.example.com"}),
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    assert main(["issue", "3", "close"]) == 1

    no_client.assert_not_called()
    assert "default_close_status" in capsys.readouterr().err


def test_unknown_status_is_reported(
    workspace: Mock, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["issue", "7", "update", "--status", "wontfix"]) == 1

    workspace.update_issue.assert_not_called()
    assert "No issue status matched 'wontfix'" in capsys.readouterr().err


def test_transport_errors_are_reported(
    workspace: Mock, capsys: pytest.CaptureFixture[str]
) -> None:
    workspace.issue_statuses.side_effect = Forbidden(
        method="GET", url="https://redmine.example.com/issue_statuses.json"
    )

    assert main(["issue", "7", "update", "--status", "clo"]) == 1

    assert "Authorization error" in capsys.readouterr().err


def test_missing_config_is_reported(
    tmp_path: Path,
    no_client: Mock,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    empty = tmp_path / "nowhere"
    empty.mkdir()
    monkeypatch.chdir(empty)

    assert main(["issues"]) == 1

    assert "unable to find a config file" in capsys.readouterr().err


def test_issues_lists_with_resolved_filters(
    workspace: Mock, capsys: pytest.CaptureFixture[str]
) -> None:
    workspace.list_issues.return_value = [
        Issue(
            id=21,
            subject="Flaky test",
            status=NamedRef(id=3, name="In Progress"),
            assigned_to=NamedRef(id=11, name="Bob Jones"),
        ),
        Issue(id=22, subject="Triage", status=NamedRef(id=3, name="In Progress")),
    ]

    assert main(["issues", "--assigned-to", "bob", "--status", "in pro"]) == 0

    workspace.list_issues.assert_called_once_with(status_id=3, assigned_to_id=11)
    assert capsys.readouterr().out.splitlines() == [
        "#21 [In Progress] Flaky test (Bob Jones)",
        "#22 [In Progress] Triage (unassigned)",
    ]


def test_issues_closed_for_me(workspace: Mock, capsys: pytest.CaptureFixture[str]) -> None:
    workspace.list_issues.return_value = []

    assert main(["issues", "--closed", "--assigned-to", "me"]) == 0

    workspace.list_issues.assert_called_once_with(status_id="closed", assigned_to_id="me")
    workspace.users.assert_not_called()
    assert capsys.readouterr().out.strip() == "No issues found"


def test_eager_strategy_warms_cache_up_front(
    tmp_path: Path, workspace: Mock, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("RDM_CACHE_STRATEGY", "eager")

    assert main(["issue", "7", "update", "--status", "clo"]) == 0

    workspace.users.assert_called_once()
    cached = json.loads((tmp_path / ".rdm-cache.json").read_text(encoding="utf-8"))
    assert cached["users"][0]["login"] == "asmith"
