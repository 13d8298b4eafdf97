"""CLI entrypoint for rdm.

Usage:
    rdm issues [--assigned-to=<user>] [--open|--closed|--status=<status>]
    rdm issue <issue-number> update --status=<status>
    rdm issue <issue-number> close [--status=<status>]
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import NoReturn

from pydantic import ValidationError

from rdm import __version__
from rdm.cache import ReferenceCache
from rdm.config import RdmSettings, UserConfig, load_user_config
from rdm.errors import ArgumentError, RdmError
from rdm.logging import configure_logging
from rdm.models import Issue, IssueStatus
from rdm.redmine.client import IssueStatusFilter, RedmineClient
from rdm.resolver import find_status_id, find_user_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ListIssues:
    assigned_to: str | None = None
    closed: bool = False
    status: str | None = None


@dataclass(frozen=True, slots=True)
class UpdateIssue:
    number: int
    new_status: str


@dataclass(frozen=True, slots=True)
class CloseIssue:
    number: int
    close_status: str | None = None


Command = ListIssues | UpdateIssue | CloseIssue


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: Argument error: {message}\n")


def _issue_number(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid issue number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"issue number must be positive: {value!r}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="rdm",
        description="A command-line Redmine client",
    )
    parser.add_argument("--version", action="version", version=f"rdm {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    issues = subparsers.add_parser("issues", help="List issues")
    issues.add_argument(
        "-a",
        "--assigned-to",
        default=None,
        help=(
            "The user whose issues to list: 'me', or a case-insensitive prefix of a "
            "user's login or full name"
        ),
    )
    status_group = issues.add_mutually_exclusive_group()
    status_group.add_argument("--open", action="store_true", help="Only open issues (default)")
    status_group.add_argument("--closed", action="store_true", help="Only closed issues")
    status_group.add_argument(
        "-s",
        "--status",
        default=None,
        help="Only issues with this status (case-insensitive prefix of the status name)",
    )

    issue = subparsers.add_parser("issue", help="Act on a single issue")
    issue.add_argument("number", type=_issue_number, help="The number of an issue")

    actions = issue.add_subparsers(dest="action", required=True)

    update = actions.add_parser("update", help="Change an issue's status")
    update.add_argument(
        "-s",
        "--status",
        default=None,
        help="A status name (case-insensitive prefix)",
    )

    close = actions.add_parser("close", help="Close an issue")
    close.add_argument(
        "-s",
        "--status",
        default=None,
        help=(
            "A status name (case-insensitive prefix). Optional if the config file sets "
            "'default_close_status'"
        ),
    )

    return parser


def _reject_empty(args: argparse.Namespace, dest: str) -> None:
    # An explicitly empty name ("--status=") would match the first candidate.
    value = getattr(args, dest, None)
    if value is not None and not value.strip():
        flag = "--" + dest.replace("_", "-")
        raise ArgumentError(f"{flag} must not be empty")


def parse_command(args: argparse.Namespace) -> Command:
    """Turn parsed arguments into a command.

    Raises:
        ArgumentError: for combinations argparse doesn't reject on its own.
    """

    _reject_empty(args, "status")

    if args.command == "issues":
        _reject_empty(args, "assigned_to")
        return ListIssues(assigned_to=args.assigned_to, closed=args.closed, status=args.status)

    if args.action == "update":
        if args.status is None:
            raise ArgumentError("'update' requires --status")
        return UpdateIssue(number=args.number, new_status=args.status)

    return CloseIssue(number=args.number, close_status=args.status)


def _close_status_name(command: CloseIssue, config: UserConfig) -> str:
    name = command.close_status
    if name is None:
        name = config.default_close_status
    if not name:
        raise ArgumentError(
            "unable to determine which status name to use; pass --status or set "
            "'default_close_status' in the config file"
        )
    return name


def _set_status(
    *, number: int, status_name: str, client: RedmineClient, cache: ReferenceCache
) -> IssueStatus:
    statuses = cache.get_issue_statuses()
    status_id = find_status_id(status_name, statuses)
    status = next(s for s in statuses if s.id == status_id)

    client.update_issue(number, status.id)
    return status


def _format_issue(issue: Issue) -> str:
    assignee = issue.assigned_to.name if issue.assigned_to is not None else "unassigned"
    return f"#{issue.id} [{issue.status.name}] {issue.subject} ({assignee})"


def _list_issues(command: ListIssues, *, client: RedmineClient, cache: ReferenceCache) -> int:
    status_id: IssueStatusFilter = "closed" if command.closed else "open"
    if command.status is not None:
        status_id = find_status_id(command.status, cache.get_issue_statuses())

    assigned_to_id: int | str | None = None
    if command.assigned_to is not None:
        if command.assigned_to.lower() == "me":
            assigned_to_id = "me"
        else:
            assigned_to_id = find_user_id(command.assigned_to, cache.get_users())

    issues = client.list_issues(status_id=status_id, assigned_to_id=assigned_to_id)
    if not issues:
        print("No issues found")
        return 0

    for issue in issues:
        print(_format_issue(issue))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = RdmSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your environment / .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 1

    configure_logging(settings.log_level, fmt=settings.log_format)

    try:
        command = parse_command(args)
        loaded = load_user_config()

        # Resolve everything that can fail locally before touching the network.
        close_status = (
            _close_status_name(command, loaded.config) if isinstance(command, CloseIssue) else None
        )

        client = RedmineClient(
            api_key=loaded.config.redmine_key,
            base_url=str(loaded.config.redmine_url),
            timeout=settings.request_timeout,
        )
        try:
            cache = ReferenceCache.open(loaded.path, client, strategy=settings.cache_strategy)

            if isinstance(command, ListIssues):
                return _list_issues(command, client=client, cache=cache)

            if isinstance(command, UpdateIssue):
                status = _set_status(
                    number=command.number,
                    status_name=command.new_status,
                    client=client,
                    cache=cache,
                )
                print(f"Updated issue #{command.number} to '{status.name}'")
                return 0

            assert close_status is not None
            status = _set_status(
                number=command.number, status_name=close_status, client=client, cache=cache
            )
            print(f"Closed issue #{command.number} as '{status.name}'")
            return 0
        finally:
            client.close()

    except RdmError as e:
        logger.debug("Command failed", extra={"error": type(e).__name__})
        print(str(e), file=sys.stderr)
        return 1

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
