"""Resolve user-typed names to Redmine ids.

Matching is a case-insensitive prefix comparison: the query and the candidate
are compared character by character up to the shorter of the two, so "clo"
and "CLOSED" both pick "Closed". A query longer than the candidate still
matches when the overlapping part agrees ("closedextra" matches "Closed").

The first matching candidate in input order wins; there's no scoring and no
ambiguity error.
"""

from __future__ import annotations

from collections.abc import Iterable

from rdm.errors import NoMatchingStatus, NoMatchingUser
from rdm.models import IssueStatus, User


def _chars_match(query_char: str, name_char: str) -> bool:
    # str.lower() can expand a character to several ("İ" -> "i̇"), so the
    # expansions are compared pairwise rather than as whole strings.
    return all(a == b for a, b in zip(query_char.lower(), name_char.lower()))


def matches(query: str, name: str) -> bool:
    """Return True if `query` is a case-insensitive prefix of `name` over their overlap."""

    return all(_chars_match(q, n) for q, n in zip(query, name))


def find_status_id(
    query: str, statuses: Iterable[IssueStatus | tuple[int, str]]
) -> int:
    """Return the id of the first status whose name matches `query`.

    Raises:
        NoMatchingStatus: if no status matches.
    """

    for status in statuses:
        status_id, name = status.as_pair() if isinstance(status, IssueStatus) else status
        if matches(query, name):
            return status_id
    raise NoMatchingStatus(query=query)


def find_user_id(query: str, users: Iterable[User]) -> int:
    """Return the id of the first user whose login or full name matches `query`.

    Raises:
        NoMatchingUser: if no user matches.
    """

    for user in users:
        if matches(query, user.login) or matches(query, user.full_name):
            return user.id
    raise NoMatchingUser(query=query)
