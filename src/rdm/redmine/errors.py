"""Transport error taxonomy for the Redmine REST client."""

from __future__ import annotations

from dataclasses import dataclass

from rdm.errors import RdmError


class RedmineError(RdmError):
    """Base class for failures talking to the Redmine server."""


@dataclass(frozen=True, slots=True)
class HttpError(RedmineError):
    """The request never produced an HTTP response (DNS, connection, timeout)."""

    method: str
    url: str
    detail: str

    def __str__(self) -> str:
        return f"Http error: {self.method} {self.url}: {self.detail}"


@dataclass(frozen=True, slots=True)
class ResponseError(RedmineError):
    """The server answered 2xx but the body wasn't the JSON we expected."""

    method: str
    url: str
    detail: str

    def __str__(self) -> str:
        return f"Invalid response: {self.method} {self.url}: {self.detail}"


@dataclass(frozen=True, slots=True)
class Forbidden(RedmineError):
    method: str
    url: str

    def __str__(self) -> str:
        return f"Authorization error: Server denied access to {self.method} {self.url}"


@dataclass(frozen=True, slots=True)
class ServerError(RedmineError):
    method: str
    url: str

    def __str__(self) -> str:
        return f"Server-side error: Server returned error on {self.method} {self.url}"


@dataclass(frozen=True, slots=True)
class UnknownError(RedmineError):
    method: str
    url: str
    status_code: int

    def __str__(self) -> str:
        return f"Unknown error: Server returned {self.status_code} on {self.method} {self.url}"
