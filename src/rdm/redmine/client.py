"""Redmine REST API client.

This intentionally wraps `requests` to keep HTTP calls out of CLI code and make tests easy.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from typing import Any, Literal
from urllib.parse import urljoin

import requests
from pydantic import BaseModel, ValidationError

from rdm.models import Issue, IssueStatus, User
from rdm.redmine.errors import (
    Forbidden,
    HttpError,
    ResponseError,
    ServerError,
    UnknownError,
)

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Redmine-API-Key"

IssueStatusFilter = Literal["open", "closed", "*"] | int


class _IssueStatusesEnvelope(BaseModel):
    issue_statuses: list[IssueStatus]


class _UsersEnvelope(BaseModel):
    users: list[User]


class _IssuesEnvelope(BaseModel):
    issues: list[Issue]


class RedmineClient:
    """Small wrapper around the Redmine REST API for the operations rdm needs.

    `requests.Session` is not thread-safe, so each thread calling the client
    gets its own session from `session_factory`. `close()` closes all of them.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout: float = 30.0,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        if not api_key:
            raise ValueError("Redmine API key is required")
        if not base_url:
            raise ValueError("Redmine URL is required")

        # A trailing slash keeps urljoin from dropping the last path segment
        # of sub-path deployments like https://host/redmine.
        self._base_url = base_url.rstrip("/") + "/"
        self._timeout = timeout
        self._headers = {
            API_KEY_HEADER: api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "rdm",
        }
        self._session_factory = session_factory
        self._local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._session_factory()
            session.headers.update(self._headers)
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    @property
    def base_url(self) -> str:
        return self._base_url

    def _url(self, path: str) -> str:
        return urljoin(self._base_url, path.lstrip("/"))

    def _issue_url(self, issue_number: int) -> str:
        if issue_number <= 0:
            raise ValueError("issue_number must be a positive integer")
        return self._url(f"issues/{issue_number}.json")

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> requests.Response:
        request_id = uuid.uuid4().hex
        logger.debug(
            "Sending request",
            extra={"request_id": request_id, "method": method, "url": url, "body": body},
        )

        try:
            resp = self._session().request(
                method,
                url,
                params=params,
                json=body,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise HttpError(method=method, url=url, detail=str(e)) from e

        status = resp.status_code
        logger.debug(
            "Received response",
            extra={"request_id": request_id, "status_code": status},
        )

        if status in (401, 403):
            raise Forbidden(method=method, url=url)
        if 500 <= status < 600:
            raise ServerError(method=method, url=url)
        if not 200 <= status < 300:
            raise UnknownError(method=method, url=url, status_code=status)
        return resp

    def _get_json(self, url: str, *, params: dict[str, Any] | None = None) -> Any:
        resp = self._request("GET", url, params=params)
        try:
            return resp.json()
        except ValueError as e:
            raise ResponseError(method="GET", url=url, detail=str(e)) from e

    def issue_statuses(self) -> list[IssueStatus]:
        """Fetch every issue status defined on the server, in server order."""

        url = self._url("issue_statuses.json")
        payload = self._get_json(url)
        try:
            return _IssueStatusesEnvelope.model_validate(payload).issue_statuses
        except ValidationError as e:
            raise ResponseError(method="GET", url=url, detail=str(e)) from e

    def users(self) -> list[User]:
        """Fetch the server's users (requires an administrator API key)."""

        url = self._url("users.json")
        payload = self._get_json(url)
        try:
            return _UsersEnvelope.model_validate(payload).users
        except ValidationError as e:
            raise ResponseError(method="GET", url=url, detail=str(e)) from e

    def list_issues(
        self,
        *,
        status_id: IssueStatusFilter = "open",
        assigned_to_id: int | str | None = None,
    ) -> list[Issue]:
        """List issues matching the filters.

        Only the first page the server returns is read.
        """

        url = self._url("issues.json")
        params: dict[str, Any] = {"status_id": status_id}
        if assigned_to_id is not None:
            params["assigned_to_id"] = assigned_to_id

        logger.debug("Listing issues", extra={"params": params})
        payload = self._get_json(url, params=params)
        try:
            return _IssuesEnvelope.model_validate(payload).issues
        except ValidationError as e:
            raise ResponseError(method="GET", url=url, detail=str(e)) from e

    def update_issue(self, issue_number: int, status_id: int) -> None:
        """Set an issue's status by numeric id."""

        url = self._issue_url(issue_number)
        body = {"issue": {"status_id": status_id}}
        logger.info(
            "Updating issue status",
            extra={"issue_number": issue_number, "status_id": status_id},
        )
        self._request("PUT", url, body=body)

    def close(self) -> None:
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
