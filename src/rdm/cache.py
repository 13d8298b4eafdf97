"""Local cache of Redmine reference data (issue statuses and users).

The cache file lives next to the user's `.rdm.json` as `.rdm-cache.json`.
A cached snapshot is trusted only when it was written at or after the last
change to the config file and less than two hours ago; otherwise rdm starts
from an empty snapshot and refetches.

Two fetch strategies are supported on a stale cache:

- ``lazy``: each field is fetched the first time it's asked for and the
  snapshot is persisted after every successful fetch. A failure fetching one
  field leaves the other cached.
- ``eager``: statuses and users are fetched concurrently when the cache is
  opened and persisted once. If either fetch fails, the whole warm-up fails
  and nothing is cached.

The file isn't locked; two rdm processes started at the same moment can race
on it. The worst outcome is a redundant fetch.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field, ValidationError

from rdm.config import CacheStrategy
from rdm.errors import CacheError
from rdm.models import IssueStatus, User

logger = logging.getLogger(__name__)

CACHE_FILENAME = ".rdm-cache.json"
FRESHNESS_WINDOW = timedelta(hours=2)


class ReferenceDataSource(Protocol):
    """What the cache needs from the Redmine client."""

    def issue_statuses(self) -> list[IssueStatus]: ...

    def users(self) -> list[User]: ...


class CacheSnapshot(BaseModel):
    """Reference data as last fetched from the server.

    A field is None until it has been fetched successfully.
    """

    issue_statuses: list[IssueStatus] | None = None
    users: list[User] | None = None

    snapshot_timestamp: datetime | None = Field(default=None, exclude=True)

    def to_json(self) -> str:
        payload = self.model_dump(mode="json", by_alias=True)
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def cache_path_for(config_path: Path) -> Path:
    return config_path.with_name(CACHE_FILENAME)


def file_mtime(path: Path) -> datetime | None:
    """Return the file's modification time in UTC, or None if it can't be read."""

    try:
        return datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
    except OSError:
        return None


def is_cache_fresh(
    config_mtime: datetime | None,
    cache_mtime: datetime | None,
    now: datetime,
    window: timedelta = FRESHNESS_WINDOW,
) -> bool:
    """Decide whether a cache written at `cache_mtime` can be trusted at `now`.

    Equal config and cache timestamps count as fresh; an age of exactly
    `window` counts as stale.
    """

    if config_mtime is None or cache_mtime is None:
        return False
    if config_mtime > cache_mtime:
        return False
    return now - cache_mtime < window


def load_snapshot(path: Path) -> CacheSnapshot:
    """Read a snapshot from disk.

    Raises:
        CacheError: if the file can't be read or doesn't hold a valid snapshot.
    """

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise CacheError(path=path, detail=f"unable to read cache file: {e}") from e
    except json.JSONDecodeError as e:
        raise CacheError(path=path, detail=f"cache file is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise CacheError(path=path, detail="cache file has unexpected shape")

    try:
        snapshot = CacheSnapshot.model_validate(raw)
    except ValidationError as e:
        raise CacheError(path=path, detail=f"cache file has unexpected shape: {e}") from e

    return snapshot.model_copy(update={"snapshot_timestamp": file_mtime(path)})


def save_snapshot(path: Path, snapshot: CacheSnapshot) -> CacheSnapshot:
    """Overwrite the cache file with `snapshot`.

    Returns the snapshot stamped with the new file time.

    Raises:
        CacheError: if the file can't be written.
    """

    try:
        path.write_text(snapshot.to_json(), encoding="utf-8")
    except OSError as e:
        raise CacheError(path=path, detail=f"unable to write cache file: {e}") from e

    logger.debug("Reference cache written", extra={"path": str(path)})
    return snapshot.model_copy(update={"snapshot_timestamp": file_mtime(path)})


class ReferenceCache:
    """Serves issue statuses and users from the snapshot, fetching on a miss."""

    def __init__(
        self,
        path: Path,
        source: ReferenceDataSource,
        snapshot: CacheSnapshot | None = None,
    ) -> None:
        self._path = path
        self._source = source
        self._snapshot = snapshot if snapshot is not None else CacheSnapshot()

    @classmethod
    def open(
        cls,
        config_path: Path,
        source: ReferenceDataSource,
        *,
        strategy: CacheStrategy = "lazy",
        now: datetime | None = None,
    ) -> ReferenceCache:
        """Open the cache that belongs to the config file at `config_path`.

        A fresh cache file is loaded as-is; a corrupt one raises `CacheError`
        rather than being silently refetched. A stale cache starts empty, and
        under the eager strategy is warmed immediately.
        """

        path = cache_path_for(config_path)
        now = now or datetime.now(UTC)

        if is_cache_fresh(file_mtime(config_path), file_mtime(path), now):
            logger.debug("Using fresh reference cache", extra={"path": str(path)})
            return cls(path, source, load_snapshot(path))

        logger.info("Reference cache is stale or missing", extra={"path": str(path)})
        cache = cls(path, source)
        if strategy == "eager":
            cache.warm()
        return cache

    @property
    def path(self) -> Path:
        return self._path

    @property
    def snapshot(self) -> CacheSnapshot:
        return self._snapshot

    def _commit(self, **fields: Any) -> None:
        # Persist first so the in-memory snapshot never runs ahead of the file.
        updated = self._snapshot.model_copy(update=fields)
        self._snapshot = save_snapshot(self._path, updated)

    def get_issue_statuses(self) -> list[IssueStatus]:
        if self._snapshot.issue_statuses is not None:
            logger.debug("Issue statuses served from cache")
            return list(self._snapshot.issue_statuses)

        logger.debug("Issue statuses not cached; fetching")
        statuses = self._source.issue_statuses()
        self._commit(issue_statuses=list(statuses))
        return list(statuses)

    def get_users(self) -> list[User]:
        if self._snapshot.users is not None:
            logger.debug("Users served from cache")
            return list(self._snapshot.users)

        logger.debug("Users not cached; fetching")
        users = self._source.users()
        self._commit(users=list(users))
        return list(users)

    def warm(self) -> None:
        """Fetch statuses and users concurrently and persist them together.

        Both fetches run to completion. If either fails, the first failure to
        complete is raised and the snapshot is left unchanged.
        """

        logger.info("Warming reference cache")
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="rdm-cache") as pool:
            futures: dict[Future[Any], str] = {
                pool.submit(self._source.issue_statuses): "issue_statuses",
                pool.submit(self._source.users): "users",
            }
            fetched: dict[str, Any] = {}
            for fut in as_completed(futures):
                fetched[futures[fut]] = list(fut.result())

        self._commit(**fetched)
        logger.info(
            "Reference cache warmed",
            extra={
                "issue_statuses": len(fetched["issue_statuses"]),
                "users": len(fetched["users"]),
            },
        )
