"""Configuration for rdm.

Two sources are involved:

- the user config file `.rdm.json`, discovered by walking upward from the
  current directory. It holds the Redmine URL and API key, and its location
  also anchors the reference cache file.
- environment variables (and a local `.env` file, if present) for process
  behaviour: log level and format, cache strategy and request timeout.

Both are loaded once in `rdm.main` and passed explicitly to the components
that need them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rdm.errors import ConfigLoadingError, ConfigParsingError, NoConfigFile
from rdm.logging import LogFormat

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".rdm.json"

CacheStrategy = Literal["lazy", "eager"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class UserConfig(BaseModel):
    """Contents of `.rdm.json`."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    redmine_key: str = Field(min_length=1, description="Redmine REST API key")
    redmine_url: AnyHttpUrl = Field(description="Base URL of the Redmine server")
    default_close_status: str | None = Field(
        default=None,
        description="Status name used by `issue <n> close` when --status is omitted",
    )


class RdmSettings(BaseSettings):
    """Process-level settings.

    Environment variables:
    - LOG_LEVEL            (optional; DEBUG, INFO, WARNING, ERROR or CRITICAL)
    - RDM_LOG_FORMAT       (optional; "text" or "json")
    - RDM_CACHE_STRATEGY   (optional; "lazy" or "eager")
    - RDM_REQUEST_TIMEOUT  (optional; seconds)
    """

    log_level: LogLevel = Field(
        default="WARNING",
        validation_alias="LOG_LEVEL",
        description="Root logging level (case-insensitive)",
    )

    log_format: LogFormat = Field(
        default="text",
        validation_alias="RDM_LOG_FORMAT",
        description="Log line format on stderr: plain 'text' or structured 'json'",
    )

    cache_strategy: CacheStrategy = Field(
        default="lazy",
        validation_alias="RDM_CACHE_STRATEGY",
        description=(
            "How reference data is fetched on a stale cache: 'lazy' fetches each "
            "field on first use, 'eager' fetches statuses and users together up front"
        ),
    )

    request_timeout: float = Field(
        default=30.0,
        gt=0,
        validation_alias="RDM_REQUEST_TIMEOUT",
        description="Timeout in seconds for each Redmine request",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        return value.strip().upper() if isinstance(value, str) else value


@dataclass(frozen=True, slots=True)
class LoadedConfig:
    """A parsed user config together with the file it came from."""

    path: Path
    config: UserConfig


def candidate_config_paths(start: Path) -> list[Path]:
    """Return every `.rdm.json` location from `start` up to the filesystem root."""

    start = start.resolve()
    return [directory / CONFIG_FILENAME for directory in (start, *start.parents)]


def find_config_file(start: Path | None = None) -> Path:
    """Return the nearest `.rdm.json` at or above `start` (default: cwd).

    Raises:
        NoConfigFile: listing every path that was tried.
    """

    tried: list[Path] = []
    for path in candidate_config_paths(start or Path.cwd()):
        if path.is_file():
            logger.debug("Found config file", extra={"path": str(path)})
            return path
        tried.append(path)
    raise NoConfigFile(searched_paths=tuple(tried))


def read_user_config(path: Path) -> UserConfig:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigLoadingError(path=path, detail=str(e)) from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigParsingError(path=path, detail=str(e)) from e

    try:
        return UserConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigParsingError(path=path, detail=str(e)) from e


def load_user_config(start: Path | None = None) -> LoadedConfig:
    """Discover and parse the user config file."""

    path = find_config_file(start)
    return LoadedConfig(path=path, config=read_user_config(path))
