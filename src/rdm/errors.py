"""Error taxonomy for rdm.

Every error the CLI reports to the user derives from `RdmError`, so the
CLI can print it and exit non-zero without a traceback.
Transport errors live in `rdm.redmine.errors`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class RdmError(Exception):
    """Base class for user-facing rdm errors."""


class ConfigError(RdmError):
    """Raised when the user configuration can't be found or loaded."""


@dataclass(frozen=True, slots=True)
class ConfigLoadingError(ConfigError):
    path: Path
    detail: str

    def __str__(self) -> str:
        return f"Configuration error: unable to read {self.path}: {self.detail}"


@dataclass(frozen=True, slots=True)
class ConfigParsingError(ConfigError):
    path: Path
    detail: str

    def __str__(self) -> str:
        return f"Configuration error: syntax error in {self.path}: {self.detail}"


@dataclass(frozen=True, slots=True)
class NoConfigFile(ConfigError):
    searched_paths: tuple[Path, ...]

    def __str__(self) -> str:
        searched = ", ".join(str(p) for p in self.searched_paths)
        return f"Configuration error: unable to find a config file. Searched paths: {searched}"


@dataclass(frozen=True, slots=True)
class CacheError(RdmError):
    """Raised when the reference cache file can't be read or written."""

    path: Path
    detail: str

    def __str__(self) -> str:
        return f"Cache error: {self.path}: {self.detail}"


class ResolutionError(RdmError):
    """Raised when a user-supplied name doesn't resolve to a Redmine id."""


@dataclass(frozen=True, slots=True)
class NoMatchingStatus(ResolutionError):
    query: str

    def __str__(self) -> str:
        return f"No issue status matched '{self.query}'"


@dataclass(frozen=True, slots=True)
class NoMatchingUser(ResolutionError):
    query: str

    def __str__(self) -> str:
        return f"No user matched '{self.query}'"


@dataclass(frozen=True, slots=True)
class ArgumentError(RdmError):
    """Raised for argument combinations the parser alone can't reject."""

    message: str

    def __str__(self) -> str:
        return f"Argument error: {self.message}"
