"""Redmine REST API access."""

from rdm.redmine.client import RedmineClient
from rdm.redmine.errors import (
    Forbidden,
    HttpError,
    RedmineError,
    ResponseError,
    ServerError,
    UnknownError,
)

__all__ = [
    "Forbidden",
    "HttpError",
    "RedmineClient",
    "RedmineError",
    "ResponseError",
    "ServerError",
    "UnknownError",
]
