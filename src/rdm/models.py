"""Redmine resources as seen by rdm."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class IssueStatus(BaseModel):
    """A named workflow state, e.g. "Open" or "Closed"."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int = Field(ge=0)
    name: str

    def as_pair(self) -> tuple[int, str]:
        return self.id, self.name


class User(BaseModel):
    """A Redmine user.

    Redmine spells the name fields `firstname` / `lastname`; that spelling is
    kept on the wire and in the cache file.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: int = Field(ge=0)
    login: str
    first_name: str = Field(alias="firstname")
    last_name: str = Field(alias="lastname")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class NamedRef(BaseModel):
    """The `{id, name}` stub Redmine embeds for related resources."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str = ""


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    subject: str = ""
    status: NamedRef
    assigned_to: NamedRef | None = None
