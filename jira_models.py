# jira_models.py
"""
Records returned by the Jira REST API: releases (fix versions), project and
issue-type references, statuses, users and comments.

Every model ignores keys it does not know about, so new server attributes never
break decoding, and a JSON null decodes to the attribute's default. Attribute
names are snake_case; the wire names live in aliases.
"""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# Validation context marking input that came from the server
WIRE_CONTEXT = {"wire": True}


def is_wire(info: ValidationInfo) -> bool:
    return bool(info.context and info.context.get("wire"))


class JiraModel(BaseModel):
    """Base for every Jira record: accepts wire aliases or attribute names, drops unknown keys."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value

    @classmethod
    def from_wire(cls, raw: Any):
        """Decode a parsed server response. Raises pydantic.ValidationError on schema mismatch."""
        return cls.model_validate(raw, context=WIRE_CONTEXT)

    def to_wire(self) -> dict:
        """Wire form with every empty/default attribute left out."""
        return self.model_dump(by_alias=True, exclude_defaults=True, exclude_none=True)


class Release(JiraModel):
    """A project version, known as "fix version" on the server."""

    id: str = ""
    name: str = ""
    self_url: str = Field("", alias="self")
    project_id: int = Field(0, alias="projectId")
    description: Optional[str] = None
    archived: bool = False
    released: bool = False
    overdue: bool = False
    start_date: Optional[str] = Field(None, alias="startDate")
    release_date: Optional[str] = Field(None, alias="releaseDate")
    user_start_date: Optional[str] = Field(None, alias="userStartDate")
    user_release_date: Optional[str] = Field(None, alias="userReleaseDate")

    # Field selection used when searching this release's issues. Set by the
    # caller, never sent or received.
    issue_fields: Optional[List[str]] = Field(None, exclude=True)


class Project(JiraModel):
    id: str = ""
    key: str = ""
    name: str = ""
    self_url: str = Field("", alias="self")


class IssueType(JiraModel):
    id: str = ""
    self_url: str = Field("", alias="self")
    name: str = ""
    subtask: bool = False
    description: Optional[str] = None


class Status(JiraModel):
    id: str = ""
    self_url: str = Field("", alias="self")
    name: str = ""
    description: Optional[str] = None


class User(JiraModel):
    name: str = ""
    key: str = ""
    display_name: str = Field("", alias="displayName")
    email_address: Optional[str] = Field(None, alias="emailAddress")
    active: bool = False


class Comment(JiraModel):
    """A single issue comment. Read-only."""

    id: str = ""
    self_url: str = Field("", alias="self")
    author: Optional[User] = None
    update_author: Optional[User] = Field(None, alias="updateAuthor")
    body: Optional[str] = None
    created: Optional[str] = None
    updated: Optional[str] = None


class CommentPage(JiraModel):
    """One page of comments as embedded in an issue's ``comment`` field."""

    start_at: int = Field(0, alias="startAt")
    max_results: int = Field(0, alias="maxResults")
    total: int = 0
    comments: List[Comment] = Field(default_factory=list)
