# jira_fields.py
"""
Issue fields and their wire codec.

On the wire an issue's ``fields`` object mixes well-known attributes
(``summary``, ``issuetype``, ...) with server-defined custom fields keyed
``customfield_<n>``. In memory the two halves are kept apart: the fixed schema
as typed attributes, the custom fields as a plain ``{key: text}`` mapping.

Decoding reads the fixed schema through the models and then scans the same raw
object for custom field keys. Encoding dumps the fixed schema and splices the
custom fields into the same flat object, custom keys first.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import pydantic
from pydantic import Field, ValidationInfo, model_serializer, model_validator

from jira_errors import DecodeError
from jira_models import CommentPage, IssueType, JiraModel, Project, Release, Status, is_wire

logger = logging.getLogger(__name__)

CUSTOM_FIELD_PREFIX = "customfield_"


def custom_field_text(value: Any) -> Optional[str]:
    """Text of a custom field value, or None when its shape is not supported.

    Objects yield their first string member whose key starts with ``value``,
    strings are taken as is, and null becomes an empty string.
    """
    if isinstance(value, dict):
        for name, member in value.items():
            if name.startswith("value") and isinstance(member, str):
                return member
        return None
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return None


def extract_custom_fields(raw: Mapping[str, Any]) -> Dict[str, str]:
    """Collect every ``customfield_*`` entry of a raw fields object as text."""
    custom_fields: Dict[str, str] = {}
    for key, value in raw.items():
        if not key.startswith(CUSTOM_FIELD_PREFIX):
            continue
        text = custom_field_text(value)
        if text is None:
            logger.debug(f"Skipping custom field {key} with unsupported value {type(value).__name__}")
            continue
        custom_fields[key] = text
    return custom_fields


def splice_custom_fields(custom_fields: Mapping[str, str], fixed: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge custom fields and fixed fields into one flat wire object."""
    wire: Dict[str, Any] = {key: {"value": value} for key, value in custom_fields.items()}
    wire.update(fixed)
    return wire


class CustomFieldsModel(JiraModel):
    """A fields object carrying custom fields next to its fixed schema.

    Objects decoded with ``from_wire`` always take their custom fields from
    the ``customfield_*`` keys; a ``custom_fields`` key sent by the server is
    dropped. Outside wire decoding a ``custom_fields`` argument is used as is.
    """

    custom_fields: Dict[str, str] = Field(default_factory=dict, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _collect_custom_fields(cls, data: Any, info: ValidationInfo) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if is_wire(info):
            data.pop("custom_fields", None)
        if "custom_fields" not in data:
            data["custom_fields"] = extract_custom_fields(data)
        return data

    @model_serializer(mode="wrap")
    def _splice_custom_fields(self, handler):
        fixed = handler(self)
        if not self.custom_fields:
            return fixed
        return splice_custom_fields(self.custom_fields, fixed)


class Fields(CustomFieldsModel):
    """All fields of an issue as read from the server."""

    project: Optional[Project] = None
    summary: str = ""
    issue_type: Optional[IssueType] = Field(None, alias="issuetype")
    fix_versions: List[Release] = Field(default_factory=list, alias="fixVersions")
    status: Optional[Status] = None
    created: Optional[str] = None
    description: Optional[str] = None
    comment: Optional[CommentPage] = None


class IssueRequest(CustomFieldsModel):
    """The writable subset of fields, sent when creating or updating an issue."""

    project: Optional[Project] = None
    summary: str = ""
    issue_type: Optional[IssueType] = Field(None, alias="issuetype")
    fix_versions: List[Release] = Field(default_factory=list, alias="fixVersions")
    description: Optional[str] = None

    def to_fields(self) -> Fields:
        """Fields record holding the submitted values."""
        return Fields(
            project=self.project,
            summary=self.summary,
            issue_type=self.issue_type,
            fix_versions=list(self.fix_versions),
            description=self.description,
            custom_fields=dict(self.custom_fields),
        )


class Issue(JiraModel):
    id: str = ""
    key: str = ""
    self_url: str = Field("", alias="self")
    fields: Fields = Field(default_factory=Fields)
    expand: str = ""
    # Field id to display name, present when fetched with expand=names
    names: Dict[str, str] = Field(default_factory=dict)


class SearchResult(JiraModel):
    start_at: int = Field(0, alias="startAt")
    max_results: int = Field(0, alias="maxResults")
    total: int = 0
    issues: List[Issue] = Field(default_factory=list)


def encode_fields(fields: CustomFieldsModel) -> Dict[str, Any]:
    """Flat wire object for a fields record, empty attributes left out."""
    return fields.to_wire()


def decode_fields(raw: Mapping[str, Any]) -> Fields:
    """Fields record from a raw wire object. Raises DecodeError on schema mismatch."""
    try:
        return Fields.from_wire(dict(raw))
    except pydantic.ValidationError as e:
        message = f"Failed to decode issue fields: {e}"
        logger.error(message)
        raise DecodeError(message) from e
