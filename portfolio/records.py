"""
Entity records returned by the storage clients, plus the payload
normalisation both storage implementations share.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Optional

from portfolio.errors import ValidationError


class ProjectStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class ContactStatus(str, enum.Enum):
    NEW = "new"
    READ = "read"
    REPLIED = "replied"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_timestamp(previous: Optional[datetime] = None) -> datetime:
    """Current time, nudged forward so it is strictly after `previous`."""
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


@dataclass
class User:
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class UserUpsert:
    """Upsert payload. A field left as None is kept from the stored user."""

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None

    def supplied_fields(self) -> dict[str, str]:
        values = {
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "profile_image_url": self.profile_image_url,
        }
        return {key: value for key, value in values.items() if value is not None}


@dataclass
class Project:
    id: int
    title: str
    slug: str
    description: str
    content: str
    category: str
    featured_image: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    status: ProjectStatus = ProjectStatus.DRAFT
    author_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Media:
    id: int
    filename: str
    original_name: str
    mime_type: str
    size: str
    url: str
    alt_text: Optional[str] = None
    uploaded_by: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def size_bytes(self) -> int:
        return parse_size(self.size)


@dataclass
class ContactSubmission:
    id: int
    name: str
    email: str
    subject: str
    message: str
    status: ContactStatus = ContactStatus.NEW
    created_at: datetime = field(default_factory=utcnow)


# Payload normalisation. Both storage clients run incoming dicts through these
# so validation failures look identical whichever backend is configured.

PROJECT_REQUIRED_FIELDS = ("title", "slug", "description", "content", "category")
PROJECT_OPTIONAL_FIELDS = ("featured_image", "tags", "status", "author_id")
MEDIA_REQUIRED_FIELDS = ("filename", "original_name", "mime_type", "size", "url")
MEDIA_OPTIONAL_FIELDS = ("alt_text", "uploaded_by")
CONTACT_REQUIRED_FIELDS = ("name", "email", "subject", "message")

_DIGITS = re.compile(r"[0-9]+")


def parse_project_status(value: Any) -> ProjectStatus:
    try:
        return ProjectStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid project status: {value!r}",
            details={"field": "status", "allowed": [s.value for s in ProjectStatus]},
        ) from None


def parse_contact_status(value: Any) -> ContactStatus:
    try:
        return ContactStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid contact status: {value!r}",
            details={"field": "status", "allowed": [s.value for s in ContactStatus]},
        ) from None


def parse_size(value: Any) -> int:
    """Byte counts travel as text; accept ints or digit strings only."""
    if isinstance(value, bool):
        raise ValidationError("Size must be a byte count", details={"field": "size"})
    if isinstance(value, int):
        size = value
    elif isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
        size = int(value.strip())
    else:
        raise ValidationError(
            f"Size must be a non-negative integer, got {value!r}",
            details={"field": "size"},
        )
    if size < 0:
        raise ValidationError("Size must not be negative", details={"field": "size"})
    return size


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    if tags is None:
        return []
    if isinstance(tags, str):
        raise ValidationError("Tags must be a list of strings", details={"field": "tags"})
    seen: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            raise ValidationError(
                "Tags must be a list of strings", details={"field": "tags"}
            )
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _reject_unknown(data: Mapping[str, Any], allowed: Iterable[str], entity: str) -> None:
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ValidationError(
            f"Unknown {entity} fields: {', '.join(unknown)}",
            details={"fields": unknown},
        )


def _required_text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{key}' is required", details={"field": key})
    return value


def _optional_text(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{key}' must be a string", details={"field": key})
    return value or None


def normalize_new_project(data: Mapping[str, Any]) -> dict[str, Any]:
    _reject_unknown(data, PROJECT_REQUIRED_FIELDS + PROJECT_OPTIONAL_FIELDS, "project")
    fields = {key: _required_text(data, key) for key in PROJECT_REQUIRED_FIELDS}
    fields["featured_image"] = _optional_text(data, "featured_image")
    fields["author_id"] = _optional_text(data, "author_id")
    fields["tags"] = normalize_tags(data.get("tags"))
    status = data.get("status")
    fields["status"] = (
        parse_project_status(status) if status is not None else ProjectStatus.DRAFT
    )
    return fields


def normalize_project_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    _reject_unknown(changes, PROJECT_REQUIRED_FIELDS + PROJECT_OPTIONAL_FIELDS, "project")
    fields: dict[str, Any] = {}
    for key in changes:
        if key in PROJECT_REQUIRED_FIELDS:
            fields[key] = _required_text(changes, key)
        elif key == "tags":
            fields[key] = normalize_tags(changes[key])
        elif key == "status":
            fields[key] = parse_project_status(changes[key])
        else:
            fields[key] = _optional_text(changes, key)
    return fields


def normalize_new_media(data: Mapping[str, Any]) -> dict[str, Any]:
    _reject_unknown(data, MEDIA_REQUIRED_FIELDS + MEDIA_OPTIONAL_FIELDS, "media")
    if "size" not in data:
        raise ValidationError("'size' is required", details={"field": "size"})
    fields = {
        key: _required_text(data, key) for key in MEDIA_REQUIRED_FIELDS if key != "size"
    }
    fields["size"] = str(parse_size(data["size"]))
    fields["alt_text"] = _optional_text(data, "alt_text")
    fields["uploaded_by"] = _optional_text(data, "uploaded_by")
    return fields


def normalize_new_contact(data: Mapping[str, Any]) -> dict[str, Any]:
    # Submissions always start as "new"; a client-supplied status is dropped.
    payload = {key: value for key, value in data.items() if key != "status"}
    _reject_unknown(payload, CONTACT_REQUIRED_FIELDS, "contact")
    return {key: _required_text(payload, key) for key in CONTACT_REQUIRED_FIELDS}


def newest_first(records: Iterable[Any]) -> list[Any]:
    """Order by creation time descending, ties broken by id descending."""
    return sorted(records, key=lambda r: (r.created_at, r.id), reverse=True)
