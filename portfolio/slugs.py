"""
Slug derivation for project titles.

Slugs are not disambiguated: two titles that reduce to the same slug make the
second create (or rename) fail with a ConflictError from the storage client.
"""

from __future__ import annotations

import re

from portfolio.errors import ValidationError

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9-]")


def slugify(title: str) -> str:
    slug = _DISALLOWED.sub("", _WHITESPACE.sub("-", (title or "").lower()))
    if not slug:
        raise ValidationError(
            f"Title {title!r} does not produce a usable slug",
            details={"field": "title"},
        )
    return slug
