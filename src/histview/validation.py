"""Validation of identifiers and queries typed by the user."""

from __future__ import annotations

import string
import unicodedata

from .exceptions import InvalidInput

MIN_COMMIT_ID_LENGTH = 4
MAX_COMMIT_ID_LENGTH = 40
MAX_SEARCH_QUERY_LENGTH = 1000
MAX_REF_NAME_LENGTH = 255

_HEX_DIGITS = frozenset(string.hexdigits)
_INVALID_REF_CHARS = " ~^:?*[\\\x7f\n\r"


def validate_commit_id(commit_id: str) -> str:
    """Check that ``commit_id`` looks like a full or abbreviated object id.

    Returns the id unchanged so calls can be chained.
    """

    if not commit_id:
        raise InvalidInput(commit_id, "Commit ID cannot be empty")
    if len(commit_id) < MIN_COMMIT_ID_LENGTH:
        raise InvalidInput(
            commit_id,
            f"Commit ID too short (minimum {MIN_COMMIT_ID_LENGTH} characters)",
        )
    if len(commit_id) > MAX_COMMIT_ID_LENGTH:
        raise InvalidInput(
            commit_id,
            f"Commit ID too long (maximum {MAX_COMMIT_ID_LENGTH} characters)",
        )
    if not all(char in _HEX_DIGITS for char in commit_id):
        raise InvalidInput(commit_id, "Commit ID contains non-hexadecimal characters")
    return commit_id


def validate_search_query(query: str) -> str:
    """Reject overly long queries and queries with control characters."""

    if len(query) > MAX_SEARCH_QUERY_LENGTH:
        raise InvalidInput(
            query[:40],
            f"Search query too long (maximum {MAX_SEARCH_QUERY_LENGTH} characters)",
        )
    for char in query:
        if char in "\t\n":
            continue
        if unicodedata.category(char) == "Cc":
            raise InvalidInput(query, f"Search query contains control character: {char!r}")
    return query


def validate_ref_name(name: str) -> str:
    """Apply git's reference naming rules to a branch or tag name."""

    if not name:
        raise InvalidInput(name, "Reference name cannot be empty")
    if len(name) > MAX_REF_NAME_LENGTH:
        raise InvalidInput(
            name[:40], f"Reference name too long (maximum {MAX_REF_NAME_LENGTH} characters)"
        )
    for char in _INVALID_REF_CHARS:
        if char in name:
            raise InvalidInput(name, f"Reference name contains invalid character: {char!r}")
    if name.startswith("-") or name.endswith(".") or ".." in name or "@{" in name:
        raise InvalidInput(name, "Reference name violates Git naming rules")
    return name
