"""
Record helpers and the session-wide field registry.

A record is a plain mapping from field name to scalar value. Records are
partial: each source contributes whatever fields it can see, so the output
schema is discovered as records are accepted.
"""

from __future__ import annotations

from typing import Any

Record = dict[str, Any]

NAME_FIELD = "name"
# First non-empty one wins; adapters in this package emit profile_url.
URL_FIELDS = ("source_url", "profile_url")


def is_empty(value: Any) -> bool:
    """True for None and blank strings. Zero is a value."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def record_url(record: Record) -> str | None:
    """Return the identity URL of a record, if any."""
    for field in URL_FIELDS:
        value = record.get(field)
        if not is_empty(value):
            return str(value)
    return None


def identity_key(record: Record) -> str | None:
    """Derive the deduplication key: lowercase(name) + "_" + lowercase(url).

    Every other field is ignored. Returns None when the record lacks a
    name or a URL.
    """
    name = record.get(NAME_FIELD)
    url = record_url(record)
    if is_empty(name) or url is None:
        return None
    return f"{str(name).lower()}_{url.lower()}"


def compact(record: Record) -> Record:
    """Copy of record without empty-valued keys."""
    return {key: value for key, value in record.items() if not is_empty(value)}


def merge(record: Record, extra: Record) -> Record:
    """Merge enrichment fields into a record.

    Non-empty enrichment values win; empty ones never blank out
    an existing value.
    """
    merged = dict(record)
    for key, value in extra.items():
        if not is_empty(value) or key not in merged:
            merged[key] = value
    return merged


class FieldRegistry:
    """Insertion-ordered set of discovered column names.

    Grows monotonically; order is first-seen order across the whole
    session, which fixes the exporter's column order for the run.
    """

    def __init__(self) -> None:
        self._fields: dict[str, None] = {}

    def register(self, record: Record) -> None:
        for key, value in record.items():
            if key not in self._fields and not is_empty(value):
                self._fields[key] = None

    def snapshot(self) -> tuple[str, ...]:
        return tuple(self._fields)

    def __contains__(self, field: object) -> bool:
        return field in self._fields

    def __len__(self) -> int:
        return len(self._fields)
