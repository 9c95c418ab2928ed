"""
Task Fingerprinting

Content hashes identify exact duplicates, grouping keys bucket tasks that
are worth comparing at all.
"""

import hashlib
from typing import Any, Dict

from .constants import (
    HASH_FIELDS,
    LEADING_VERB_PATTERN,
    PUNCTUATION_PATTERN,
    TRAILING_NOUN_PATTERN,
    WHITESPACE_PATTERN,
)


def _normalize_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, set)):
        return ",".join(sorted(str(v).strip().lower() for v in value))
    return str(value).strip().lower()


def generate_task_hash(task: Dict[str, Any]) -> str:
    """
    Compute the SHA-256 content hash of a task.

    The hash covers title, description, screen, component and
    sourceDocumentType. Values are trimmed and lowercased, and the fields are
    serialized in sorted key order, so the hash is insensitive to case and
    surrounding whitespace.

    Args:
        task: Task dictionary

    Returns:
        Hex digest string
    """
    normalized = {name: _normalize_value(task.get(name)) for name in HASH_FIELDS}
    payload = "|".join(f"{key}:{normalized[key]}" for key in sorted(normalized))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def normalize_title(title: Any) -> str:
    """
    Normalize a task title for grouping.

    Lowercases, strips one leading action verb ("implement", "create", ...)
    and one trailing noun ("implementation", "setup", "configuration"), then
    replaces punctuation with spaces and collapses whitespace.
    """
    if not title:
        return ""
    normalized = str(title).lower().strip()
    normalized = LEADING_VERB_PATTERN.sub("", normalized)
    normalized = TRAILING_NOUN_PATTERN.sub("", normalized)
    normalized = PUNCTUATION_PATTERN.sub(" ", normalized)
    return WHITESPACE_PATTERN.sub(" ", normalized).strip()


def generate_grouping_key(task: Dict[str, Any]) -> str:
    """Coarse bucket key: normalized title plus screen, component and epicId."""
    parts = [
        normalize_title(task.get("title")),
        _normalize_value(task.get("screen")),
        _normalize_value(task.get("component")),
        _normalize_value(task.get("epicId")),
    ]
    return "|".join(parts).lower().strip()
