"""Deterministic listing identifiers.

The id is the only idempotency key downstream: the same upstream record
must map to the same id on every run, and two listings must never share
one.
"""

from __future__ import annotations

import hashlib

from auction_sync.common.errors import ValidationError

# Firestore document ids may not contain "/"; "_" separates key parts.
# "%" is escaped as well so an escaped part never equals a literal one.
ID_ESCAPES = str.maketrans({"%": "%25", "/": "%2F", "\\": "%5C", "_": "%5F"})


def _clean(part: object) -> str:
    if part is None:
        return ""
    return str(part).strip().translate(ID_ESCAPES)


def build_listing_id(prefix: str, *key_parts: object) -> str:
    """Return ``{prefix}_{part1}_{part2}...``.

    Raises :class:`ValidationError` when any part is blank, so a record
    without its natural key is dropped instead of colliding with others.
    """
    if not key_parts:
        raise ValidationError(f"No natural key given for {prefix}")
    cleaned = [_clean(part) for part in key_parts]
    if not prefix or any(not part for part in cleaned):
        raise ValidationError(f"Incomplete natural key for {prefix}: {list(key_parts)!r}")
    return "_".join([prefix, *cleaned])


def content_digest(*parts: object) -> str:
    """Stable short digest for rows whose provider assigns no object id."""
    cleaned = [_clean(part) for part in parts]
    if not any(cleaned):
        raise ValidationError("Cannot derive a content key from empty fields")
    return hashlib.sha1("_".join(cleaned).encode("utf-8")).hexdigest()[:16]
