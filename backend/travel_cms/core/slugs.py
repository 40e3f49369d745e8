"""
Slug helpers.

A slug is the URL-safe identifier derived from a human readable name:
lower-cased, every run of characters outside [a-z0-9] collapsed to one
hyphen, leading/trailing hyphens removed.
"""

from typing import Iterator
import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str, fallback: str = "item") -> str:
    slug = _NON_ALNUM.sub("-", (value or "").lower()).strip("-")
    return slug or fallback


def numbered_candidates(base: str) -> Iterator[str]:
    """base, base-2, base-3, ..."""
    yield base
    n = 2
    while True:
        yield f"{base}-{n}"
        n += 1


def copy_candidates(base: str) -> Iterator[str]:
    """base-copy, base-copy-2, base-copy-3, ..."""
    first = f"{base}-copy"
    yield first
    n = 2
    while True:
        yield f"{first}-{n}"
        n += 1
