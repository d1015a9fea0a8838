"""URL-safe slugs for cities, events, projects and posts."""

from __future__ import annotations

import re
import time
import unicodedata
from collections.abc import Callable

_VALID_SLUG = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
MAX_SUFFIX_ATTEMPTS = 1000


def slugify(
    text: str,
    separator: str = "-",
    max_length: int = 100,
    lowercase: bool = True,
) -> str:
    """Convert *text* to a slug.

    >>> slugify("FaithTech Adelaide: Web Dev Meetup")
    'faithtech-adelaide-web-dev-meetup'
    """
    slug = text.strip()
    if lowercase:
        slug = slug.lower()

    # Strip accents: "café" -> "cafe"
    slug = unicodedata.normalize("NFD", slug)
    slug = "".join(ch for ch in slug if not unicodedata.combining(ch))

    slug = slug.replace("'", "").replace("’", "")
    slug = re.sub(r"[^A-Za-z0-9-]+", separator, slug)

    sep = re.escape(separator)
    slug = re.sub(f"(?:{sep}){{2,}}", separator, slug)
    slug = re.sub(f"^(?:{sep})+|(?:{sep})+$", "", slug)

    if len(slug) > max_length:
        slug = slug[:max_length]
        # Prefer a clean break when the last separator is near the end.
        cut = slug.rfind(separator)
        if cut > max_length * 0.8:
            slug = slug[:cut]

    return slug


def ensure_unique_slug(base_slug: str, exists: Callable[[str], bool]) -> str:
    """Return *base_slug*, or the first free ``base-2``, ``base-3``, ...

    *exists* reports whether a candidate is already taken.
    """
    if not exists(base_slug):
        return base_slug

    counter = 2
    candidate = f"{base_slug}-{counter}"
    while exists(candidate):
        counter += 1
        if counter > MAX_SUFFIX_ATTEMPTS:
            return f"{base_slug}-{int(time.time() * 1000)}"
        candidate = f"{base_slug}-{counter}"
    return candidate


def is_valid_slug(slug: str) -> bool:
    return bool(_VALID_SLUG.match(slug))


def extract_slug_from_url(url: str) -> str | None:
    """Last path segment of a URL or path, e.g. ``/adelaide/events/x`` -> ``x``."""
    parts = [part for part in url.split("?")[0].split("/") if part]
    return parts[-1] if parts else None


def unique_slug_for(title: str, exists: Callable[[str], bool]) -> str:
    """Slug for a new record; titles made only of symbols become ``untitled``."""
    return ensure_unique_slug(slugify(title) or "untitled", exists)
