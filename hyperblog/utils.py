"""Utility functions for hyperblog.

This module contains small helpers shared across the build pipeline:
slug handling, date normalisation and formatting, URL joining and
output directory management.

Key functions:
    slugify: Convert a title or filename to a URL slug.
    is_valid_slug: Check that a slug is safe to use in paths and URLs.
    parse_date: Normalise front matter dates to aware UTC datetimes.
    format_display_date: Human-readable date used on post pages.
    format_iso_timestamp: ISO-8601 timestamp used in sitemaps.
    format_rfc822: RFC 822 timestamp used in RSS feeds.
    join_root_url: Join a base URL with a path.
    ensure_clean_dir: Ensure a directory exists and is empty.
    is_markdown: Check if a path is a Markdown file.
"""

from __future__ import annotations

import re
import shutil
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

SLUG_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")

_DATE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d", "%b %d, %Y", "%B %d, %Y")


def slugify(name: str) -> str:
    """Convert a title or filename stem to a slug.

    Args:
        name: Title or filename stem.

    Returns:
        Lowercase, hyphen-separated slug.

    Examples:
        >>> slugify("Hello, World!")
        'hello-world'
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", name)
    cleaned = cleaned.strip("-").lower()
    return cleaned or "post"


def is_valid_slug(slug: str) -> bool:
    """Check whether a slug is URL-safe.

    Slugs are used verbatim as output file names (``posts/<slug>.html``)
    and inside URLs, so only letters, digits, dots, hyphens and
    underscores are allowed, and the first character must be
    alphanumeric.

    Args:
        slug: Slug to check.

    Returns:
        True if the slug can be used as-is.
    """
    return bool(SLUG_RE.match(slug))


def parse_date(value: Any) -> datetime:
    """Normalise a front matter date to an aware UTC datetime.

    Accepts ``datetime`` and ``date`` objects (PyYAML produces these for
    unquoted timestamps) and strings in ISO-8601 or a few common formats.
    Naive values are interpreted as UTC.

    Args:
        value: Raw value from the front matter.

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        ValueError: If the value cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        parsed = _parse_date_string(value.strip())
    else:
        raise ValueError(f"Unsupported date value: {value!r}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_date_string(text: str) -> datetime:
    if not text:
        raise ValueError("Empty date")
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date format: {text!r}")


def format_display_date(value: datetime) -> str:
    """Format a date the way post pages show it, e.g. ``1 February 2024``."""
    return f"{value.day} {value.strftime('%B %Y')}"


def format_iso_timestamp(value: datetime) -> str:
    """Format a UTC datetime as ``YYYY-MM-DDTHH:MM:SSZ``."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def format_rfc822(value: datetime) -> str:
    """Format a UTC datetime for RSS ``pubDate`` fields."""
    return value.astimezone(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S +0000")


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Args:
        root_url: Base URL (e.g., https://example.com/blog).
        path: Path beginning with or without a leading slash.

    Returns:
        Combined URL with proper slash handling.

    Examples:
        >>> join_root_url('https://example.com/', 'posts/a.html')
        'https://example.com/posts/a.html'
    """
    if not root_url:
        return path
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def post_path(slug: str) -> str:
    """Return the site-relative URL of a post page."""
    return f"/posts/{slug}.html"


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True, exist_ok=True)


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file.

    Args:
        path: Path to check.

    Returns:
        True if the file has .md extension (case-insensitive).
    """
    return path.suffix.lower() == ".md"
