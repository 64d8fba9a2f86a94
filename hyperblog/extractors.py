"""Front matter parsing and metadata extractors for hyperblog.

A content file starts with a YAML header between ``---`` markers followed by
the Markdown body. ``split_front_matter`` separates the two; the extractors in
this module each validate and normalise one group of fields, following the
Single Responsibility Principle.

Key classes:
- IdentityExtractor: title and slug (both required).
- DateExtractor: publication date (required).
- SummaryExtractor: excerpt, author and cover image.
- KeywordExtractor: keyword list.
- OpenGraphExtractor: social preview sub-record with fallbacks.
- CallToActionExtractor: call-to-action sub-record.
- CompositeMetadataExtractor: runs all of the above.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml

from .utils import is_valid_slug, parse_date

FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)


class ContentParseError(Exception):
    """A content file could not be turned into a Document.

    Attributes:
        source_path: File that failed to parse.
        message: Human-readable reason.
    """

    def __init__(self, source_path: Path, message: str):
        self.source_path = source_path
        self.message = message
        super().__init__(f"{source_path}: {message}")


def split_front_matter(text: str, path: Path) -> tuple[dict[str, Any], str]:
    """Split a content file into its YAML header and body.

    Args:
        text: Raw file content.
        path: Source path, used for error reporting.

    Returns:
        Tuple of (front matter mapping, body text).

    Raises:
        ContentParseError: If the header is missing, not valid YAML, or not
            a mapping.
    """
    text = text.lstrip("\ufeff")
    match = FRONTMATTER_RE.match(text)
    if not match:
        raise ContentParseError(path, "missing front matter block")
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise ContentParseError(path, f"invalid front matter: {exc}") from exc
    if not isinstance(data, dict):
        raise ContentParseError(path, "front matter must be a mapping of fields")
    return data, text[match.end() :]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _sub_record(frontmatter: dict[str, Any], key: str, path: Path) -> dict[str, Any]:
    value = frontmatter.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ContentParseError(path, f"'{key}' must be a mapping")
    return value


class IdentityExtractor:
    """Extracts the required ``title`` and ``slug`` fields."""

    def extract(self, frontmatter: dict[str, Any], path: Path) -> dict[str, Any]:
        title = _text(frontmatter.get("title"))
        if not title:
            raise ContentParseError(path, "missing required field 'title'")
        slug = _text(frontmatter.get("slug"))
        if not slug:
            raise ContentParseError(path, "missing required field 'slug'")
        if not is_valid_slug(slug):
            raise ContentParseError(path, f"slug {slug!r} is not URL-safe")
        return {"title": title, "slug": slug}


class DateExtractor:
    """Extracts the required publication date as an aware UTC datetime."""

    def extract(self, frontmatter: dict[str, Any], path: Path) -> dict[str, Any]:
        raw = frontmatter.get("date")
        if raw is None or raw == "":
            raise ContentParseError(path, "missing required field 'date'")
        try:
            return {"date": parse_date(raw)}
        except ValueError as exc:
            raise ContentParseError(path, f"invalid date: {exc}") from exc


class SummaryExtractor:
    """Extracts the optional excerpt, author and cover image."""

    def extract(self, frontmatter: dict[str, Any], path: Path) -> dict[str, Any]:
        return {
            "excerpt": _text(frontmatter.get("excerpt")),
            "author": _text(frontmatter.get("author")),
            "cover_image": _text(frontmatter.get("coverImage")),
        }


class KeywordExtractor:
    """Extracts keywords from a YAML list or a comma-separated string.

    Display order is preserved and duplicates are dropped.
    """

    def extract(self, frontmatter: dict[str, Any], path: Path) -> dict[str, Any]:
        raw = frontmatter.get("keywords")
        if raw is None:
            items: list[Any] = []
        elif isinstance(raw, str):
            items = raw.split(",")
        elif isinstance(raw, (list, tuple)):
            items = list(raw)
        else:
            raise ContentParseError(path, "'keywords' must be a list or a string")
        keywords: list[str] = []
        for item in items:
            if isinstance(item, (dict, list)):
                raise ContentParseError(path, "'keywords' entries must be plain values")
            keyword = _text(item)
            if keyword and keyword not in keywords:
                keywords.append(keyword)
        return {"keywords": tuple(keywords)}


class OpenGraphExtractor:
    """Extracts the ``og`` sub-record.

    Missing values fall back to the document's own title, excerpt and
    cover image, and the type defaults to ``article``.
    """

    def extract(self, frontmatter: dict[str, Any], path: Path) -> dict[str, Any]:
        og = _sub_record(frontmatter, "og", path)
        return {
            "og": {
                "title": _text(og.get("title")) or _text(frontmatter.get("title")),
                "description": _text(og.get("description"))
                or _text(frontmatter.get("excerpt")),
                "image": _text(og.get("image")) or _text(frontmatter.get("coverImage")),
                "type": _text(og.get("type")) or "article",
            }
        }


class CallToActionExtractor:
    """Extracts the ``cta`` sub-record (text and url)."""

    def extract(self, frontmatter: dict[str, Any], path: Path) -> dict[str, Any]:
        cta = _sub_record(frontmatter, "cta", path)
        return {"cta": {"text": _text(cta.get("text")), "url": _text(cta.get("url"))}}


class CompositeMetadataExtractor:
    """Combines multiple metadata extractors.

    Runs every registered extractor over the front matter and merges their
    results. Later extractors can override earlier ones.
    """

    def __init__(self, extractors: list | None = None):
        if extractors is None:
            self._extractors = [
                IdentityExtractor(),
                DateExtractor(),
                SummaryExtractor(),
                KeywordExtractor(),
                OpenGraphExtractor(),
                CallToActionExtractor(),
            ]
        else:
            self._extractors = list(extractors)

    def add_extractor(self, extractor) -> None:
        """Add an extractor to the composite.

        Args:
            extractor: A MetadataExtractor implementation.
        """
        self._extractors.append(extractor)

    def extract(self, frontmatter: dict[str, Any], path: Path) -> dict[str, Any]:
        """Extract all metadata from a parsed front matter mapping.

        Args:
            frontmatter: Parsed YAML header.
            path: Path to the source file.

        Returns:
            Dictionary with all extracted metadata.

        Raises:
            ContentParseError: If any extractor rejects the header.
        """
        result: dict[str, Any] = {}
        for extractor in self._extractors:
            result.update(extractor.extract(frontmatter, path))
        return result


# Default composite extractor instance
default_metadata_extractor = CompositeMetadataExtractor()
