"""Sitemap validation for hyperblog.

A sitemap is valid when it is well-formed XML whose root ``<urlset>``
holds at least one ``<url>`` entry and every entry has a non-empty
``<loc>``. Validation stops at the first broken rule and reports why.

The XML is first converted to nested dictionaries (a single child becomes
a value, repeated children become a list), and the structural rules are
checked on that form, so callers can validate data that did not come from
XML at all.

Functions:
    parse_sitemap: XML text to nested dictionaries.
    validate_structure: Check the parsed form.
    validate_sitemap: Parse and check XML text.
    validate_sitemap_file: Parse and check a file on disk.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

MISSING_URLSET = "The sitemap is missing the root <urlset> tag."
MISSING_URL = "The sitemap does not contain any <url> tags inside <urlset>."
MISSING_LOC = "Found a <url> entry that is missing its <loc> tag."
VALID = "Sitemap structure is valid."


class SitemapMalformedError(Exception):
    """The sitemap is not well-formed XML."""


class SitemapStructureError(Exception):
    """The sitemap is well-formed but breaks a structural rule."""


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation: valid, or invalid with the first reason."""

    valid: bool
    reason: str | None = None

    @property
    def message(self) -> str:
        return VALID if self.valid else (self.reason or "")


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _element_to_value(element: ET.Element) -> Any:
    children = list(element)
    if not children:
        return (element.text or "").strip()
    result: dict[str, Any] = {}
    for child in children:
        key = _local_name(child.tag)
        value = _element_to_value(child)
        if key not in result:
            result[key] = value
        elif isinstance(result[key], list):
            result[key].append(value)
        else:
            result[key] = [result[key], value]
    return result


def parse_sitemap(text: str | bytes) -> dict[str, Any]:
    """Parse sitemap XML into nested dictionaries.

    Namespaces are dropped from tag names.

    Raises:
        SitemapMalformedError: If the text is not well-formed XML.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise SitemapMalformedError(
            f"The sitemap is not a well-formed XML document: {exc}"
        ) from exc
    return {_local_name(root.tag): _element_to_value(root)}


def _has_location(loc: Any) -> bool:
    # Repeated <loc> children parse to a list
    if isinstance(loc, list):
        return bool(loc) and all(_has_location(item) for item in loc)
    return isinstance(loc, str) and bool(loc.strip())


def check_structure(sitemap: Any) -> list[Mapping[str, Any]]:
    """Check the structural rules on a parsed sitemap.

    Returns:
        The ``<url>`` entries, normalised to a list.

    Raises:
        SitemapStructureError: With the reason of the first broken rule.
    """
    urlset = sitemap.get("urlset") if isinstance(sitemap, Mapping) else None
    if urlset is None:
        raise SitemapStructureError(MISSING_URLSET)
    urls = urlset.get("url") if isinstance(urlset, Mapping) else None
    if not urls:
        raise SitemapStructureError(MISSING_URL)
    entries = urls if isinstance(urls, list) else [urls]
    for entry in entries:
        loc = entry.get("loc") if isinstance(entry, Mapping) else None
        if not _has_location(loc):
            raise SitemapStructureError(MISSING_LOC)
    return entries


def validate_structure(sitemap: Any) -> ValidationResult:
    """Validate an already-parsed sitemap.

    Examples:
        >>> validate_structure({"urlset": {"url": {"loc": "https://x/a"}}}).valid
        True
        >>> validate_structure({}).reason
        'The sitemap is missing the root <urlset> tag.'
    """
    try:
        check_structure(sitemap)
    except SitemapStructureError as exc:
        return ValidationResult(False, str(exc))
    return ValidationResult(True)


def validate_sitemap(text: str | bytes) -> ValidationResult:
    """Validate sitemap XML text. Never raises for invalid input."""
    try:
        check_structure(parse_sitemap(text))
    except (SitemapMalformedError, SitemapStructureError) as exc:
        return ValidationResult(False, str(exc))
    return ValidationResult(True)


def validate_sitemap_file(path: Path) -> ValidationResult:
    """Validate a sitemap file; an unreadable file is reported as invalid."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        return ValidationResult(False, f"Could not read the sitemap at {path}: {exc.strerror or exc}")
    return validate_sitemap(data)
