"""Protocol definitions for hyperblog.

This module defines the interfaces used between pipeline components so
that implementations can be swapped without touching the Site Assembler:
a different template engine, an extra metadata extractor, or a content
source other than the filesystem.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .content import Document


@runtime_checkable
class TemplateRenderer(Protocol):
    """Protocol for substituting placeholder bindings into a template.

    Implementations differ in how they treat values (verbatim, escaped, or
    through a full template engine) but share this single entry point.
    """

    @abstractmethod
    def render(self, template: str, bindings: Mapping[str, Any]) -> str:
        """Render a template string.

        Args:
            template: Template text containing placeholder tokens.
            bindings: Mapping of placeholder token (e.g. ``{{POST_TITLE}}``)
                to the value substituted for it.

        Returns:
            Rendered string.
        """
        ...


@runtime_checkable
class MetadataExtractor(Protocol):
    """Protocol for validating and normalising one group of front matter fields."""

    @abstractmethod
    def extract(self, frontmatter: dict[str, Any], path: Path) -> dict[str, Any]:
        """Extract metadata from parsed front matter.

        Args:
            frontmatter: Parsed YAML header of a content file.
            path: Path to the source file.

        Returns:
            Dictionary of extracted metadata.

        Raises:
            ContentParseError: If the fields are missing or malformed.
        """
        ...


@runtime_checkable
class ContentLoader(Protocol):
    """Protocol for discovering content files."""

    @abstractmethod
    def iter_files(self) -> list[Path]:
        """Return the content files to load."""
        ...


@runtime_checkable
class DocumentBuilder(Protocol):
    """Protocol for building Document objects from source files."""

    @abstractmethod
    def build(self, path: Path) -> Document:
        """Build a Document from a source file.

        Raises:
            ContentParseError: If the file is malformed.
        """
        ...
