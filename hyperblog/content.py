"""Content loading for hyperblog.

This module turns the files of the content directory into immutable
``Document`` objects. Each file carries a YAML front matter block followed by
a Markdown body.

Key classes:
- Document: One blog post's parsed metadata and raw body.
- OpenGraph / CallToAction: Sub-records of a Document.
- FileContentLoader: Discovers content files.
- DocumentBuilder: Builds a Document from one file.
- ContentProcessor: Facade that loads every file and collects failures.

A malformed file raises ``ContentParseError``. ``ContentProcessor.load``
isolates those failures per file unless it is asked to be strict.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .extractors import (
    CompositeMetadataExtractor,
    ContentParseError,
    default_metadata_extractor,
    split_front_matter,
)
from .utils import is_markdown

__all__ = [
    "CallToAction",
    "ContentParseError",
    "ContentProcessor",
    "Document",
    "DocumentBuilder",
    "FileContentLoader",
    "LoadResult",
    "OpenGraph",
]


@dataclass(frozen=True)
class OpenGraph:
    """Social-preview metadata for a document."""

    title: str = ""
    description: str = ""
    image: str = ""
    type: str = "article"


@dataclass(frozen=True)
class CallToAction:
    """Call-to-action text and target URL shown under a post."""

    text: str = ""
    url: str = ""


@dataclass(frozen=True)
class Document:
    """Represents one blog post.

    Attributes:
        slug: Unique, URL-safe identifier used in output paths and URLs.
        title: Post title.
        excerpt: Short summary used on cards, in the search index and feeds.
        author: Author display name.
        date: Publication time (aware, UTC).
        cover_image: Path or URL of the cover image.
        keywords: Tags in display order.
        og: Open Graph sub-record.
        cta: Call-to-action sub-record.
        body: Raw Markdown body.
        source_path: File the document was loaded from.
    """

    slug: str
    title: str
    date: datetime
    excerpt: str = ""
    author: str = ""
    cover_image: str = ""
    keywords: tuple[str, ...] = ()
    og: OpenGraph = field(default_factory=OpenGraph)
    cta: CallToAction = field(default_factory=CallToAction)
    body: str = ""
    source_path: Path | None = None

    def shares_keyword_with(self, other: Document) -> bool:
        """Return True if the two documents have at least one keyword in common."""
        return not set(self.keywords).isdisjoint(other.keywords)


@dataclass
class LoadResult:
    """Documents loaded from a content directory plus per-file failures."""

    documents: list[Document]
    failures: list[ContentParseError] = field(default_factory=list)


class FileContentLoader:
    """Discovers content files in a directory.

    Only Markdown files directly inside the directory are considered; they
    are returned sorted by file name so that encounter order is stable
    across platforms.

    Attributes:
        content_dir: Directory containing content files.
    """

    def __init__(self, content_dir: Path):
        self.content_dir = content_dir

    def iter_files(self) -> list[Path]:
        """Return the content files to load.

        Raises:
            FileNotFoundError: If the content directory does not exist.
        """
        if not self.content_dir.is_dir():
            raise FileNotFoundError(f"Expected content directory at {self.content_dir}")
        files = [p for p in self.content_dir.iterdir() if p.is_file() and is_markdown(p)]
        return sorted(files, key=lambda p: p.name)


class DocumentBuilder:
    """Builds Document objects from source files.

    Attributes:
        metadata_extractor: Composite extractor validating front matter.
    """

    def __init__(self, metadata_extractor: CompositeMetadataExtractor | None = None):
        self.metadata_extractor = metadata_extractor or default_metadata_extractor

    def build(self, path: Path) -> Document:
        """Build a Document from a source file.

        Args:
            path: Path to the source file.

        Returns:
            Document object.

        Raises:
            ContentParseError: If the file cannot be decoded or its front
                matter is malformed or incomplete.
        """
        try:
            raw = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise ContentParseError(path, f"not valid UTF-8: {exc}") from exc
        frontmatter, body = split_front_matter(raw, path)
        metadata = self.metadata_extractor.extract(frontmatter, path)
        return Document(
            slug=metadata["slug"],
            title=metadata["title"],
            date=metadata["date"],
            excerpt=metadata.get("excerpt", ""),
            author=metadata.get("author", ""),
            cover_image=metadata.get("cover_image", ""),
            keywords=metadata.get("keywords", ()),
            og=OpenGraph(**metadata.get("og", {})),
            cta=CallToAction(**metadata.get("cta", {})),
            body=body,
            source_path=path,
        )


class ContentProcessor:
    """Facade for loading a content directory into Documents.

    Attributes:
        content_dir: Directory containing content files.
    """

    def __init__(
        self,
        content_dir: Path,
        content_loader: FileContentLoader | None = None,
        document_builder: DocumentBuilder | None = None,
    ):
        self.content_dir = content_dir
        self._content_loader = content_loader or FileContentLoader(content_dir)
        self._document_builder = document_builder or DocumentBuilder()

    def load(self, strict: bool = False) -> LoadResult:
        """Load all content files.

        Slugs must be unique: a file whose slug was already claimed by an
        earlier file (in file-name order) fails to load.

        Args:
            strict: Raise on the first failure instead of collecting it.

        Returns:
            LoadResult with the documents in encounter order and any
            isolated failures.

        Raises:
            ContentParseError: In strict mode, for the first bad file.
        """
        documents: list[Document] = []
        failures: list[ContentParseError] = []
        seen: dict[str, Path] = {}
        for path in self._content_loader.iter_files():
            try:
                document = self._document_builder.build(path)
                if document.slug in seen:
                    raise ContentParseError(
                        path,
                        f"duplicate slug {document.slug!r} (already used by {seen[document.slug].name})",
                    )
            except ContentParseError as exc:
                if strict:
                    raise
                failures.append(exc)
                continue
            seen[document.slug] = path
            documents.append(document)
        return LoadResult(documents=documents, failures=failures)
