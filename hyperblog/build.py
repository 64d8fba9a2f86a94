"""Site building functionality for hyperblog.

This module contains the Site Assembler, which turns a project into a
published output tree in one full pass:

    CLEAN -> LOADED -> INDEXED -> RENDERED -> WRITTEN -> DONE

with FAILED reachable from every stage. Each pass purges the output
directory first; there is no incremental mode, so the same inputs always
produce the same files.

Key names:
- SiteAssembler: Runs one build pass and tracks its stage.
- build_site: Functional entry point used by the CLI and the dev server.
- BuildError: Single failure signal raised when a pass aborts.
"""

from __future__ import annotations

from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .assets import AssetPipeline
from .collections import DocumentSet
from .config import SiteConfig
from .content import ContentParseError, ContentProcessor, Document
from .feeds import FeedRegistry, create_default_feed_registry, search_entries
from .protocols import TemplateRenderer
from .templates import PageComposer, TemplateMissingError, TemplateSet
from .utils import ensure_clean_dir


class BuildStage(str, Enum):
    """Stages of a build pass."""

    CLEAN = "clean"
    LOADED = "loaded"
    INDEXED = "indexed"
    RENDERED = "rendered"
    WRITTEN = "written"
    DONE = "done"
    FAILED = "failed"


class FilesystemError(Exception):
    """A read, write or copy failed during a build.

    Attributes:
        path: Path involved in the failed operation, when known.
        message: Human-readable error message.
    """

    def __init__(self, path: Path | None, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}" if path else message)


class BuildError(Exception):
    """Error that aborted a build pass.

    Attributes:
        stage: Stage the pass was moving into when it failed.
        message: Human-readable error message.
        source_path: File that caused the error, when known.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        stage: BuildStage,
        message: str,
        source_path: Path | None = None,
        original_error: Exception | None = None,
    ):
        self.stage = stage
        self.message = message
        self.source_path = source_path
        self.original_error = original_error
        location = f"{source_path}: " if source_path else ""
        super().__init__(f"[{stage.value}] {location}{message}")


@dataclass(frozen=True)
class RenderedPage:
    """A rendered HTML page and its path relative to the output directory."""

    path: str
    html: str


@dataclass
class IndexedSite:
    """Derived data computed once per pass from the Document Set."""

    search_index: list[dict[str, str]]
    related: dict[str, list[Document]]


@dataclass
class BuildResult:
    """Result of a successful build pass.

    Attributes:
        documents: The Document Set, newest first.
        output_dir: Directory where the site was built.
        written: Output paths relative to output_dir.
        failures: Content files skipped because they failed to parse.
        search_index: Entries written to search-index.json.
        stage: Final stage (always DONE for a returned result).
    """

    documents: DocumentSet
    output_dir: Path
    written: list[str] = field(default_factory=list)
    failures: list[ContentParseError] = field(default_factory=list)
    search_index: list[dict[str, str]] = field(default_factory=list)
    stage: BuildStage = BuildStage.DONE

    @property
    def partial(self) -> bool:
        """True if some content files were skipped."""
        return bool(self.failures)


class SiteAssembler:
    """Runs build passes for one configuration.

    Attributes:
        config: Site configuration.
        stage: Stage reached by the current or most recent pass.
    """

    def __init__(
        self,
        config: SiteConfig,
        renderer: TemplateRenderer | None = None,
        feed_registry: FeedRegistry | None = None,
        content_processor: ContentProcessor | None = None,
    ):
        self.config = config
        self.renderer = renderer
        self.feed_registry = feed_registry or create_default_feed_registry()
        self.content_processor = content_processor or ContentProcessor(config.content_dir)
        self.stage = BuildStage.CLEAN

    def build(self) -> BuildResult:
        """Run one full build pass.

        Returns:
            BuildResult describing what was written.

        Raises:
            BuildError: If any stage fails. The output directory is left
                in an undefined state once the purge has run.
        """
        self.stage = BuildStage.CLEAN
        try:
            documents, failures = self._clean_and_load()
            indexed = self._index(documents)
            pages = self._render(documents, indexed)
            written = self._write(documents, pages)
        except BuildError:
            self.stage = BuildStage.FAILED
            raise
        self.stage = BuildStage.DONE
        return BuildResult(
            documents=documents,
            output_dir=self.config.output_dir,
            written=written,
            failures=failures,
            search_index=indexed.search_index,
            stage=self.stage,
        )

    @contextmanager
    def _entering(self, stage: BuildStage) -> Iterator[None]:
        """Convert any failure while moving into ``stage`` to a BuildError."""
        try:
            yield
        except BuildError:
            raise
        except ContentParseError as exc:
            raise BuildError(stage, exc.message, exc.source_path, exc) from exc
        except TemplateMissingError as exc:
            raise BuildError(stage, f"Template not found: {exc.name}", exc.path, exc) from exc
        except OSError as exc:
            path = Path(exc.filename) if exc.filename else None
            error = FilesystemError(path, exc.strerror or str(exc))
            raise BuildError(stage, error.message, path, error) from exc
        except Exception as exc:
            raise BuildError(stage, _format_error_message(exc), None, exc) from exc
        self.stage = stage

    def _clean_and_load(self) -> tuple[DocumentSet, list[ContentParseError]]:
        with self._entering(BuildStage.LOADED):
            self._check_output_dir()
            ensure_clean_dir(self.config.output_dir)
            loaded = self.content_processor.load(strict=self.config.strict)
            documents = DocumentSet(loaded.documents)
        return documents, loaded.failures

    def _check_output_dir(self) -> None:
        output = self.config.output_dir.resolve()
        protected = [
            self.config.project_root,
            self.config.content_dir,
            self.config.templates_dir,
            self.config.assets_dir,
        ]
        for path in protected:
            path = path.resolve()
            if output == path or output in path.parents:
                raise BuildError(
                    BuildStage.LOADED,
                    f"Refusing to purge {output}: it contains {path}",
                    output,
                )

    def _index(self, documents: DocumentSet) -> IndexedSite:
        with self._entering(BuildStage.INDEXED):
            count = self.config.related_count
            indexed = IndexedSite(
                search_index=search_entries(documents),
                related={d.slug: documents.related_to(d, count) for d in documents},
            )
        return indexed

    def _render(self, documents: DocumentSet, indexed: IndexedSite) -> list[RenderedPage]:
        with self._entering(BuildStage.RENDERED):
            templates = TemplateSet.load(self.config.templates_dir)
            composer = PageComposer(templates, self.config, renderer=self.renderer)

            def render_post(document: Document) -> RenderedPage:
                try:
                    html = composer.render_post(document, indexed.related[document.slug])
                except Exception as exc:
                    raise BuildError(
                        BuildStage.RENDERED,
                        _format_error_message(exc),
                        document.source_path,
                        exc,
                    ) from exc
                return RenderedPage(f"posts/{document.slug}.html", html)

            workers = self.config.render_workers
            if workers > 1 and len(documents) > 1:
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    pages = list(pool.map(render_post, documents))
            else:
                pages = [render_post(d) for d in documents]
            pages.insert(0, RenderedPage("index.html", composer.render_home(documents)))
        return pages

    def _write(self, documents: DocumentSet, pages: list[RenderedPage]) -> list[str]:
        output_dir = self.config.output_dir
        written: list[str] = []
        with self._entering(BuildStage.WRITTEN):
            for page in pages:
                _write_page(output_dir, page)
                written.append(page.path)
            written.extend(AssetPipeline(self.config.assets_dir, output_dir).run())
            written.extend(self.feed_registry.generate_all(output_dir, documents, self.config))
        return written


def build_site(config: SiteConfig, **overrides: Any) -> BuildResult:
    """Build the entire static site.

    Args:
        config: Site configuration.
        **overrides: Per-invocation configuration overrides.

    Returns:
        BuildResult for the pass.

    Raises:
        BuildError: If the pass fails.
    """
    if overrides:
        config = config.with_overrides(**overrides)
    return SiteAssembler(config).build()


def _write_page(output_dir: Path, page: RenderedPage) -> None:
    target = output_dir / page.path
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        f.write(page.html)


def _format_error_message(exc: Exception) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exc: The exception to format.

    Returns:
        A human-readable error message.
    """
    error_type = type(exc).__name__
    error_msg = str(exc)

    if error_type == "UndefinedError":
        return f"Undefined variable: {error_msg}"
    if error_type == "TemplateSyntaxError":
        return f"Template syntax error: {error_msg}"
    if error_type == "TypeError":
        return f"Type error: {error_msg}"

    return f"{error_type}: {error_msg}"
