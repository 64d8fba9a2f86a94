"""Discovery artifacts for hyperblog.

This module generates the files that sit next to the rendered pages:
the client-side search index, the sitemap, the robots policy and the RSS
feed. Feed generation is separate from build orchestration; new formats
are added by registering another ``FeedGenerator``.

Classes:
    FeedGenerator: Base class for artifact generators.
    SearchIndexGenerator: Writes search-index.json.
    SitemapGenerator: Writes sitemap.xml.
    RobotsGenerator: Writes robots.txt.
    RSSGenerator: Writes rss.xml.
    FeedRegistry: Runs every registered generator.

Functions:
    search_entries: Project documents to search index entries.
    sitemap_entries: Project documents to sitemap entries.
    create_default_feed_registry: Registry with all default generators.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from xml.sax.saxutils import escape

from .config import SiteConfig
from .content import Document
from .utils import format_iso_timestamp, format_rfc822, join_root_url, post_path

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

ROBOTS_POLICY = ("User-agent: *", "Disallow: /posts/", "Allow: /")


@dataclass(frozen=True)
class SitemapEntry:
    """One <url> element of the sitemap.

    Attributes:
        loc: Absolute URL of the post.
        lastmod: ISO 8601 UTC timestamp of the post date.
        changefreq: Change frequency hint.
        priority: Priority between 0.0 and 1.0, written without rounding.
    """

    loc: str
    lastmod: str
    changefreq: str
    priority: float


def _format_priority(priority: float) -> str:
    # 0.8 -> "0.8", 1 -> "1.0", 0.85 -> "0.85"
    return repr(float(priority))


def search_entries(documents: Sequence[Document]) -> list[dict[str, str]]:
    """Project documents to ``{title, slug, excerpt}`` in the given order."""
    return [{"title": d.title, "slug": d.slug, "excerpt": d.excerpt} for d in documents]


def sitemap_entries(documents: Sequence[Document], config: SiteConfig) -> list[SitemapEntry]:
    """Project documents to sitemap entries with absolute locations."""
    return [
        SitemapEntry(
            loc=join_root_url(config.site_url, post_path(d.slug)),
            lastmod=format_iso_timestamp(d.date),
            changefreq=config.changefreq,
            priority=config.priority,
        )
        for d in documents
    ]


class FeedGenerator(ABC):
    """Abstract base class for artifact generators.

    Subclasses implement one output format each.
    """

    @property
    @abstractmethod
    def filename(self) -> str:
        """Return the output filename, relative to the output directory."""
        ...

    @abstractmethod
    def generate(self, documents: Sequence[Document], config: SiteConfig) -> str | None:
        """Generate the artifact content.

        Args:
            documents: Documents in Document Set order.
            config: Site configuration.

        Returns:
            File content, or None to skip writing.
        """
        ...

    def write(self, output_dir: Path, documents: Sequence[Document], config: SiteConfig) -> bool:
        """Generate and write the artifact.

        Returns:
            True if the file was written, False if skipped.
        """
        content = self.generate(documents, config)
        if content is None:
            return False
        (output_dir / self.filename).write_text(content, encoding="utf-8")
        return True


class SearchIndexGenerator(FeedGenerator):
    """Generates the JSON array the search box fetches on first use."""

    @property
    def filename(self) -> str:
        return "search-index.json"

    def generate(self, documents: Sequence[Document], config: SiteConfig) -> str:
        return json.dumps(search_entries(documents), ensure_ascii=False)


class SitemapGenerator(FeedGenerator):
    """Generates sitemap.xml following the sitemaps.org protocol.

    One ``<url>`` per document with an absolute ``<loc>`` built from
    ``site_url``, the document date as ``<lastmod>`` and the configured
    change frequency and priority.
    """

    @property
    def filename(self) -> str:
        return "sitemap.xml"

    def generate(self, documents: Sequence[Document], config: SiteConfig) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<urlset xmlns="{SITEMAP_NS}">',
        ]
        for entry in sitemap_entries(documents, config):
            lines.extend(
                [
                    "  <url>",
                    f"    <loc>{escape(entry.loc)}</loc>",
                    f"    <lastmod>{entry.lastmod}</lastmod>",
                    f"    <changefreq>{escape(entry.changefreq)}</changefreq>",
                    f"    <priority>{_format_priority(entry.priority)}</priority>",
                    "  </url>",
                ]
            )
        lines.append("</urlset>")
        return "\n".join(lines) + "\n"


class RobotsGenerator(FeedGenerator):
    """Generates the fixed robots policy (``/posts/`` disallowed)."""

    @property
    def filename(self) -> str:
        return "robots.txt"

    def generate(self, documents: Sequence[Document], config: SiteConfig) -> str:
        return "\n".join(ROBOTS_POLICY) + "\n"


class RSSGenerator(FeedGenerator):
    """Generates an RSS 2.0 feed, newest first.

    ``lastBuildDate`` is the newest document's date so that rebuilding the
    same content produces the same file.
    """

    @property
    def filename(self) -> str:
        return "rss.xml"

    def generate(self, documents: Sequence[Document], config: SiteConfig) -> str:
        base_url = config.site_url.rstrip("/")
        ordered = sorted(documents, key=lambda d: d.date, reverse=True)
        rss = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"><channel>',
            f"<title>{escape(config.site_title)}</title>",
            f"<link>{escape(base_url)}/</link>",
            f"<description>{escape(config.site_description)}</description>",
        ]
        if ordered:
            rss.append(f"<lastBuildDate>{format_rfc822(ordered[0].date)}</lastBuildDate>")
        for document in ordered:
            link = escape(join_root_url(base_url, post_path(document.slug)))
            rss.append(
                f"<item><title>{escape(document.title)}</title><link>{link}</link>"
                f"<guid>{link}</guid>"
                f"<description>{escape(document.excerpt)}</description>"
                f"<pubDate>{format_rfc822(document.date)}</pubDate></item>"
            )
        rss.append("</channel></rss>")
        return "\n".join(rss) + "\n"


class FeedRegistry:
    """Registry for artifact generators run during the write stage."""

    def __init__(self) -> None:
        self._generators: list[FeedGenerator] = []

    def register(self, generator: FeedGenerator) -> None:
        self._generators.append(generator)

    def generate_all(
        self, output_dir: Path, documents: Sequence[Document], config: SiteConfig
    ) -> list[str]:
        """Generate all registered artifacts.

        Returns:
            Filenames that were written.
        """
        documents = list(documents)
        generated = []
        for generator in self._generators:
            if generator.write(output_dir, documents, config):
                generated.append(generator.filename)
        return generated


def create_default_feed_registry() -> FeedRegistry:
    """Create a registry with the search index, robots, sitemap and RSS generators."""
    registry = FeedRegistry()
    registry.register(SearchIndexGenerator())
    registry.register(RobotsGenerator())
    registry.register(SitemapGenerator())
    registry.register(RSSGenerator())
    return registry
