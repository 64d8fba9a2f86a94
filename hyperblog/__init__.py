"""hyperblog static blog generator.

This package turns a directory of Markdown posts with YAML front matter into
a static blog: one page per post, a home page listing every post, and the
discovery files search engines and readers use (search index, sitemap,
robots policy, RSS feed).

The main entry point is the CLI module, which provides commands for
scaffolding new projects, building sites, running the development server,
and validating and submitting sitemaps.

The build is a single pipeline owned by the Site Assembler (``build.py``):
content is loaded and validated, derived data is computed once, pages are
rendered through swappable template renderers, and everything is written
to a freshly purged output directory.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
