"""Template rendering for hyperblog.

Templates are plain HTML files containing literal placeholder tokens such as
``{{POST_TITLE}}``. Rendering replaces every occurrence of each bound token
with its value; tokens without a binding are left as they are. This is not
an expression language.

Key classes:
- PlaceholderRenderer: Default renderer; values are inserted verbatim.
- EscapingPlaceholderRenderer: Same contract, values are HTML-escaped.
- JinjaTemplateRenderer: Renders the same templates through Jinja2.
- TemplateSet: The template files of a project.
- PageComposer: Builds fragments, pages and the layout wrapper.

Pages are composed in three levels: fragments (post cards, related posts,
Open Graph tags) are rendered first, spliced into a page template (post or
home), and the page is spliced into the site layout. Rendered fragments are
wrapped in ``markupsafe.Markup`` so the escaping renderers leave them intact.

The default renderer does not escape anything. Titles, excerpts and bodies
are inserted as written, so content must come from a trusted author.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment
from markupsafe import Markup, escape

from .config import SiteConfig
from .content import Document
from .protocols import TemplateRenderer
from .renderers import MarkdownRenderer
from .utils import format_display_date, join_root_url, post_path

__all__ = [
    "EscapingPlaceholderRenderer",
    "JinjaTemplateRenderer",
    "NO_RELATED_HTML",
    "PageComposer",
    "PlaceholderRenderer",
    "TemplateMissingError",
    "TemplateSet",
    "create_renderer",
]

TOKEN_RE = re.compile(r"^\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}$")

NO_RELATED_HTML = "<p>No related posts found.</p>"

OG_TAGS_TEMPLATE = """
<meta property="og:title" content="{{OG_TITLE}}" />
<meta property="og:description" content="{{OG_DESCRIPTION}}" />
<meta property="og:image" content="{{OG_IMAGE}}" />
<meta property="og:type" content="{{OG_TYPE}}" />
<meta property="og:url" content="{{OG_URL}}" />
"""

FOOTER_TEMPLATE = """<footer class="site-footer">
    <p>&copy; {{COPYRIGHT_YEAR}} {{COPYRIGHT_HOLDER}}. All rights reserved.</p>
</footer>"""

DEFAULT_HOME_TEMPLATE = """<header class="home-header">
    <div class="logo-container">
        <img src="{{LOGO_URL}}" alt="{{SITE_TITLE}} logo" class="logo" />
    </div>
    <h1>{{SITE_TITLE}}</h1>
    <p>{{SITE_TAGLINE}}</p>
    <div class="search-container">
        <input type="search" id="search-input" placeholder="Search for posts..." />
        <div id="search-results"></div>
    </div>
</header>
<div id="posts-container" class="posts-grid">{{POST_CARDS}}</div>
<div id="sentinel"></div>
"""


class TemplateMissingError(Exception):
    """A required template file does not exist.

    Attributes:
        name: Template file name.
        path: Path that was looked up.
    """

    def __init__(self, name: str, path: Path):
        self.name = name
        self.path = path
        super().__init__(f"Template not found: {path}")


class PlaceholderRenderer:
    """Literal placeholder substitution.

    All bound tokens are replaced in one pass over the template, so text
    coming from a value is never scanned for further tokens.
    """

    def render(self, template: str, bindings: Mapping[str, Any]) -> str:
        tokens = sorted((t for t in bindings if t), key=len, reverse=True)
        if not tokens:
            return template
        pattern = re.compile("|".join(re.escape(t) for t in tokens))
        return pattern.sub(lambda m: self._format(bindings[m.group(0)]), template)

    def _format(self, value: Any) -> str:
        return "" if value is None else str(value)


class EscapingPlaceholderRenderer(PlaceholderRenderer):
    """Placeholder substitution that HTML-escapes plain values.

    Values already marked as ``Markup`` (rendered fragments) are inserted
    unchanged.
    """

    def _format(self, value: Any) -> str:
        return str(escape("" if value is None else value))


class JinjaTemplateRenderer:
    """Renders placeholder templates with Jinja2 and autoescaping.

    A token ``{{NAME}}`` is bound as the Jinja variable ``NAME``, so the
    same template files work with either engine. Unbound tokens render as
    empty strings.
    """

    def __init__(self, env: Environment | None = None):
        self.env = env or Environment(autoescape=True, keep_trailing_newline=True)

    def render(self, template: str, bindings: Mapping[str, Any]) -> str:
        context: dict[str, Any] = {}
        for token, value in bindings.items():
            match = TOKEN_RE.match(token)
            if not match:
                raise ValueError(f"Not a placeholder token: {token!r}")
            context[match.group(1)] = "" if value is None else value
        return self.env.from_string(template).render(**context)


_RENDERERS = {
    "placeholder": PlaceholderRenderer,
    "escaping": EscapingPlaceholderRenderer,
    "jinja": JinjaTemplateRenderer,
}


def create_renderer(name: str = "placeholder") -> TemplateRenderer:
    """Return a renderer by its configuration name.

    Raises:
        ValueError: If the name is unknown.
    """
    try:
        return _RENDERERS[name]()
    except KeyError:
        raise ValueError(f"Unknown template engine: {name}") from None


@dataclass(frozen=True)
class TemplateSet:
    """The template files of a project.

    ``layout.html``, ``post.html`` and ``post-card.html`` are required.
    ``home.html`` is optional; a built-in home page is used without it.
    """

    layout: str
    post: str
    post_card: str
    home: str = DEFAULT_HOME_TEMPLATE

    REQUIRED = ("layout.html", "post.html", "post-card.html")

    @classmethod
    def load(cls, templates_dir: Path) -> TemplateSet:
        """Read the templates from a directory.

        Raises:
            TemplateMissingError: If a required template is absent.
        """
        loaded: dict[str, str] = {}
        for name in cls.REQUIRED:
            path = templates_dir / name
            if not path.is_file():
                raise TemplateMissingError(name, path)
            loaded[name] = path.read_text(encoding="utf-8")
        home_path = templates_dir / "home.html"
        home = home_path.read_text(encoding="utf-8") if home_path.is_file() else DEFAULT_HOME_TEMPLATE
        return cls(
            layout=loaded["layout.html"],
            post=loaded["post.html"],
            post_card=loaded["post-card.html"],
            home=home,
        )


class PageComposer:
    """Composes fragments, pages and the layout for one build pass.

    Attributes:
        templates: Loaded template files.
        config: Site configuration.
        renderer: Placeholder renderer used at every level.
    """

    def __init__(
        self,
        templates: TemplateSet,
        config: SiteConfig,
        renderer: TemplateRenderer | None = None,
        markdown: MarkdownRenderer | None = None,
    ):
        self.templates = templates
        self.config = config
        self.renderer = renderer or create_renderer(config.template_engine)
        self.markdown = markdown or MarkdownRenderer()
        self.copyright_year = config.copyright_year or datetime.now().year

    def _fragment(self, template: str, bindings: Mapping[str, Any]) -> Markup:
        return Markup(self.renderer.render(template, bindings))

    def post_card(self, document: Document) -> Markup:
        """Render the card shown on the home page and under related posts."""
        return self._fragment(
            self.templates.post_card,
            {
                "{{POST_URL}}": post_path(document.slug),
                "{{POST_IMAGE}}": document.cover_image,
                "{{POST_TITLE}}": document.title,
                "{{POST_EXCERPT}}": document.excerpt,
            },
        )

    def related_posts(self, related: Sequence[Document]) -> Markup:
        """Render related-post cards, or the explicit empty placeholder."""
        if not related:
            return Markup(NO_RELATED_HTML)
        return Markup("").join(self.post_card(d) for d in related)

    def og_tags(self, title: str, description: str, image: str, og_type: str, url: str) -> Markup:
        return self._fragment(
            OG_TAGS_TEMPLATE,
            {
                "{{OG_TITLE}}": title,
                "{{OG_DESCRIPTION}}": description,
                "{{OG_IMAGE}}": image,
                "{{OG_TYPE}}": og_type,
                "{{OG_URL}}": url,
            },
        )

    def footer(self) -> Markup:
        return self._fragment(
            FOOTER_TEMPLATE,
            {
                "{{COPYRIGHT_YEAR}}": self.copyright_year,
                "{{COPYRIGHT_HOLDER}}": self.config.copyright_holder,
            },
        )

    def render_post(self, document: Document, related: Sequence[Document]) -> str:
        """Render a full post page: post template inside the layout.

        Args:
            document: Post to render.
            related: Related documents, already truncated.

        Returns:
            Complete HTML page.
        """
        url = join_root_url(self.config.site_url, post_path(document.slug))
        og = document.og
        page = self._fragment(
            self.templates.post,
            {
                "{{POST_TITLE}}": document.title,
                "{{POST_AUTHOR}}": document.author,
                "{{POST_DATE}}": format_display_date(document.date),
                "{{POST_COVER_IMAGE}}": document.cover_image,
                "{{POST_CONTENT}}": Markup(self.markdown.render(document.body)),
                "{{POST_KEYWORDS}}": ", ".join(document.keywords),
                "{{RELATED_POSTS}}": self.related_posts(related),
                "{{CTA_TEXT}}": document.cta.text,
                "{{CTA_URL}}": document.cta.url,
            },
        )
        return self.wrap_layout(
            page,
            title=document.title,
            description=document.excerpt,
            keywords=document.keywords,
            og_tags=self.og_tags(og.title, og.description, og.image, og.type, url),
        )

    def render_home(self, documents: Iterable[Document]) -> str:
        """Render the home page: a card per document, in the given order."""
        cards = Markup("").join(self.post_card(d) for d in documents)
        config = self.config
        page = self._fragment(
            self.templates.home,
            {
                "{{SITE_TITLE}}": config.site_title,
                "{{SITE_TAGLINE}}": config.site_tagline,
                "{{LOGO_URL}}": config.logo,
                "{{POST_CARDS}}": cards,
            },
        )
        title = f"{config.site_title} - Home"
        return self.wrap_layout(
            page,
            title=title,
            description=config.site_description,
            keywords=config.site_keywords,
            og_tags=self.og_tags(
                title,
                config.site_description,
                config.site_image,
                "website",
                join_root_url(config.site_url, "/"),
            ),
        )

    def wrap_layout(
        self,
        content: Markup,
        title: str,
        description: str,
        keywords: Iterable[str],
        og_tags: Markup,
    ) -> str:
        """Splice a rendered page into the site layout."""
        return self.renderer.render(
            self.templates.layout,
            {
                "{{CONTENT}}": content,
                "{{PAGE_TITLE}}": title,
                "{{META_DESCRIPTION}}": description,
                "{{META_KEYWORDS}}": ", ".join(keywords),
                "{{OG_TAGS}}": og_tags,
                "{{FOOTER_CONTENT}}": self.footer(),
            },
        )
