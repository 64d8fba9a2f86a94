"""Markdown rendering for post bodies.

Post bodies are Markdown; this module turns them into the HTML fragment
bound to ``{{POST_CONTENT}}``. Raw HTML inside the Markdown is passed
through untouched, consistent with the unescaped templating contract.

Fenced code blocks with a known language are highlighted by Pygments using
the ``highlight`` CSS class; ``pygments_css`` returns the matching
stylesheet, which ``hyperblog new`` writes to ``assets/css/highlight.css``.
"""

from __future__ import annotations

import re
from collections import Counter

import mistune
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

HIGHLIGHT_CLASS = "highlight"

_TAG_RE = re.compile(r"<[^>]+>")


def _generate_heading_id(text: str) -> str:
    """Turn rendered heading HTML into an anchor id, e.g. ``hello-world``."""
    plain = _TAG_RE.sub("", text).lower()
    words = re.findall(r"[\w-]+", plain)
    return re.sub(r"-{2,}", "-", "-".join(words)).strip("-")


def _highlight_code(code: str, lang: str) -> str | None:
    """Highlight ``code`` with Pygments, or return None for unknown languages."""
    try:
        lexer = get_lexer_by_name(lang, stripall=True)
    except ClassNotFound:
        return None
    return highlight(code, lexer, HtmlFormatter(cssclass=HIGHLIGHT_CLASS))


class _PostHTMLRenderer(mistune.HTMLRenderer):
    """Adds anchor ids to headings and highlights fenced code.

    A fresh instance is used per document, so repeated headings are
    numbered within one post only (``intro``, ``intro-1``, ...).
    """

    def __init__(self):
        super().__init__(escape=False)
        self._anchors: Counter[str] = Counter()

    def heading(self, text: str, level: int, **attrs) -> str:
        anchor = _generate_heading_id(text) or "section"
        seen = self._anchors[anchor]
        self._anchors[anchor] += 1
        if seen:
            anchor = f"{anchor}-{seen}"
        return f'<h{level} id="{anchor}">{text}</h{level}>\n'

    def block_code(self, code: str, info: str | None = None) -> str:
        lang = info.split()[0] if info and info.strip() else ""
        if lang:
            highlighted = _highlight_code(code, lang)
            if highlighted is not None:
                return highlighted
            return f'<pre><code class="language-{lang}">{mistune.escape(code)}</code></pre>\n'
        return f"<pre><code>{mistune.escape(code)}</code></pre>\n"


class MarkdownRenderer:
    """Renders Markdown post bodies to HTML."""

    plugins = ["strikethrough", "footnotes", "table", "url"]

    def render(self, content: str) -> str:
        parser = mistune.create_markdown(renderer=_PostHTMLRenderer(), plugins=self.plugins)
        return parser(content)


def pygments_css() -> str:
    """Return the Pygments stylesheet for highlighted code blocks."""
    return HtmlFormatter(cssclass=HIGHLIGHT_CLASS).get_style_defs(f".{HIGHLIGHT_CLASS}")
