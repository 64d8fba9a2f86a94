from __future__ import annotations

from pathlib import Path

import pytest

from hyperblog.config import load_config

LAYOUT = (
    "<html><head><title>{{PAGE_TITLE}}</title>"
    '<meta name="description" content="{{META_DESCRIPTION}}" />'
    '<meta name="keywords" content="{{META_KEYWORDS}}" />'
    "{{OG_TAGS}}</head><body>{{CONTENT}}{{FOOTER_CONTENT}}</body></html>\n"
)
POST = (
    "<article><h1>{{POST_TITLE}}</h1><p>{{POST_DATE}}</p>{{POST_CONTENT}}"
    '<a href="{{CTA_URL}}">{{CTA_TEXT}}</a>'
    '<div class="related">{{RELATED_POSTS}}</div></article>'
)
POST_CARD = '<a class="card" href="{{POST_URL}}">{{POST_TITLE}}</a>'


def write_post(
    content_dir: Path, slug: str, date: str, keywords=(), filename=None, title=None, **extra
) -> Path:
    """Write a content file with a minimal front matter header."""
    lines = ["---", f"title: {title or 'Post ' + slug.upper()}", f"slug: {slug}", f"date: {date}"]
    lines.append(f"excerpt: Excerpt of {slug}")
    if keywords:
        lines.append("keywords:")
        lines.extend(f"  - {k}" for k in keywords)
    for key, value in extra.items():
        lines.append(f"{key}: {value}")
    lines.extend(["---", f"# Heading {slug}", "", f"Body of {slug}.", ""])
    path = content_dir / (filename or f"{slug}.md")
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


def create_project(root: Path) -> Path:
    (root / "content").mkdir(parents=True)
    (root / "templates").mkdir()
    (root / "assets" / "css").mkdir(parents=True)
    (root / "hyperblog.yaml").write_text(
        "site_url: https://blog.test\n"
        "site_title: Test Blog\n"
        "copyright_holder: Test Co\n"
        "copyright_year: 2024\n"
        "output_dir: public\n",
        encoding="utf-8",
    )
    (root / "templates" / "layout.html").write_text(LAYOUT, encoding="utf-8")
    (root / "templates" / "post.html").write_text(POST, encoding="utf-8")
    (root / "templates" / "post-card.html").write_text(POST_CARD, encoding="utf-8")
    (root / "assets" / "css" / "style.css").write_text("body{}", encoding="utf-8")
    return root


@pytest.fixture
def project(tmp_path):
    return create_project(tmp_path / "site")


@pytest.fixture
def config(project):
    return load_config(project)
