import json
from datetime import datetime, timezone

from hyperblog.config import load_config
from hyperblog.content import Document
from hyperblog.feeds import (
    FeedGenerator,
    FeedRegistry,
    RobotsGenerator,
    RSSGenerator,
    SearchIndexGenerator,
    SitemapGenerator,
    create_default_feed_registry,
    search_entries,
)
from hyperblog.sitemap import validate_sitemap


def make_doc(slug, day, title=None):
    return Document(
        slug=slug,
        title=title or f"Post {slug}",
        date=datetime(2024, 1, day, 8, 30, tzinfo=timezone.utc),
        excerpt=f"About {slug}",
    )


DOCS = [make_doc("b", 2), make_doc("a", 1)]


def test_search_index_keeps_document_order(tmp_path):
    config = load_config(tmp_path)
    payload = json.loads(SearchIndexGenerator().generate(DOCS, config))
    assert payload == [
        {"title": "Post b", "slug": "b", "excerpt": "About b"},
        {"title": "Post a", "slug": "a", "excerpt": "About a"},
    ]
    assert len(search_entries([])) == 0


def test_search_index_keeps_unicode(tmp_path):
    config = load_config(tmp_path)
    text = SearchIndexGenerator().generate([make_doc("c", 3, title="Café")], config)
    assert "Café" in text


def test_sitemap(tmp_path):
    config = load_config(tmp_path, site_url="https://blog.test/")
    xml = SitemapGenerator().generate(DOCS, config)
    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">' in xml
    assert "<loc>https://blog.test/posts/b.html</loc>" in xml
    assert "<lastmod>2024-01-02T08:30:00Z</lastmod>" in xml
    assert "<changefreq>monthly</changefreq>" in xml
    assert "<priority>0.8</priority>" in xml
    assert xml.index("/posts/b.html") < xml.index("/posts/a.html")
    assert validate_sitemap(xml).valid


def test_robots(tmp_path):
    text = RobotsGenerator().generate(DOCS, load_config(tmp_path))
    assert text == "User-agent: *\nDisallow: /posts/\nAllow: /\n"


def test_rss_is_newest_first_and_stable(tmp_path):
    config = load_config(tmp_path, site_title="News & Notes")
    xml = RSSGenerator().generate(list(reversed(DOCS)), config)
    assert "<title>News &amp; Notes</title>" in xml
    assert "<lastBuildDate>Tue, 02 Jan 2024 08:30:00 +0000</lastBuildDate>" in xml
    assert xml.index("<title>Post b</title>") < xml.index("<title>Post a</title>")
    assert "<guid>https://example.com/posts/a.html</guid>" in xml
    assert xml == RSSGenerator().generate(DOCS, config)


def test_registry_writes_every_artifact(tmp_path):
    config = load_config(tmp_path)
    out = tmp_path / "out"
    out.mkdir()
    written = create_default_feed_registry().generate_all(out, DOCS, config)
    assert written == ["search-index.json", "robots.txt", "sitemap.xml", "rss.xml"]
    for name in written:
        assert (out / name).exists()


def test_registry_skips_generators_returning_none(tmp_path):
    class Nothing(FeedGenerator):
        @property
        def filename(self):
            return "nothing.txt"

        def generate(self, documents, config):
            return None

    registry = FeedRegistry()
    registry.register(Nothing())
    registry.register(RobotsGenerator())
    written = registry.generate_all(tmp_path, DOCS, load_config(tmp_path))
    assert written == ["robots.txt"]
    assert not (tmp_path / "nothing.txt").exists()


def test_sitemap_priority_is_not_rounded(tmp_path):
    config = load_config(tmp_path, priority=0.85)
    xml = SitemapGenerator().generate(DOCS, config)
    assert "<priority>0.85</priority>" in xml
    top = SitemapGenerator().generate(DOCS, config.with_overrides(priority=1))
    assert "<priority>1.0</priority>" in top
