import pytest

from hyperblog.sitemap import (
    MISSING_LOC,
    MISSING_URL,
    MISSING_URLSET,
    VALID,
    SitemapMalformedError,
    parse_sitemap,
    validate_sitemap,
    validate_sitemap_file,
    validate_structure,
)

VALID_SITEMAP = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://example.com/a</loc></url>
  <url><loc>https://example.com/b</loc><lastmod>2024-01-01T00:00:00Z</lastmod></url>
</urlset>
"""


def test_valid_sitemap():
    result = validate_sitemap(VALID_SITEMAP)
    assert result.valid
    assert result.reason is None
    assert result.message == VALID


def test_single_url_is_valid():
    assert validate_sitemap("<urlset><url><loc>https://x/a</loc></url></urlset>").valid


@pytest.mark.parametrize(
    "xml, reason",
    [
        ("<sitemapindex><sitemap><loc>x</loc></sitemap></sitemapindex>", MISSING_URLSET),
        ("<urlset></urlset>", MISSING_URL),
        ("<urlset><url><lastmod>2024-01-01</lastmod></url></urlset>", MISSING_LOC),
        ("<urlset><url><loc>https://x/a</loc></url><url><loc>  </loc></url></urlset>", MISSING_LOC),
    ],
)
def test_structural_failures(xml, reason):
    result = validate_sitemap(xml)
    assert not result.valid
    assert result.reason == reason
    assert result.message == reason


def test_malformed_xml():
    result = validate_sitemap("<urlset><url>")
    assert not result.valid
    assert result.reason.startswith("The sitemap is not a well-formed XML document")
    with pytest.raises(SitemapMalformedError):
        parse_sitemap("not xml at all")


def test_parse_sitemap_shapes():
    parsed = parse_sitemap(VALID_SITEMAP)
    urls = parsed["urlset"]["url"]
    assert isinstance(urls, list)
    assert urls[0] == {"loc": "https://example.com/a"}
    single = parse_sitemap("<urlset><url><loc>x</loc></url></urlset>")
    assert single == {"urlset": {"url": {"loc": "x"}}}


def test_validate_structure_on_plain_data():
    assert validate_structure({"urlset": {"url": [{"loc": "a"}, {"loc": "b"}]}}).valid
    assert validate_structure({"urlset": {"url": {"loc": "https://x/a"}}}).valid
    assert validate_structure({}).reason == MISSING_URLSET
    assert validate_structure({"urlset": {}}).reason == MISSING_URL
    assert validate_structure({"urlset": {"url": []}}).reason == MISSING_URL
    assert validate_structure({"urlset": {"url": [{"loc": "a"}, {}]}}).reason == MISSING_LOC


def test_validate_sitemap_file(tmp_path):
    path = tmp_path / "sitemap.xml"
    path.write_text(VALID_SITEMAP, encoding="utf-8")
    assert validate_sitemap_file(path).valid
    missing = validate_sitemap_file(tmp_path / "nope.xml")
    assert not missing.valid
    assert "Could not read the sitemap" in missing.reason


def test_repeated_loc_is_accepted():
    xml = "<urlset><url><loc>https://x/a</loc><loc>https://x/b</loc></url></urlset>"
    assert parse_sitemap(xml) == {"urlset": {"url": {"loc": ["https://x/a", "https://x/b"]}}}
    assert validate_sitemap(xml).valid
    assert validate_structure({"urlset": {"url": {"loc": []}}}).reason == MISSING_LOC
    assert validate_structure({"urlset": {"url": {"loc": ["a", " "]}}}).reason == MISSING_LOC
