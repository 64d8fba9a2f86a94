import json
from pathlib import Path

import pytest

from conftest import write_post
from hyperblog.build import BuildError, BuildStage, SiteAssembler, _format_error_message, build_site
from hyperblog.config import load_config
from hyperblog.templates import NO_RELATED_HTML


def snapshot(output_dir: Path) -> dict[str, bytes]:
    return {
        p.relative_to(output_dir).as_posix(): p.read_bytes()
        for p in sorted(output_dir.rglob("*"))
        if p.is_file()
    }


def test_end_to_end_two_posts(project, config):
    write_post(project / "content", "a", "2024-01-01", keywords=["x"])
    write_post(project / "content", "b", "2024-02-01", keywords=["x"])

    result = build_site(config)
    out = config.output_dir

    assert result.stage is BuildStage.DONE
    assert not result.partial
    assert [d.slug for d in result.documents] == ["b", "a"]

    index = json.loads((out / "search-index.json").read_text(encoding="utf-8"))
    assert [entry["slug"] for entry in index] == ["b", "a"]
    assert index == result.search_index

    post_a = (out / "posts" / "a.html").read_text(encoding="utf-8")
    post_b = (out / "posts" / "b.html").read_text(encoding="utf-8")
    assert '<div class="related"><a class="card" href="/posts/b.html">Post B</a></div>' in post_a
    assert '<div class="related"><a class="card" href="/posts/a.html">Post A</a></div>' in post_b

    home = (out / "index.html").read_text(encoding="utf-8")
    assert home.index('href="/posts/b.html"') < home.index('href="/posts/a.html"')

    sitemap = (out / "sitemap.xml").read_text(encoding="utf-8")
    assert sitemap.count("<url>") == 2
    assert "<loc>https://blog.test/posts/b.html</loc>" in sitemap
    assert (out / "robots.txt").read_text(encoding="utf-8").startswith("User-agent: *")
    assert (out / "rss.xml").exists()
    assert (out / "css" / "style.css").read_text(encoding="utf-8") == "body{}"

    assert result.written[0] == "index.html"
    assert set(result.written) == set(snapshot(out))


def test_unrelated_post_gets_placeholder(project, config):
    write_post(project / "content", "a", "2024-01-01", keywords=["x"])
    write_post(project / "content", "b", "2024-02-01", keywords=["y"])
    build_site(config)
    html = (config.output_dir / "posts" / "a.html").read_text(encoding="utf-8")
    assert NO_RELATED_HTML in html


def test_related_count_is_configurable(project, config):
    for i in range(1, 6):
        write_post(project / "content", f"p{i}", f"2024-01-0{i}", keywords=["x"])
    build_site(config, related_count=2)
    html = (config.output_dir / "posts" / "p1.html").read_text(encoding="utf-8")
    assert html.count('class="card"') == 2
    assert 'href="/posts/p5.html"' in html
    assert 'href="/posts/p4.html"' in html


def test_quoted_numbers_in_config_build(project):
    with open(project / "hyperblog.yaml", "a", encoding="utf-8") as f:
        f.write('related_count: "1"\nrender_workers: "2"\npriority: "0.85"\n')
    for i in range(1, 4):
        write_post(project / "content", f"p{i}", f"2024-01-0{i}", keywords=["x"])
    result = build_site(load_config(project))
    assert len(result.documents) == 3
    html = (result.output_dir / "posts" / "p1.html").read_text(encoding="utf-8")
    assert html.count('class="card"') == 1
    sitemap = (result.output_dir / "sitemap.xml").read_text(encoding="utf-8")
    assert "<priority>0.85</priority>" in sitemap


def test_builds_are_idempotent(project, config):
    for i in range(1, 8):
        write_post(project / "content", f"p{i}", f"2024-01-0{i}", keywords=["x", f"k{i % 3}"])
    build_site(config)
    first = snapshot(config.output_dir)
    build_site(config)
    assert snapshot(config.output_dir) == first
    build_site(config, render_workers=4)
    assert snapshot(config.output_dir) == first


def test_stale_output_is_purged(project, config):
    write_post(project / "content", "a", "2024-01-01")
    config.output_dir.mkdir()
    (config.output_dir / "stale.html").write_text("old", encoding="utf-8")
    build_site(config)
    assert not (config.output_dir / "stale.html").exists()


def test_malformed_post_is_skipped(project, config):
    write_post(project / "content", "a", "2024-01-01")
    (project / "content" / "broken.md").write_text("no front matter", encoding="utf-8")
    result = build_site(config)
    assert result.partial
    assert [f.source_path.name for f in result.failures] == ["broken.md"]
    assert (config.output_dir / "posts" / "a.html").exists()


def test_strict_mode_aborts(project, config):
    write_post(project / "content", "a", "2024-01-01")
    (project / "content" / "broken.md").write_text("no front matter", encoding="utf-8")
    assembler = SiteAssembler(config.with_overrides(strict=True))
    with pytest.raises(BuildError) as excinfo:
        assembler.build()
    assert excinfo.value.stage is BuildStage.LOADED
    assert excinfo.value.source_path.name == "broken.md"
    assert "missing front matter" in str(excinfo.value)
    assert assembler.stage is BuildStage.FAILED


def test_missing_template_fails_render_stage(project, config):
    write_post(project / "content", "a", "2024-01-01")
    (project / "templates" / "layout.html").unlink()
    with pytest.raises(BuildError) as excinfo:
        build_site(config)
    assert excinfo.value.stage is BuildStage.RENDERED
    assert excinfo.value.message == "Template not found: layout.html"


def test_missing_content_dir_fails(project, config):
    (project / "content").rmdir()
    with pytest.raises(BuildError) as excinfo:
        build_site(config)
    assert excinfo.value.stage is BuildStage.LOADED


def test_refuses_to_purge_project_root(project, config):
    with pytest.raises(BuildError, match="Refusing to purge"):
        build_site(config, output_dir=".")
    assert (project / "content").is_dir()


def test_empty_site_still_builds(project, config):
    result = build_site(config)
    assert len(result.documents) == 0
    assert json.loads((config.output_dir / "search-index.json").read_text(encoding="utf-8")) == []
    assert (config.output_dir / "index.html").exists()


def test_site_assembler_tracks_stage(project, config):
    assembler = SiteAssembler(config)
    assert assembler.stage is BuildStage.CLEAN
    assembler.build()
    assert assembler.stage is BuildStage.DONE


def test_build_error_str():
    err = BuildError(BuildStage.RENDERED, "boom", Path("content/a.md"))
    assert str(err) == "[rendered] content/a.md: boom"
    assert str(BuildError(BuildStage.WRITTEN, "disk full")) == "[written] disk full"


def test_format_error_message():
    assert _format_error_message(TypeError("bad")) == "Type error: bad"
    assert _format_error_message(KeyError("k")) == "KeyError: 'k'"


def test_build_with_escaping_engine(project):
    write_post(project / "content", "a", "2024-01-01", title="'Fish & Chips'")
    config = load_config(project, template_engine="escaping")
    build_site(config)
    html = (config.output_dir / "posts" / "a.html").read_text(encoding="utf-8")
    assert "<h1>Fish &amp; Chips</h1>" in html
