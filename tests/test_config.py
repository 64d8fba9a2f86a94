import pytest

from hyperblog.config import (
    CONFIG_FILENAME,
    ConfigError,
    SearchEngine,
    SiteConfig,
    load_config,
)


def test_defaults_without_config_file(tmp_path):
    config = load_config(tmp_path)
    assert config.project_root == tmp_path.resolve()
    assert config.content_dir == tmp_path.resolve() / "content"
    assert config.output_dir == tmp_path.resolve() / "public"
    assert config.template_engine == "placeholder"
    assert config.related_count == 3
    assert config.strict is False
    assert [e.name for e in config.search_engines] == ["Google", "Bing"]


def test_values_from_yaml(tmp_path):
    (tmp_path / CONFIG_FILENAME).write_text(
        "site_url: https://blog.test/\n"
        "output_dir: dist\n"
        "site_keywords: python, blogging\n"
        "related_count: 5\n"
        "search_engines:\n"
        "  - name: Example\n"
        "    ping_url: https://ping.test/?u=[SITEMAP_URL]\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path)
    assert config.output_dir == tmp_path.resolve() / "dist"
    assert config.site_keywords == ("python", "blogging")
    assert config.related_count == 5
    assert config.search_engines == (SearchEngine("Example", "https://ping.test/?u=[SITEMAP_URL]"),)
    assert config.sitemap_url == "https://blog.test/sitemap.xml"


def test_overrides_win_and_none_is_ignored(tmp_path):
    config = load_config(tmp_path, output_dir="build", strict=True, site_url=None)
    assert config.output_dir == tmp_path.resolve() / "build"
    assert config.strict is True
    assert config.site_url == "https://example.com"

    again = config.with_overrides(render_workers=4)
    assert again.render_workers == 4
    assert config.render_workers == 1


def test_unknown_key_is_rejected(tmp_path):
    (tmp_path / CONFIG_FILENAME).write_text("colour: blue\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Unknown configuration key: colour"):
        load_config(tmp_path)


@pytest.mark.parametrize(
    "body",
    ["site_url: [unclosed\n", "- just\n- a list\n"],
)
def test_malformed_file(tmp_path, body):
    (tmp_path / CONFIG_FILENAME).write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(tmp_path)


@pytest.mark.parametrize(
    "values",
    [
        {"template_engine": "mustache"},
        {"related_count": -1},
        {"render_workers": 0},
        {"network_timeout": 0},
        {"search_engines": [{"name": "NoUrl"}]},
        {"site_keywords": 3},
    ],
)
def test_invalid_values(tmp_path, values):
    with pytest.raises(ConfigError):
        SiteConfig.from_mapping(tmp_path, values)


def test_quoted_numbers_are_converted(tmp_path):
    (tmp_path / CONFIG_FILENAME).write_text(
        'related_count: "2"\n'
        'render_workers: "4"\n'
        'priority: "0.85"\n'
        'network_timeout: "3"\n'
        'copyright_year: "2023"\n',
        encoding="utf-8",
    )
    config = load_config(tmp_path, port="8080")
    assert config.related_count == 2
    assert config.render_workers == 4
    assert config.priority == 0.85
    assert config.network_timeout == 3.0
    assert config.copyright_year == 2023
    assert config.port == 8080


@pytest.mark.parametrize(
    "values",
    [
        {"related_count": "two"},
        {"render_workers": [4]},
        {"priority": "high"},
        {"priority": 1.5},
        {"port": True},
    ],
)
def test_non_numeric_or_out_of_range_values(tmp_path, values):
    with pytest.raises(ConfigError):
        SiteConfig.from_mapping(tmp_path, values)


def test_overrides_are_converted_and_checked(tmp_path):
    config = load_config(tmp_path)
    assert config.with_overrides(related_count="1").related_count == 1
    with pytest.raises(ConfigError, match="render_workers must be a number"):
        config.with_overrides(render_workers="many")
