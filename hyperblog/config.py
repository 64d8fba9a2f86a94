"""Site configuration for hyperblog.

Configuration lives in ``hyperblog.yaml`` at the project root. Values are
merged over ``DEFAULT_CONFIG`` and materialised as a ``SiteConfig``, which is
passed explicitly to the build pipeline, the dev server and the sitemap
submitter. Nothing in the package reads configuration from module globals.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "hyperblog.yaml"

DEFAULT_SEARCH_ENGINES = [
    {"name": "Google", "ping_url": "https://www.google.com/ping?sitemap=[SITEMAP_URL]"},
    {"name": "Bing", "ping_url": "https://www.bing.com/ping?sitemap=[SITEMAP_URL]"},
]

DEFAULT_CONFIG: dict[str, Any] = {
    "content_dir": "content",
    "templates_dir": "templates",
    "assets_dir": "assets",
    "output_dir": "public",
    "site_url": "https://example.com",
    "site_title": "Hyper Blog Engine",
    "site_tagline": "A modern, fast, and SEO-friendly blog.",
    "site_description": "A high-performance blog engine.",
    "site_keywords": ["blog", "web development", "seo", "performance"],
    "site_image": "/images/open_graph_image.png",
    "logo": "/images/logo.png",
    "copyright_holder": "Hyper Blog Engine",
    "copyright_year": None,
    "related_count": 3,
    "changefreq": "monthly",
    "priority": 0.8,
    "template_engine": "placeholder",
    "strict": False,
    "render_workers": 1,
    "port": 3000,
    "ws_port": None,
    "network_timeout": 7.0,
    "search_engines": DEFAULT_SEARCH_ENGINES,
}

TEMPLATE_ENGINES = ("placeholder", "escaping", "jinja")


class ConfigError(Exception):
    """Raised when ``hyperblog.yaml`` is malformed or holds invalid values."""


@dataclass(frozen=True)
class SearchEngine:
    """An external directory notified when the sitemap changes.

    Attributes:
        name: Display name used in submission reports.
        ping_url: URL template; ``[SITEMAP_URL]`` is replaced with the
            URL-encoded sitemap address.
    """

    name: str
    ping_url: str


@dataclass(frozen=True)
class SiteConfig:
    """Resolved configuration for one project.

    Directory attributes are absolute paths resolved against the project
    root. Use ``with_overrides`` for per-invocation changes.
    """

    project_root: Path
    content_dir: Path
    templates_dir: Path
    assets_dir: Path
    output_dir: Path
    site_url: str = DEFAULT_CONFIG["site_url"]
    site_title: str = DEFAULT_CONFIG["site_title"]
    site_tagline: str = DEFAULT_CONFIG["site_tagline"]
    site_description: str = DEFAULT_CONFIG["site_description"]
    site_keywords: tuple[str, ...] = tuple(DEFAULT_CONFIG["site_keywords"])
    site_image: str = DEFAULT_CONFIG["site_image"]
    logo: str = DEFAULT_CONFIG["logo"]
    copyright_holder: str = DEFAULT_CONFIG["copyright_holder"]
    copyright_year: int | None = None
    related_count: int = 3
    changefreq: str = "monthly"
    priority: float = 0.8
    template_engine: str = "placeholder"
    strict: bool = False
    render_workers: int = 1
    port: int = 3000
    ws_port: int | None = None
    network_timeout: float = 7.0
    search_engines: tuple[SearchEngine, ...] = field(
        default_factory=lambda: tuple(SearchEngine(**e) for e in DEFAULT_SEARCH_ENGINES)
    )

    @property
    def sitemap_url(self) -> str:
        """Public URL of the generated sitemap."""
        return f"{self.site_url.rstrip('/')}/sitemap.xml"

    def with_overrides(self, **overrides: Any) -> SiteConfig:
        """Return a copy with the given non-None values replaced.

        Path values are resolved against the project root, matching how
        values from ``hyperblog.yaml`` are treated.
        """
        changes = {k: v for k, v in overrides.items() if v is not None}
        _coerce_numbers(changes)
        for key in _PATH_KEYS:
            if key in changes:
                changes[key] = _resolve(self.project_root, changes[key])
        config = replace(self, **changes)
        _validate(config)
        return config

    @classmethod
    def from_mapping(cls, project_root: Path, values: dict[str, Any]) -> SiteConfig:
        """Build a config from a raw mapping merged over the defaults.

        Args:
            project_root: Directory that relative paths are resolved against.
            values: Raw configuration values (e.g. parsed YAML).

        Returns:
            A validated SiteConfig.

        Raises:
            ConfigError: If a key is unknown or a value is invalid.
        """
        merged = copy.deepcopy(DEFAULT_CONFIG)
        known = {f.name for f in fields(cls)}
        for key, value in values.items():
            if key not in known or key == "project_root":
                raise ConfigError(f"Unknown configuration key: {key}")
            merged[key] = value

        project_root = Path(project_root).resolve()
        kwargs = dict(merged)
        for key in _PATH_KEYS:
            kwargs[key] = _resolve(project_root, kwargs[key])
        kwargs["site_keywords"] = _as_keywords(kwargs["site_keywords"])
        kwargs["search_engines"] = _as_search_engines(kwargs["search_engines"])
        _coerce_numbers(kwargs)
        try:
            config = cls(project_root=project_root, **kwargs)
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc
        _validate(config)
        return config


_PATH_KEYS = ("content_dir", "templates_dir", "assets_dir", "output_dir")
_INT_KEYS = ("related_count", "render_workers", "port", "ws_port", "copyright_year")
_FLOAT_KEYS = ("priority", "network_timeout")


def load_config(project_root: Path, **overrides: Any) -> SiteConfig:
    """Load site configuration from hyperblog.yaml.

    Args:
        project_root: Root directory of the project.
        **overrides: Per-invocation values that win over the file.

    Returns:
        SiteConfig with defaults applied.

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    config_path = Path(project_root) / CONFIG_FILENAME
    loaded: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"{config_path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_path}: expected a mapping at the top level")
    config = SiteConfig.from_mapping(Path(project_root), loaded)
    if overrides:
        config = config.with_overrides(**overrides)
    return config


def _resolve(project_root: Path, value: Any) -> Path:
    path = Path(value)
    if not path.is_absolute():
        path = project_root / path
    return path


def _as_keywords(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(k.strip() for k in value.split(",") if k.strip())
    if isinstance(value, (list, tuple)):
        return tuple(str(k) for k in value)
    raise ConfigError("site_keywords must be a list or a comma-separated string")


def _as_search_engines(value: Any) -> tuple[SearchEngine, ...]:
    if not isinstance(value, (list, tuple)):
        raise ConfigError("search_engines must be a list")
    engines = []
    for entry in value:
        if isinstance(entry, SearchEngine):
            engines.append(entry)
            continue
        if not isinstance(entry, dict) or not entry.get("name") or not entry.get("ping_url"):
            raise ConfigError("each search engine needs a name and a ping_url")
        engines.append(SearchEngine(name=str(entry["name"]), ping_url=str(entry["ping_url"])))
    return tuple(engines)


def _coerce_numbers(values: dict[str, Any]) -> None:
    """Convert numeric settings in place; quoted YAML numbers are accepted."""
    for key in _INT_KEYS + _FLOAT_KEYS:
        value = values.get(key)
        if value is None:
            continue
        cast = int if key in _INT_KEYS else float
        if isinstance(value, bool):
            raise ConfigError(f"{key} must be a number, got {value!r}")
        try:
            values[key] = cast(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{key} must be a number, got {value!r}") from exc


def _validate(config: SiteConfig) -> None:
    if config.template_engine not in TEMPLATE_ENGINES:
        raise ConfigError(
            f"template_engine must be one of {', '.join(TEMPLATE_ENGINES)}, "
            f"got {config.template_engine!r}"
        )
    if config.related_count < 0:
        raise ConfigError("related_count must not be negative")
    if config.render_workers < 1:
        raise ConfigError("render_workers must be at least 1")
    if config.network_timeout <= 0:
        raise ConfigError("network_timeout must be positive")
    if not 0.0 <= config.priority <= 1.0:
        raise ConfigError("priority must be between 0.0 and 1.0")
