"""Command-line interface for hyperblog.

This module defines the CLI commands using the Click framework.

Commands:
- new: Scaffold a new blog project.
- build: Build the site into the output directory.
- serve: Run the development server with rebuild-on-change.
- validate: Validate a sitemap file or URL.
- submit: Fetch, validate and submit a sitemap to search engines.
- post: Create a new post interactively.
"""

from __future__ import annotations

import json
import os
import shutil
import subprocess
from datetime import date
from pathlib import Path

import click
import httpx
import questionary
import yaml

from . import __version__
from .config import TEMPLATE_ENGINES, ConfigError, SiteConfig, load_config

# Starter project copied by `hyperblog new`
_SCAFFOLD_DIR = Path(__file__).parent / "scaffold"


def _load(**overrides) -> SiteConfig:
    try:
        return load_config(Path.cwd(), **overrides)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.version_option(version=__version__, prog_name="hyperblog")
def cli():
    """hyperblog static blog generator."""


@cli.command()
@click.argument("name")
def new(name: str):
    """Scaffold a new blog project."""
    target = Path(name).resolve()
    if target.exists() and any(target.iterdir()):
        raise click.ClickException(f"Refusing to initialize into non-empty directory: {target}")
    _scaffold(target)
    click.echo(f"New blog created at {target}")


@cli.command()
@click.option("--strict", is_flag=True, help="Abort on the first malformed post")
@click.option("--output", "output_dir", type=click.Path(file_okay=False), help="Output directory")
@click.option("--site-url", help="Absolute site URL used in the sitemap and feeds")
@click.option("--workers", "render_workers", type=int, help="Threads used to render posts")
@click.option("--engine", "template_engine", type=click.Choice(TEMPLATE_ENGINES), help="Template engine")
def build(strict, output_dir, site_url, render_workers, template_engine):
    """Build the site into the output directory."""
    from .build import BuildError, build_site

    config = _load(
        strict=strict or None,
        output_dir=output_dir,
        site_url=site_url,
        render_workers=render_workers,
        template_engine=template_engine,
    )
    try:
        result = build_site(config)
    except BuildError as exc:
        click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
        click.echo(click.style(f"  Stage: {exc.stage.value}", fg="yellow"), err=True)
        if exc.source_path is not None:
            click.echo(click.style(f"  File: {_relative(exc.source_path)}", fg="yellow"), err=True)
        click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
        raise SystemExit(1) from None
    for failure in result.failures:
        click.echo(
            click.style(f"Skipped {_relative(failure.source_path)}: {failure.message}", fg="yellow"),
            err=True,
        )
    click.echo(
        click.style(f"Built {len(result.documents)} posts into {result.output_dir}", fg="green")
    )


@cli.command()
@click.option("--port", type=int, required=False, help="Port for the dev server (overrides hyperblog.yaml)")
@click.option(
    "--ws-port",
    type=int,
    required=False,
    help="Port for the live reload websocket server (overrides hyperblog.yaml ws_port)",
)
def serve(port: int | None, ws_port: int | None):
    """Run dev server with rebuild on change and live reload."""
    from .server import DevServer

    server = DevServer(_load(), http_port=port, ws_port=ws_port)
    server.start()


@cli.command()
@click.argument("target", required=False)
def validate(target: str | None):
    """Validate a sitemap file or URL (default: the built sitemap.xml)."""
    from .sitemap import validate_sitemap, validate_sitemap_file

    config = _load()
    if target and target.startswith(("http://", "https://")):
        try:
            response = httpx.get(target, timeout=config.network_timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise click.ClickException(f"Could not fetch {target}: {exc}") from exc
        result = validate_sitemap(response.content)
    else:
        path = Path(target) if target else config.output_dir / "sitemap.xml"
        result = validate_sitemap_file(path)
    if not result.valid:
        click.echo(click.style(f"Invalid sitemap: {result.reason}", fg="red"), err=True)
        raise SystemExit(1)
    click.echo(click.style(result.message, fg="green"))


@cli.command()
@click.argument("sitemap_url", required=False)
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
def submit(sitemap_url: str | None, as_json: bool):
    """Fetch, validate and submit a sitemap to search engines."""
    from .submitter import submit_sitemap_url

    config = _load()
    outcome = submit_sitemap_url(sitemap_url or config.sitemap_url, config)
    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2))
    else:
        colour = "green" if outcome.success else "red"
        click.echo(click.style(outcome.message, fg=colour))
        if outcome.error:
            click.echo(f"  {outcome.error}")
        for entry in outcome.submission_report:
            mark = click.style("ok", fg="green") if entry.success else click.style("failed", fg="red")
            click.echo(f"  {entry.name}: {mark} - {entry.detail}")
    if not outcome.success:
        raise SystemExit(1)


@cli.command()
def post():
    """Create a new post interactively."""
    from .content import ContentProcessor
    from .utils import slugify

    config = _load()
    content_dir = config.content_dir
    if not content_dir.exists():
        raise click.ClickException(
            "No content/ directory found. Run this command from a hyperblog project root."
        )

    title = questionary.text(
        "Title:",
        validate=lambda x: len(x.strip()) > 0 or "Title cannot be empty",
        style=_questionary_style(),
    ).ask()
    if title is None:
        raise click.Abort()

    slug = questionary.text(
        "Slug:",
        default=slugify(title),
        validate=_validate_slug,
        style=_questionary_style(),
    ).ask()
    if slug is None:
        raise click.Abort()
    slug = slug.strip()

    keywords = questionary.text("Keywords (comma separated):", style=_questionary_style()).ask()
    if keywords is None:
        raise click.Abort()

    target_path = content_dir / f"{slug}.md"
    if target_path.exists():
        raise click.ClickException(f"File already exists: {_relative(target_path)}")
    existing = {d.slug for d in ContentProcessor(content_dir).load().documents}
    if slug in existing:
        raise click.ClickException(f"A post with slug '{slug}' already exists")

    frontmatter = {
        "title": title.strip(),
        "slug": slug,
        "excerpt": "",
        "author": "",
        "date": date.today().isoformat(),
        "coverImage": "",
        "keywords": [k.strip() for k in keywords.split(",") if k.strip()],
        "og": {"type": "article"},
        "cta": {"text": "", "url": ""},
    }
    header = yaml.safe_dump(frontmatter, sort_keys=False, allow_unicode=True)
    target_path.write_text(f"---\n{header}---\n\nWrite your post here.\n", encoding="utf-8")
    click.echo(f"Created {_relative(target_path)}")


def _validate_slug(value: str):
    from .utils import is_valid_slug

    return is_valid_slug(value.strip()) or "Use letters, digits, '.', '-' or '_' only"


def _relative(path: Path) -> Path:
    try:
        return path.resolve().relative_to(Path.cwd().resolve())
    except ValueError:
        return path


def _questionary_style():
    """Return consistent questionary style."""
    return questionary.Style(
        [
            ("qmark", "fg:cyan bold"),
            ("question", "bold"),
            ("answer", "fg:cyan"),
            ("pointer", "fg:cyan bold"),
            ("highlighted", "fg:cyan bold"),
            ("selected", "fg:cyan"),
        ]
    )


def main():
    """Entry point for the CLI application."""
    cli()


def _scaffold(root: Path) -> None:
    """Create the directory structure and files for a new project.

    Args:
        root: Root directory for the new project.
    """
    from .renderers import pygments_css

    for src_path in _SCAFFOLD_DIR.rglob("*"):
        if src_path.is_dir() or src_path.name == "__pycache__":
            continue
        dest_path = root / src_path.relative_to(_SCAFFOLD_DIR)
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src_path, dest_path)

    (root / "assets" / "images").mkdir(parents=True, exist_ok=True)
    (root / "assets" / "css" / "highlight.css").write_text(pygments_css(), encoding="utf-8")
    _try_git_init(root)


def _try_git_init(root: Path) -> None:
    """Initialize a git repository if git is available."""
    if os.environ.get("HYPERBLOG_SKIP_GIT_INIT") == "1":
        return
    git_bin = shutil.which("git")
    if not git_bin:
        return
    try:
        subprocess.run([git_bin, "init"], cwd=root, check=True, capture_output=True)
    except (OSError, subprocess.CalledProcessError):
        # Non-fatal: user can run git init manually
        pass
