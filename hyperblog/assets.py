"""Static asset copying for hyperblog.

Assets (stylesheets, scripts, images) are copied verbatim from the assets
directory into the root of the output tree, keeping their relative paths:
``assets/css/style.css`` is published as ``/css/style.css``.
"""

from __future__ import annotations

import shutil
from pathlib import Path


class AssetPipeline:
    """Copies static assets into the output directory.

    Attributes:
        assets_dir: Directory containing source assets.
        output_dir: Directory where assets are written.
    """

    def __init__(self, assets_dir: Path, output_dir: Path):
        self.assets_dir = assets_dir
        self.output_dir = output_dir

    def run(self) -> list[str]:
        """Copy every asset file.

        Dotfiles and files inside dot-directories are skipped. A missing
        assets directory is not an error.

        Returns:
            Output paths relative to the output directory, in sorted order.
        """
        if not self.assets_dir.is_dir():
            return []
        copied: list[str] = []
        for item in sorted(self.assets_dir.rglob("*")):
            if item.is_dir():
                continue
            rel = item.relative_to(self.assets_dir)
            if any(part.startswith(".") for part in rel.parts):
                continue
            dest = self.output_dir / rel
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(item, dest)
            copied.append(rel.as_posix())
        return copied
