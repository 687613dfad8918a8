"""File resolution and image discovery relative to a project root."""

from __future__ import annotations

import glob
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_GLOB_CHARS = frozenset("*?[")


class FileResolver(Protocol):
    """Capability used by the artifact registry to locate files."""

    def resolve(self, path: str | Path) -> Path:
        """Return the absolute location of *path*."""

    def find_files(self, pattern_or_dir: str | Path) -> set[Path]:
        """Return absolute image paths matched by a file, directory, or glob pattern."""


class LocalFileResolver:
    """Resolve paths against ``root`` and discover image sources on disk."""

    def __init__(self, root: Path, image_extensions: Iterable[str] = (".svg",)) -> None:
        self.root = root.resolve()
        self.image_extensions = tuple(_normalize_extension(ext) for ext in image_extensions)
        if not self.image_extensions:
            raise ValueError("At least one image extension is required.")

    def resolve(self, path: str | Path) -> Path:
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate
        return candidate.resolve()

    def find_files(self, pattern_or_dir: str | Path) -> set[Path]:
        raw = str(pattern_or_dir)
        if any(char in raw for char in _GLOB_CHARS):
            pattern = raw if Path(raw).is_absolute() else str(self.root / raw)
            return {
                Path(match).resolve()
                for match in glob.glob(pattern, recursive=True)
                if self._is_image(Path(match))
            }

        location = self.resolve(raw)
        if location.is_dir():
            return {path.resolve() for path in location.rglob("*") if self._is_image(path)}
        if location.is_file():
            return {location}
        logger.warning("Image source %s does not exist", location)
        return set()

    def _is_image(self, path: Path) -> bool:
        return path.is_file() and path.suffix.lower() in self.image_extensions


def _normalize_extension(value: str) -> str:
    stripped = value.strip().lower()
    if not stripped:
        raise ValueError("Image extension must be non-empty.")
    return stripped if stripped.startswith(".") else f".{stripped}"
