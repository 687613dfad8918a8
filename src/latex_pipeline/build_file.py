"""YAML build file: the declarative list of artifacts for one project.

Example ``latex.yml``::

    quiet: false
    artifacts:
      - appendix.tex
      - tex: thesis.tex
        bib: refs.bib
        img: [figures]
        depends_on: [appendix]
        extra_args: -shell-escape
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from latex_pipeline.config import Settings
from latex_pipeline.graph.models import ArtifactSpec
from latex_pipeline.graph.project import LatexProject

logger = logging.getLogger(__name__)

_TOP_LEVEL_KEYS = frozenset({"quiet", "aux_dir", "artifacts"})


class BuildFileError(ValueError):
    """The build file is missing or structurally invalid."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


@dataclass(slots=True)
class BuildFile:
    """Parsed build file contents, before any artifact is declared."""

    path: Path
    artifacts: list[ArtifactSpec] = field(default_factory=list)
    quiet: bool | None = None
    aux_dir: Path | None = None

    def apply_to(self, settings: Settings) -> Settings:
        """Return *settings* with the overrides from this build file applied."""

        updated = settings
        if self.quiet is not None:
            updated = replace(updated, quiet=self.quiet)
        if self.aux_dir is not None:
            updated = replace(updated, aux_dir=self.aux_dir)
        return updated


def load_build_file(path: Path) -> BuildFile:
    """Load and parse a build file.

    Raises
    ------
    BuildFileError
        If *path* does not exist or its YAML is structurally invalid.
    """
    if not path.exists():
        raise BuildFileError(path, "build file not found")

    try:
        with path.open(encoding="utf-8") as handle:
            raw = yaml.safe_load(handle)
    except yaml.YAMLError as error:
        raise BuildFileError(path, f"invalid YAML: {error}") from error

    if not isinstance(raw, dict):
        raise BuildFileError(path, "top level must be a mapping with an 'artifacts' key")
    unknown = sorted(str(key) for key in raw if key not in _TOP_LEVEL_KEYS)
    if unknown:
        raise BuildFileError(path, f"unknown top-level keys: {', '.join(unknown)}")

    entries = raw.get("artifacts")
    if not isinstance(entries, list):
        raise BuildFileError(path, "'artifacts' must be a list")

    quiet = raw.get("quiet")
    if quiet is not None and not isinstance(quiet, bool):
        raise BuildFileError(path, f"'quiet' must be a boolean, got {quiet!r}")
    aux_dir = raw.get("aux_dir")
    if aux_dir is not None and not isinstance(aux_dir, str):
        raise BuildFileError(path, f"'aux_dir' must be a string, got {aux_dir!r}")

    specs = [_parse_entry(path, index, entry) for index, entry in enumerate(entries)]
    return BuildFile(
        path=path,
        artifacts=specs,
        quiet=quiet,
        aux_dir=Path(aux_dir) if aux_dir else None,
    )


def declare_all(project: LatexProject, build_file: BuildFile) -> None:
    """Declare every artifact of *build_file* in file order."""

    for spec in build_file.artifacts:
        project.declare(spec)
    logger.info("Declared %d artifacts from %s", len(build_file.artifacts), build_file.path)


def _parse_entry(path: Path, index: int, entry: Any) -> ArtifactSpec:
    if isinstance(entry, str):
        entry = {"tex": entry}
    if not isinstance(entry, dict):
        raise BuildFileError(
            path,
            f"artifact #{index} must be a filename or a mapping, got {type(entry).__name__}",
        )
    try:
        return ArtifactSpec.from_mapping(entry)
    except (TypeError, ValueError) as error:
        raise BuildFileError(path, f"artifact #{index}: {error}") from error
