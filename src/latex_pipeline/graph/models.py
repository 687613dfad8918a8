"""Domain models for artifacts and the steps synthesized from them."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePath
from typing import Any

OUTPUT_EXTENSION = ".pdf"


class StepKind(str, Enum):
    """Closed set of step kinds the synthesizer can create."""

    COMPILE = "compile"
    CLEAN = "clean"
    BIBLIOGRAPHY = "bibliography"
    IMAGE_CONVERT = "image_convert"
    COMPILE_ALL = "compile_all"
    CLEAN_ALL = "clean_all"

    @property
    def is_aggregate(self) -> bool:
        return self in (StepKind.COMPILE_ALL, StepKind.CLEAN_ALL)


_SPEC_KEY_ALIASES = {
    "tex": "source_file",
    "pdf": "output_file",
    "bib": "bibliography_file",
    "img": "image_sources",
    "aux": "auxiliary_files",
    "depends_on": "depends_on",
    "dependsOn": "depends_on",
    "extra_args": "extra_args",
    "extraArgs": "extra_args",
}


@dataclass(slots=True, frozen=True)
class ArtifactSpec:
    """Declaration input for one artifact, before any path is resolved."""

    source_file: str
    output_file: str | None = None
    bibliography_file: str | None = None
    image_sources: tuple[str, ...] = ()
    auxiliary_files: tuple[str, ...] = ()
    depends_on: tuple[str, ...] = ()
    extra_args: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.source_file, str) or not self.source_file.strip():
            raise ValueError("ArtifactSpec.source_file must be a non-empty string")
        object.__setattr__(self, "source_file", self.source_file.strip())
        for attr, key in (("output_file", "pdf"), ("bibliography_file", "bib")):
            value = getattr(self, attr)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"'{key}' must be a file name, got {type(value).__name__}")
        if not isinstance(self.extra_args, str):
            raise ValueError(f"'extra_args' must be a string, got {type(self.extra_args).__name__}")
        object.__setattr__(self, "image_sources", _as_str_tuple(self.image_sources, "img"))
        object.__setattr__(self, "auxiliary_files", _as_str_tuple(self.auxiliary_files, "aux"))
        object.__setattr__(self, "depends_on", _as_str_tuple(self.depends_on, "depends_on"))

    @property
    def name(self) -> str:
        return artifact_name_for(self.source_file)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ArtifactSpec:
        """Build a spec from the short keys used in build files (``tex``, ``bib`` ...)."""

        unknown = sorted(str(key) for key in raw if key not in _SPEC_KEY_ALIASES)
        if unknown:
            known = ", ".join(sorted(_SPEC_KEY_ALIASES))
            raise ValueError(f"Unknown artifact keys: {', '.join(unknown)} (known: {known})")
        values: dict[str, Any] = {}
        for key, value in raw.items():
            if value is None:
                continue
            values[_SPEC_KEY_ALIASES[key]] = value
        if "source_file" not in values:
            raise ValueError("Artifact declaration requires a 'tex' source file")
        if "extra_args" in values:
            values["extra_args"] = str(values["extra_args"])
        return cls(**values)


@dataclass(slots=True, frozen=True, eq=False)
class Artifact:
    """A declared compilation unit with resolved paths and dependency references.

    Artifacts compare by identity; ``depends_on`` refers to the dependency
    objects current at declaration time.
    """

    name: str
    source_path: Path
    output_path: Path
    bibliography_path: Path | None = None
    image_sources: frozenset[Path] | None = None
    auxiliary_inputs: frozenset[Path] | None = None
    depends_on: tuple[Artifact, ...] = field(default=(), repr=False)
    extra_args: str = ""

    @property
    def needs_bibliography(self) -> bool:
        return self.bibliography_path is not None

    @property
    def needs_image_conversion(self) -> bool:
        return self.image_sources is not None

    @property
    def jobname(self) -> str:
        return self.source_path.stem

    @property
    def dependency_names(self) -> tuple[str, ...]:
        return tuple(dep.name for dep in self.depends_on)


@dataclass(slots=True, eq=False)
class Step:
    """One unit of orchestrated work.

    ``predecessors`` holds step names; the task registry resolves them to the
    step currently registered under each name.
    """

    name: str
    kind: StepKind
    artifact: Artifact | None = None
    predecessors: set[str] = field(default_factory=set)

    def __repr__(self) -> str:
        predecessors = sorted(self.predecessors)
        return f"Step(name={self.name!r}, kind={self.kind.value}, predecessors={predecessors})"


def artifact_name_for(source_file: str) -> str:
    """Return the artifact name: the source file with its last extension stripped."""

    path = PurePath(source_file)
    if not path.suffix:
        return source_file
    return str(path.with_suffix("")).replace("\\", "/")


def step_name_for(kind: StepKind, artifact_name: str | None = None) -> str:
    if kind.is_aggregate:
        return kind.value
    if not artifact_name:
        raise ValueError(f"Step kind {kind.value} requires an artifact name")
    return f"{kind.value}.{artifact_name}"


def _as_str_tuple(value: str | Iterable[str] | None, key: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = (value,)
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"'{key}' entries must be strings, got {type(item).__name__}")
        stripped = item.strip()
        if stripped:
            items.append(stripped)
    return tuple(items)
