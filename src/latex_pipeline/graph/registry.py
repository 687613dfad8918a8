"""In-memory store of declared artifacts."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path, PurePath

from latex_pipeline.files import FileResolver
from latex_pipeline.graph.errors import CyclicDependency, UnknownArtifact, UnknownDependency
from latex_pipeline.graph.models import (
    OUTPUT_EXTENSION,
    Artifact,
    ArtifactSpec,
    artifact_name_for,
)

logger = logging.getLogger(__name__)


class ArtifactRegistry:
    """Validates declarations and stores artifacts by name in declaration order.

    Dependencies must already be declared when a dependent is declared, so the
    registry can only ever grow acyclic chains. Redeclaring a name replaces the
    stored artifact in place; it is rejected if its new dependencies lead back
    to the name itself.
    """

    def __init__(self, resolver: FileResolver) -> None:
        self._resolver = resolver
        self._artifacts: dict[str, Artifact] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._artifacts

    def __len__(self) -> int:
        return len(self._artifacts)

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self.all())

    def declare(self, spec: ArtifactSpec) -> Artifact:
        """Resolve *spec* into an artifact and store it, overwriting any previous one."""

        name = spec.name
        suffix = PurePath(spec.source_file).suffix
        dependencies = self._resolve_dependencies(name, suffix, spec.depends_on)
        if name in self._artifacts:
            # Only a redeclaration can close a cycle.
            cycle = self._cycle_path(name, dependencies)
            if cycle is not None:
                raise CyclicDependency(name, cycle)

        artifact = Artifact(
            name=name,
            source_path=self._resolver.resolve(spec.source_file),
            output_path=self._resolver.resolve(spec.output_file or f"{name}{OUTPUT_EXTENSION}"),
            bibliography_path=(
                self._resolver.resolve(spec.bibliography_file) if spec.bibliography_file else None
            ),
            image_sources=self._find_images(name, spec.image_sources),
            auxiliary_inputs=(
                frozenset(self._resolver.resolve(path) for path in spec.auxiliary_files)
                if spec.auxiliary_files
                else None
            ),
            depends_on=dependencies,
            extra_args=spec.extra_args,
        )

        if name in self._artifacts:
            logger.info("Redeclaring artifact %s, replacing previous definition", name)
        self._artifacts[name] = artifact
        logger.info("Declared artifact %s from %s", name, spec.source_file)
        return artifact

    def get(self, name: str) -> Artifact:
        try:
            return self._artifacts[name]
        except KeyError as error:
            raise UnknownArtifact(name) from error

    def all(self) -> tuple[Artifact, ...]:
        return tuple(self._artifacts.values())

    def names(self) -> tuple[str, ...]:
        return tuple(self._artifacts)

    def dependencies_of(self, artifact: Artifact) -> tuple[Artifact, ...]:
        """Return the current declaration of each dependency of *artifact*."""

        return tuple(self.get(dep.name) for dep in artifact.depends_on)

    def _resolve_dependencies(
        self,
        name: str,
        source_suffix: str,
        dep_names: tuple[str, ...],
    ) -> tuple[Artifact, ...]:
        resolved: list[Artifact] = []
        seen: set[str] = set()
        for dep_name in dep_names:
            key = self._lookup_key(name, source_suffix, dep_name)
            if key in seen:
                continue
            seen.add(key)
            resolved.append(self._artifacts[key])
        return tuple(resolved)

    def _lookup_key(self, name: str, source_suffix: str, dep_name: str) -> str:
        # Dependencies may be given by artifact name or by source filename.
        candidates = [dep_name]
        if source_suffix and PurePath(dep_name).suffix == source_suffix:
            candidates.append(artifact_name_for(dep_name))

        for candidate in candidates:
            if candidate == name:
                raise CyclicDependency(name)
            if candidate in self._artifacts:
                return candidate
        raise UnknownDependency(name, dep_name)

    def _cycle_path(
        self,
        name: str,
        dependencies: tuple[Artifact, ...],
    ) -> tuple[str, ...] | None:
        parent: dict[str, str] = {}
        stack = [(dependency.name, name) for dependency in reversed(dependencies)]
        while stack:
            current, via = stack.pop()
            if current == name:
                trail = [name, via]
                while trail[-1] != name:
                    trail.append(parent[trail[-1]])
                return tuple(reversed(trail))
            if current in parent:
                continue
            parent[current] = via
            stored = self._artifacts.get(current)
            if stored is not None:
                stack.extend((dep_name, current) for dep_name in reversed(stored.dependency_names))
        return None

    def _find_images(self, name: str, sources: tuple[str, ...]) -> frozenset[Path] | None:
        if not sources:
            return None
        found: set[Path] = set()
        for source in sources:
            found |= self._resolver.find_files(source)
        if not found:
            logger.warning("Artifact %s declares image sources but none were found", name)
        return frozenset(found)
