"""Dependency-ordered walks over declared artifacts."""

from __future__ import annotations

from collections.abc import Callable, Iterator

from latex_pipeline.graph.models import Artifact
from latex_pipeline.graph.registry import ArtifactRegistry


def traverse(
    registry: ArtifactRegistry,
    name: str,
    operation: Callable[[Artifact], object],
) -> list[Artifact]:
    """Apply *operation* to every transitive dependency of *name*, then to *name*.

    Dependencies are processed before their dependents and each artifact at
    most once, even when reachable through several paths. An exception raised
    by *operation* stops the walk and propagates unchanged. Returns the
    artifacts in the order they were processed.
    """

    root = registry.get(name)
    visited: set[str] = {root.name}
    applied: list[Artifact] = []
    stack: list[tuple[Artifact, Iterator[Artifact]]] = [
        (root, iter(registry.dependencies_of(root))),
    ]
    while stack:
        artifact, pending = stack[-1]
        dependency = next(pending, None)
        if dependency is None:
            stack.pop()
            operation(artifact)
            applied.append(artifact)
        elif dependency.name not in visited:
            visited.add(dependency.name)
            stack.append((dependency, iter(registry.dependencies_of(dependency))))
    return applied
