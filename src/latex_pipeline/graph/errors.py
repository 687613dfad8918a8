"""Errors raised while building the artifact graph."""

from __future__ import annotations


class ArtifactGraphError(RuntimeError):
    """Base error for artifact declaration and graph lookups."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class UnknownDependency(ArtifactGraphError):
    """A declared dependency does not resolve to a previously declared artifact."""

    def __init__(self, name: str, dependency: str) -> None:
        super().__init__(
            name,
            f"Artifact {name!r} depends on {dependency!r}, which is not declared yet. "
            "Declare dependencies before their dependents.",
        )
        self.dependency = dependency


class UnknownArtifact(ArtifactGraphError):
    """Lookup of an artifact name that was never declared."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Unknown artifact: {name!r}")


class CyclicDependency(ArtifactGraphError):
    """Declaration would make an artifact depend on itself."""

    def __init__(self, name: str, path: tuple[str, ...] = ()) -> None:
        chain = " -> ".join(path or (name, name))
        super().__init__(name, f"Cyclic dependency for artifact {name!r}: {chain}")
        self.path = path or (name, name)


class UnknownStep(LookupError):
    """Lookup of a step name that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown step: {name!r}")
        self.name = name
