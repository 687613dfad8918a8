"""Task registration capability and graph ordering helpers."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Protocol

from latex_pipeline.graph.errors import CyclicDependency, UnknownStep
from latex_pipeline.graph.models import Artifact, Step, StepKind

logger = logging.getLogger(__name__)


class TaskRegistry(Protocol):
    """Unique-name step registration with "depends on" edges."""

    def register(self, name: str, kind: StepKind, artifact: Artifact | None = None) -> Step:
        """Create a step under *name*, replacing any step already registered there."""

    def add_predecessor(self, step: Step, predecessor: Step) -> None:
        """Declare that *predecessor* must complete before *step*."""

    def get(self, name: str) -> Step:
        """Return the step registered under *name* or raise :class:`UnknownStep`."""

    def find(self, name: str) -> Step | None:
        """Return the step registered under *name*, if any."""

    def predecessors(self, step: Step) -> tuple[Step, ...]:
        """Return the steps currently registered under the predecessor names of *step*."""

    def steps(self) -> tuple[Step, ...]:
        """Return all registered steps in registration order."""


class InMemoryTaskRegistry:
    """Default :class:`TaskRegistry` keeping steps in a name-keyed dict.

    Edges are stored as step names, so an edge pointing at a replaced step
    follows the replacement.
    """

    def __init__(self) -> None:
        self._steps: dict[str, Step] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._steps

    def __len__(self) -> int:
        return len(self._steps)

    def register(self, name: str, kind: StepKind, artifact: Artifact | None = None) -> Step:
        if name in self._steps:
            logger.debug("Replacing step %s", name)
        step = Step(name=name, kind=kind, artifact=artifact)
        self._steps[name] = step
        return step

    def add_predecessor(self, step: Step, predecessor: Step) -> None:
        if step.name == predecessor.name:
            raise CyclicDependency(step.name, (step.name, step.name))
        current = self._steps.get(step.name)
        if current is not step:
            raise UnknownStep(step.name)
        if predecessor.name not in self._steps:
            raise UnknownStep(predecessor.name)
        step.predecessors.add(predecessor.name)

    def get(self, name: str) -> Step:
        step = self._steps.get(name)
        if step is None:
            raise UnknownStep(name)
        return step

    def find(self, name: str) -> Step | None:
        return self._steps.get(name)

    def predecessors(self, step: Step) -> tuple[Step, ...]:
        return tuple(self.get(name) for name in sorted(step.predecessors))

    def steps(self) -> tuple[Step, ...]:
        return tuple(self._steps.values())


def execution_order(registry: TaskRegistry, targets: Iterable[str]) -> list[Step]:
    """Return the targets and all their transitive predecessors, predecessors first.

    Every step appears once. Raises :class:`CyclicDependency` if the edges
    reachable from the targets contain a cycle.
    """

    ordered: list[Step] = []
    done: set[str] = set()

    for target in targets:
        if target in done:
            continue
        path: list[str] = [target]
        on_path: set[str] = {target}
        stack: list[tuple[Step, Iterator[Step]]] = []
        root = registry.get(target)
        stack.append((root, iter(registry.predecessors(root))))
        while stack:
            step, pending = stack[-1]
            predecessor = next(pending, None)
            if predecessor is None:
                stack.pop()
                on_path.discard(path.pop())
                done.add(step.name)
                ordered.append(step)
                continue
            if predecessor.name in done:
                continue
            if predecessor.name in on_path:
                cycle = (*path[path.index(predecessor.name) :], predecessor.name)
                raise CyclicDependency(predecessor.name, cycle)
            path.append(predecessor.name)
            on_path.add(predecessor.name)
            stack.append((predecessor, iter(registry.predecessors(predecessor))))
    return ordered
