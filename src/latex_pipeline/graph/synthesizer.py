"""Per-artifact step synthesis and edge wiring."""

from __future__ import annotations

import logging

from latex_pipeline.graph.aggregates import AggregateWiring
from latex_pipeline.graph.errors import CyclicDependency
from latex_pipeline.graph.models import Artifact, Step, StepKind, step_name_for
from latex_pipeline.graph.tasks import TaskRegistry

logger = logging.getLogger(__name__)


class StepSynthesizer:
    """Derive the steps of one artifact and wire them into the task graph.

    Given an artifact named ``thesis``:

    - ``compile.thesis`` always exists and depends on ``compile.<dep>`` for
      every declared dependency;
    - ``clean.thesis`` always exists and has no predecessors;
    - ``bibliography.thesis`` exists only with a bibliography file and runs
      before ``compile.thesis``;
    - ``image_convert.thesis`` exists only with image sources and runs before
      ``compile.thesis``.

    Compile and clean steps are attached to the aggregates.
    """

    def __init__(self, tasks: TaskRegistry, aggregates: AggregateWiring) -> None:
        self._tasks = tasks
        self._aggregates = aggregates

    def synthesize(self, artifact: Artifact) -> set[Step]:
        if artifact.name in artifact.dependency_names:
            raise CyclicDependency(artifact.name)

        compile_step = self._add(StepKind.COMPILE, artifact)
        for dependency in artifact.depends_on:
            dep_compile = self._tasks.get(step_name_for(StepKind.COMPILE, dependency.name))
            self._tasks.add_predecessor(compile_step, dep_compile)
        self._aggregates.attach(compile_step)

        clean_step = self._add(StepKind.CLEAN, artifact)
        self._aggregates.attach(clean_step)

        steps = {compile_step, clean_step}
        if artifact.needs_bibliography:
            bibliography_step = self._add(StepKind.BIBLIOGRAPHY, artifact)
            self._tasks.add_predecessor(compile_step, bibliography_step)
            steps.add(bibliography_step)
        if artifact.needs_image_conversion:
            image_step = self._add(StepKind.IMAGE_CONVERT, artifact)
            self._tasks.add_predecessor(compile_step, image_step)
            steps.add(image_step)
        return steps

    def _add(self, kind: StepKind, artifact: Artifact) -> Step:
        name = step_name_for(kind, artifact.name)
        logger.info("Dynamically adding task '%s'", name)
        return self._tasks.register(name, kind, artifact)
