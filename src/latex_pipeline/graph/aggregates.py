"""Global compile-all / clean-all steps."""

from __future__ import annotations

from latex_pipeline.graph.models import Step, StepKind, step_name_for
from latex_pipeline.graph.tasks import TaskRegistry

_AGGREGATE_FOR = {
    StepKind.COMPILE: StepKind.COMPILE_ALL,
    StepKind.CLEAN: StepKind.CLEAN_ALL,
}


class AggregateWiring:
    """Collects every per-artifact compile and clean step under one entry point each.

    Aggregates are created on first use and stay the same objects for the
    lifetime of the task registry.
    """

    def __init__(self, tasks: TaskRegistry) -> None:
        self._tasks = tasks
        self._aggregates: dict[StepKind, Step] = {}

    def compile_all(self) -> Step:
        return self._aggregate(StepKind.COMPILE_ALL)

    def clean_all(self) -> Step:
        return self._aggregate(StepKind.CLEAN_ALL)

    def attach(self, step: Step) -> None:
        kind = _AGGREGATE_FOR.get(step.kind)
        if kind is None:
            raise ValueError(
                f"Only compile and clean steps can be aggregated, got {step.kind.value}",
            )
        self._tasks.add_predecessor(self._aggregate(kind), step)

    def _aggregate(self, kind: StepKind) -> Step:
        aggregate = self._aggregates.get(kind)
        if aggregate is None:
            name = step_name_for(kind)
            aggregate = self._tasks.find(name) or self._tasks.register(name, kind)
            self._aggregates[kind] = aggregate
        return aggregate
