"""Prefect flow executing a synthesized step graph.

Every step becomes one Prefect task run that waits for the task runs of its
predecessors, so independent subgraphs (two unrelated documents, or the
bibliography and image steps of one document) run concurrently on the thread
pool while every declared edge is honored.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from prefect import flow, task
from prefect.cache_policies import NO_CACHE
from prefect.futures import PrefectFuture
from prefect.task_runners import ThreadPoolTaskRunner

from latex_pipeline.config import Settings
from latex_pipeline.execution.runner import StepRunner, StepRunResult
from latex_pipeline.graph.project import LatexProject
from latex_pipeline.graph.tasks import execution_order

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StepOutcome:
    """Final state of one step in a build run."""

    step_name: str
    status: str  # "completed" | "failed" | "skipped"
    error: str | None = None
    elapsed_seconds: float | None = None


@dataclass(slots=True)
class BuildRunResult:
    """Result of one build flow run."""

    targets: tuple[str, ...]
    steps: list[StepOutcome] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return all(outcome.status == "completed" for outcome in self.steps)

    @property
    def failed(self) -> list[StepOutcome]:
        return [outcome for outcome in self.steps if outcome.status == "failed"]


@task(task_run_name="{step_name}", cache_policy=NO_CACHE)
def run_step(*, step_name: str, project: LatexProject, runner: StepRunner) -> StepRunResult:
    """Execute one step; raises ``StepExecutionError`` on failure."""
    return runner.run(project.tasks.get(step_name))


@flow(name="latex_build", validate_parameters=False)
def build_flow(
    *,
    project: LatexProject,
    targets: Sequence[str],
    runner: StepRunner,
) -> BuildRunResult:
    """Run *targets* and everything they depend on.

    A failed step leaves all of its dependents unrun; unrelated branches keep
    going. Step failures are reported in the result instead of raised.
    """
    start = time.monotonic()
    result = BuildRunResult(targets=tuple(targets))
    order = execution_order(project.tasks, targets)
    logger.info("Build of %s runs %d steps", ", ".join(targets), len(order))

    futures: dict[str, PrefectFuture] = {}
    for step in order:
        upstream = [futures[predecessor.name] for predecessor in project.tasks.predecessors(step)]
        futures[step.name] = run_step.submit(
            step_name=step.name,
            project=project,
            runner=runner,
            wait_for=upstream,
        )

    for step in order:
        result.steps.append(_outcome(step.name, futures[step.name]))

    result.elapsed_seconds = time.monotonic() - start
    for outcome in result.failed:
        logger.error("Step %s failed: %s", outcome.step_name, outcome.error)
    return result


def run_build(
    project: LatexProject,
    settings: Settings,
    targets: Sequence[str],
    runner: StepRunner | None = None,
) -> BuildRunResult:
    """Run :func:`build_flow` with at most ``max_parallel_steps`` concurrent steps."""

    configured = build_flow.with_options(
        task_runner=ThreadPoolTaskRunner(max_workers=settings.execution.max_parallel_steps),
    )
    return configured(
        project=project,
        targets=list(targets),
        runner=runner or StepRunner(settings),
    )


def _outcome(step_name: str, future: PrefectFuture) -> StepOutcome:
    future.wait()
    state = future.state
    if state.is_completed():
        run_result = future.result()
        return StepOutcome(
            step_name=step_name,
            status="completed",
            elapsed_seconds=getattr(run_result, "elapsed_seconds", None),
        )
    if state.is_failed() or state.is_crashed():
        return StepOutcome(step_name=step_name, status="failed", error=state.message)
    return StepOutcome(step_name=step_name, status="skipped", error=state.message)
