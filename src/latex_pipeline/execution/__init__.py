"""Execution of synthesized steps: compiler commands, subprocess runner, Prefect flow."""

from latex_pipeline.execution.commands import StepCommand, commands_for
from latex_pipeline.execution.flow import BuildRunResult, StepOutcome, build_flow, run_build
from latex_pipeline.execution.runner import StepExecutionError, StepRunner, StepRunResult

__all__ = [
    "BuildRunResult",
    "StepCommand",
    "StepExecutionError",
    "StepOutcome",
    "StepRunResult",
    "StepRunner",
    "build_flow",
    "commands_for",
    "run_build",
]
