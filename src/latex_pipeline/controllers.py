"""Controllers for build CLI commands."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

from latex_pipeline.build_file import declare_all, load_build_file
from latex_pipeline.config import Settings
from latex_pipeline.execution.flow import BuildRunResult, run_build
from latex_pipeline.graph.models import Artifact
from latex_pipeline.graph.project import LatexProject


@dataclass(slots=True)
class ProjectOptions:
    """Where to find the build file and which directory its paths are relative to."""

    build_file: Path | None = None
    project_root: Path | None = None


@dataclass(slots=True)
class BuildCommand:
    """CLI input for build and clean runs."""

    project: ProjectOptions
    names: tuple[str, ...] = ()
    max_parallel_steps: int | None = None


@dataclass(slots=True)
class TasksCommand:
    """CLI input for task graph listing."""

    project: ProjectOptions


@dataclass(slots=True)
class OrderCommand:
    """CLI input for dependency order listing."""

    project: ProjectOptions
    name: str


@dataclass(slots=True)
class CommandResult:
    """Lines to print and overall outcome."""

    lines: list[str] = field(default_factory=list)
    success: bool = True


class BuildCliController:
    """Coordinates project loading and build command execution."""

    def build(self, command: BuildCommand) -> CommandResult:
        settings, project = load_project(command.project, command.max_parallel_steps)
        targets = [project.compile_step(name).name for name in command.names] or [
            project.compile_all().name,
        ]
        return _render_run(run_build(project, settings, targets))

    def clean(self, command: BuildCommand) -> CommandResult:
        settings, project = load_project(command.project, command.max_parallel_steps)
        targets = [project.clean_step(name).name for name in command.names] or [
            project.clean_all().name,
        ]
        return _render_run(run_build(project, settings, targets))

    def tasks(self, command: TasksCommand) -> CommandResult:
        _, project = load_project(command.project)
        lines: list[str] = []
        for step in project.tasks.steps():
            lines.append(f"{step.name} [{step.kind.value}]")
            lines.extend(
                f"  <- {predecessor.name}" for predecessor in project.tasks.predecessors(step)
            )
        return CommandResult(lines=lines)

    def order(self, command: OrderCommand) -> CommandResult:
        settings, project = load_project(command.project)
        lines: list[str] = []

        def _describe(artifact: Artifact) -> None:
            location = _display_path(artifact.source_path, settings)
            lines.append(f"{len(lines) + 1}. {artifact.name} ({location})")

        project.traverse(command.name, _describe)
        return CommandResult(lines=lines)


def load_project(
    options: ProjectOptions,
    max_parallel_steps: int | None = None,
) -> tuple[Settings, LatexProject]:
    """Read settings and the build file, then declare every artifact it lists."""

    project_root = options.project_root
    if project_root is None and options.build_file is not None:
        project_root = options.build_file.resolve().parent
    settings = Settings.from_env(project_root=project_root)
    if options.build_file is not None:
        settings = replace(settings, build_file=options.build_file.resolve())
    if max_parallel_steps is not None:
        settings = replace(
            settings,
            execution=replace(settings.execution, max_parallel_steps=max_parallel_steps),
        )

    build_file = load_build_file(settings.resolved_build_file)
    settings = build_file.apply_to(settings)
    settings.validate()

    project = LatexProject.from_settings(settings)
    declare_all(project, build_file)
    return settings, project


def _render_run(run: BuildRunResult) -> CommandResult:
    lines: list[str] = []
    for outcome in run.steps:
        line = f"{outcome.status:<9} {outcome.step_name}"
        if outcome.elapsed_seconds is not None:
            line += f" ({outcome.elapsed_seconds:.1f}s)"
        if outcome.error:
            line += f": {outcome.error}"
        lines.append(line)

    skipped = sum(1 for outcome in run.steps if outcome.status == "skipped")
    lines.append(
        f"Build {'completed' if run.success else 'failed'}: "
        f"targets={','.join(run.targets)} steps={len(run.steps)} "
        f"failed={len(run.failed)} skipped={skipped} elapsed={run.elapsed_seconds:.1f}s",
    )
    return CommandResult(lines=lines, success=run.success)


def _display_path(path: Path, settings: Settings) -> str:
    try:
        return str(path.relative_to(settings.project_root.resolve()))
    except ValueError:
        return str(path)
