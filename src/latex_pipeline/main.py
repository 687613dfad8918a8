"""CLI entrypoint for latex-pipeline."""

import logging
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from latex_pipeline import __version__
from latex_pipeline.build_file import BuildFileError
from latex_pipeline.controllers import (
    BuildCliController,
    BuildCommand,
    CommandResult,
    OrderCommand,
    ProjectOptions,
    TasksCommand,
)
from latex_pipeline.graph.errors import ArtifactGraphError, UnknownStep

click.rich_click.USE_MARKDOWN = True
BUILD_CONTROLLER = BuildCliController()

_USER_ERRORS = (ArtifactGraphError, BuildFileError, UnknownStep, ValueError)


@click.group()
@click.version_option(version=__version__, prog_name="latex-pipeline")
@click.option(
    "--build-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Build file listing the artifacts. Defaults to LATEX_PIPELINE_BUILD_FILE or latex.yml.",
)
@click.option(
    "--project-root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory that relative paths resolve against. Defaults to the build file directory.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log progress at INFO level.")
@click.pass_context
def latex_pipeline(
    ctx: click.Context,
    build_file: Path | None,
    project_root: Path | None,
    verbose: bool,
) -> None:
    """Build LaTeX documents declared in a build file, dependencies first."""

    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = ProjectOptions(build_file=build_file, project_root=project_root)


@latex_pipeline.command("build")
@click.argument("names", nargs=-1)
@click.option(
    "--max-parallel",
    type=click.IntRange(min=1, max=64),
    default=None,
    help="Maximum number of steps running at once. Defaults to LATEX_PIPELINE_MAX_PARALLEL_STEPS.",
)
@click.pass_obj
def build(options: ProjectOptions, names: tuple[str, ...], max_parallel: int | None) -> None:
    """Compile the named artifacts (all artifacts when none are given)."""

    _emit_result(
        lambda: BUILD_CONTROLLER.build(
            BuildCommand(project=options, names=names, max_parallel_steps=max_parallel),
        ),
        failure_message="Build failed.",
    )


@latex_pipeline.command("clean")
@click.argument("names", nargs=-1)
@click.pass_obj
def clean(options: ProjectOptions, names: tuple[str, ...]) -> None:
    """Remove outputs and auxiliary files of the named artifacts (all when none are given)."""

    _emit_result(
        lambda: BUILD_CONTROLLER.clean(BuildCommand(project=options, names=names)),
        failure_message="Clean failed.",
    )


@latex_pipeline.command("tasks")
@click.pass_obj
def tasks(options: ProjectOptions) -> None:
    """List synthesized steps and the steps each one waits for."""

    _emit_result(lambda: BUILD_CONTROLLER.tasks(TasksCommand(project=options)))


@latex_pipeline.command("order")
@click.argument("name")
@click.pass_obj
def order(options: ProjectOptions, name: str) -> None:
    """Print NAME and its transitive dependencies, dependencies first."""

    _emit_result(lambda: BUILD_CONTROLLER.order(OrderCommand(project=options, name=name)))


def _emit_result(
    action: Callable[[], CommandResult],
    failure_message: str = "Command failed.",
) -> None:
    try:
        result = action()
    except _USER_ERRORS as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException(failure_message)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    latex_pipeline()
