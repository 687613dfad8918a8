"""Subprocess-based execution of single steps."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path

from latex_pipeline.config import Settings
from latex_pipeline.execution.commands import (
    StepCommand,
    artifact_aux_dir,
    aux_pdf_path,
    commands_for,
)
from latex_pipeline.graph.models import Artifact, Step, StepKind

logger = logging.getLogger(__name__)


class StepExecutionError(RuntimeError):
    """Step failure."""

    def __init__(
        self,
        step: str,
        message: str,
        *,
        exit_code: int | None = None,
        log_path: Path | None = None,
    ) -> None:
        super().__init__(f"Step {step} failed: {message}")
        self.step = step
        self.exit_code = exit_code
        self.log_path = log_path


@dataclass(slots=True)
class StepRunResult:
    """Outcome of one executed step."""

    step_name: str
    kind: StepKind
    commands: list[str] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)
    elapsed_seconds: float = 0.0


class StepRunner:
    """Run the commands of a step, one after another, each with a timeout."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def run(self, step: Step) -> StepRunResult:
        result = StepRunResult(step_name=step.name, kind=step.kind)
        start = time.monotonic()
        if step.kind is StepKind.CLEAN:
            result.removed = self._clean(step)
        elif not step.kind.is_aggregate:
            source = _owner(step).source_path
            if step.kind in (StepKind.COMPILE, StepKind.BIBLIOGRAPHY) and not source.is_file():
                raise StepExecutionError(step.name, f"source file not found: {source}")
            for index, command in enumerate(commands_for(step, self.settings), start=1):
                self._run_command(step, command, index)
                result.commands.append(command.label)
            if step.kind is StepKind.COMPILE:
                self._publish_output(step)
        result.elapsed_seconds = time.monotonic() - start
        logger.info("Step %s finished in %.1fs", step.name, result.elapsed_seconds)
        return result

    def _clean(self, step: Step) -> list[Path]:
        artifact = _owner(step)
        removed: list[Path] = []
        if artifact.output_path.exists():
            artifact.output_path.unlink()
            removed.append(artifact.output_path)
        aux_dir = artifact_aux_dir(self.settings, artifact)
        if aux_dir.exists():
            shutil.rmtree(aux_dir)
            removed.append(aux_dir)
        return removed

    def _publish_output(self, step: Step) -> None:
        artifact = _owner(step)
        produced = aux_pdf_path(self.settings, artifact)
        if not produced.exists():
            raise StepExecutionError(step.name, f"compiler produced no output at {produced}")
        artifact.output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(produced, artifact.output_path)
        logger.info("Wrote %s", artifact.output_path)

    def _run_command(self, step: Step, command: StepCommand, index: int) -> None:
        artifact = _owner(step)
        log_dir = artifact_aux_dir(self.settings, artifact) / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        stdout_path = log_dir / f"{step.kind.value}.{index}.stdout.log"
        stderr_path = log_dir / f"{step.kind.value}.{index}.stderr.log"

        env = os.environ.copy()
        env.update(command.env)
        logger.info("[%s] %s", step.name, command.label)
        logger.debug("[%s] running %s in %s", step.name, command.argv, command.cwd)

        try:
            with (
                stdout_path.open("w", encoding="utf-8") as stdout_handle,
                stderr_path.open("w", encoding="utf-8") as stderr_handle,
            ):
                exit_code = _run_subprocess(
                    argv=command.argv,
                    cwd=command.cwd,
                    env=env,
                    timeout_seconds=self.settings.execution.step_timeout_seconds,
                    stdout_handle=stdout_handle,
                    stderr_handle=stderr_handle,
                )
        except FileNotFoundError as error:
            raise StepExecutionError(
                step.name,
                f"command not found: {command.argv[0]}",
            ) from error
        except OSError as error:
            raise StepExecutionError(
                step.name,
                f"failed to start {command.label}: {error}",
            ) from error

        if exit_code is None:
            raise StepExecutionError(
                step.name,
                f"{command.label} timed out after {self.settings.execution.step_timeout_seconds}s",
                log_path=stdout_path,
            )
        if exit_code in command.tolerated_exit_codes:
            logger.warning(
                "[%s] %s exited with %d, see %s",
                step.name,
                command.label,
                exit_code,
                stdout_path,
            )
        elif exit_code != 0:
            raise StepExecutionError(
                step.name,
                f"{command.label} exited with code {exit_code}, see {stdout_path}",
                exit_code=exit_code,
                log_path=stdout_path,
            )


def _owner(step: Step) -> Artifact:
    if step.artifact is None:
        raise StepExecutionError(step.name, "step has no owner artifact")
    return step.artifact


def _run_subprocess(  # noqa: PLR0913
    *,
    argv: list[str],
    cwd: Path,
    env: dict[str, str],
    timeout_seconds: int,
    stdout_handle,
    stderr_handle,
) -> int | None:
    """Run *argv* and return its exit code, or ``None`` if it timed out."""
    process = subprocess.Popen(  # noqa: S603
        argv,
        cwd=cwd,
        env=env,
        stdin=subprocess.DEVNULL,
        stdout=stdout_handle,
        stderr=stderr_handle,
        text=True,
    )
    try:
        return process.wait(timeout=timeout_seconds)
    except subprocess.TimeoutExpired:
        _terminate_process(process)
        return None


def _terminate_process(process: subprocess.Popen[str]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=2)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=2)
