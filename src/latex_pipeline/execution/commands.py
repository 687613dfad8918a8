"""Build the external commands each step kind runs."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from latex_pipeline.config import Settings
from latex_pipeline.graph.models import Artifact, Step, StepKind

# bibtex exits with 1 when it only printed warnings (for example "I found no \citation commands").
BIBTEX_WARNING_EXIT_CODE = 1


@dataclass(slots=True)
class StepCommand:
    """One external process invocation belonging to a step."""

    label: str
    argv: list[str]
    cwd: Path
    env: dict[str, str] = field(default_factory=dict)
    tolerated_exit_codes: tuple[int, ...] = ()


def artifact_aux_dir(settings: Settings, artifact: Artifact) -> Path:
    """Directory holding the aux/log/bbl/pdf files of one artifact."""

    return settings.resolved_aux_dir / artifact.name


def aux_pdf_path(settings: Settings, artifact: Artifact) -> Path:
    return artifact_aux_dir(settings, artifact) / f"{artifact.jobname}.pdf"


def commands_for(step: Step, settings: Settings) -> list[StepCommand]:
    """Return the commands *step* runs, in order. Clean and aggregate steps run none."""

    if step.kind.is_aggregate or step.kind is StepKind.CLEAN:
        return []
    artifact = step.artifact
    if artifact is None:
        raise ValueError(f"Step {step.name} has no owner artifact")
    if step.kind is StepKind.COMPILE:
        return compile_commands(artifact, settings)
    if step.kind is StepKind.BIBLIOGRAPHY:
        return bibliography_commands(artifact, settings)
    if step.kind is StepKind.IMAGE_CONVERT:
        return image_convert_commands(artifact, settings)
    raise ValueError(f"Unsupported step kind: {step.kind.value}")


def compile_commands(artifact: Artifact, settings: Settings) -> list[StepCommand]:
    passes = settings.execution.compile_passes
    if artifact.needs_bibliography:
        # Resolved references only appear after a second pass over the .bbl file.
        passes = max(passes, 2)
    return [
        pdflatex_command(artifact, settings, label=f"pdflatex ({index}/{passes})")
        for index in range(1, passes + 1)
    ]


def bibliography_commands(artifact: Artifact, settings: Settings) -> list[StepCommand]:
    if artifact.bibliography_path is None:
        raise ValueError(f"Artifact {artifact.name} has no bibliography file")

    search_path = os.pathsep.join(
        [str(artifact.bibliography_path.parent), str(artifact.source_path.parent), ""],
    )
    return [
        pdflatex_command(artifact, settings, label="pdflatex (draft)", draft=True),
        StepCommand(
            label="bibtex",
            argv=[*settings.tools.argv("bibtex"), artifact.jobname],
            cwd=artifact_aux_dir(settings, artifact),
            env={"BIBINPUTS": search_path, "BSTINPUTS": search_path},
            tolerated_exit_codes=(BIBTEX_WARNING_EXIT_CODE,),
        ),
    ]


def image_convert_commands(artifact: Artifact, settings: Settings) -> list[StepCommand]:
    commands: list[StepCommand] = []
    for image in sorted(artifact.image_sources or ()):
        if image.suffix.lower() == ".pdf":
            continue
        commands.append(
            StepCommand(
                label=f"inkscape {image.name}",
                argv=[
                    *settings.tools.argv("inkscape"),
                    str(image),
                    "--export-type=pdf",
                    f"--export-filename={image.with_suffix('.pdf')}",
                ],
                cwd=image.parent,
            ),
        )
    return commands


def pdflatex_command(
    artifact: Artifact,
    settings: Settings,
    *,
    label: str = "pdflatex",
    draft: bool = False,
) -> StepCommand:
    interaction = "batchmode" if settings.quiet else "nonstopmode"
    argv = [
        *settings.tools.argv("pdflatex"),
        f"-interaction={interaction}",
        "-halt-on-error",
        f"-output-directory={artifact_aux_dir(settings, artifact)}",
        f"-jobname={artifact.jobname}",
    ]
    if draft:
        argv.append("-draftmode")
    argv.extend(shlex.split(artifact.extra_args))
    argv.append(str(artifact.source_path))
    return StepCommand(label=label, argv=argv, cwd=artifact.source_path.parent)
