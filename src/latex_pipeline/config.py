"""Runtime configuration for artifact declaration and step execution."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(slots=True)
class ToolSettings:
    """External compiler commands and image discovery settings."""

    pdflatex: str = "pdflatex"
    bibtex: str = "bibtex"
    inkscape: str = "inkscape"
    image_extensions: tuple[str, ...] = (".svg",)

    def argv(self, tool: str) -> list[str]:
        """Split the configured command for *tool* into an argv prefix."""

        return shlex.split(getattr(self, tool))


@dataclass(slots=True)
class ExecutionSettings:
    """Step execution tunables."""

    step_timeout_seconds: int = 600
    max_parallel_steps: int = 4
    compile_passes: int = 1


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    project_root: Path = field(default_factory=Path.cwd)
    aux_dir: Path = Path(".latex-pipeline/latex-temp")
    build_file: Path = Path("latex.yml")
    quiet: bool = True
    tools: ToolSettings = field(default_factory=ToolSettings)
    execution: ExecutionSettings = field(default_factory=ExecutionSettings)

    @property
    def resolved_aux_dir(self) -> Path:
        if self.aux_dir.is_absolute():
            return self.aux_dir
        return self.project_root / self.aux_dir

    @property
    def resolved_build_file(self) -> Path:
        if self.build_file.is_absolute():
            return self.build_file
        return self.project_root / self.build_file

    @classmethod
    def from_env(cls, project_root: Path | None = None) -> Settings:
        """Load settings from environment with defaults for a local TeX installation."""

        return cls(
            project_root=project_root
            or Path(os.getenv("LATEX_PIPELINE_PROJECT_ROOT", "") or Path.cwd()),
            aux_dir=Path(os.getenv("LATEX_PIPELINE_AUX_DIR", ".latex-pipeline/latex-temp")),
            build_file=Path(os.getenv("LATEX_PIPELINE_BUILD_FILE", "latex.yml")),
            quiet=_env_bool("LATEX_PIPELINE_QUIET", default=True),
            tools=ToolSettings(
                pdflatex=os.getenv("LATEX_PIPELINE_PDFLATEX_COMMAND", "pdflatex"),
                bibtex=os.getenv("LATEX_PIPELINE_BIBTEX_COMMAND", "bibtex"),
                inkscape=os.getenv("LATEX_PIPELINE_INKSCAPE_COMMAND", "inkscape"),
                image_extensions=_collect_extensions(),
            ),
            execution=ExecutionSettings(
                step_timeout_seconds=int(
                    os.getenv("LATEX_PIPELINE_STEP_TIMEOUT_SECONDS", "600"),
                ),
                max_parallel_steps=int(os.getenv("LATEX_PIPELINE_MAX_PARALLEL_STEPS", "4")),
                compile_passes=int(os.getenv("LATEX_PIPELINE_COMPILE_PASSES", "1")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if any setting is unusable."""

        if self.execution.step_timeout_seconds <= 0:
            raise ValueError("LATEX_PIPELINE_STEP_TIMEOUT_SECONDS must be > 0.")
        if self.execution.max_parallel_steps <= 0:
            raise ValueError("LATEX_PIPELINE_MAX_PARALLEL_STEPS must be > 0.")
        if self.execution.compile_passes <= 0:
            raise ValueError("LATEX_PIPELINE_COMPILE_PASSES must be > 0.")
        if not self.tools.image_extensions:
            raise ValueError("LATEX_PIPELINE_IMAGE_EXTENSIONS must name at least one extension.")
        for tool in ("pdflatex", "bibtex", "inkscape"):
            if not self.tools.argv(tool):
                raise ValueError(f"LATEX_PIPELINE_{tool.upper()}_COMMAND must not be empty.")


def _collect_extensions() -> tuple[str, ...]:
    raw = os.getenv("LATEX_PIPELINE_IMAGE_EXTENSIONS", ".svg")
    extensions: list[str] = []
    for part in raw.split(","):
        token = part.strip().lower()
        if not token:
            continue
        if not token.startswith("."):
            token = f".{token}"
        if token not in extensions:
            extensions.append(token)
    return tuple(extensions)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
