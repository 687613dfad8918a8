"""Shared test fixtures."""

from __future__ import annotations

import shlex
import sys
from pathlib import Path

import pytest
from prefect.testing.utilities import prefect_test_harness

from latex_pipeline.config import Settings, ToolSettings
from latex_pipeline.files import LocalFileResolver
from latex_pipeline.graph.project import LatexProject

_FAKE_PDFLATEX = """\
import sys
from pathlib import Path

options = dict(arg.split("=", 1) for arg in sys.argv[1:] if arg.startswith("-") and "=" in arg)
out_dir = Path(options["-output-directory"])
out_dir.mkdir(parents=True, exist_ok=True)
if "-draftmode" not in sys.argv:
    (out_dir / (options["-jobname"] + ".pdf")).write_text("%PDF-fake " + sys.argv[-1], "utf-8")
print("fake pdflatex", " ".join(sys.argv[1:]))
"""


@pytest.fixture()
def project(tmp_path: Path) -> LatexProject:
    """Empty project rooted at a temporary directory."""
    return LatexProject(LocalFileResolver(tmp_path))


@pytest.fixture()
def fake_pdflatex(tmp_path: Path) -> str:
    """Command string running a python stand-in for pdflatex."""
    script = tmp_path / "fake_pdflatex.py"
    script.write_text(_FAKE_PDFLATEX, "utf-8")
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"


@pytest.fixture()
def settings(tmp_path: Path, fake_pdflatex: str) -> Settings:
    """Settings rooted at ``tmp_path`` whose pdflatex is the python stand-in."""
    return Settings(
        project_root=tmp_path,
        aux_dir=Path(".aux"),
        tools=ToolSettings(pdflatex=fake_pdflatex),
    )


@pytest.fixture()
def python_command():
    """Build a command string running an inline python snippet."""

    def _build(code: str) -> str:
        return f"{shlex.quote(sys.executable)} -c {shlex.quote(code)}"

    return _build


@pytest.fixture(scope="session")
def prefect_backend():
    """Temporary Prefect API and database for tests that run the build flow."""
    with prefect_test_harness():
        yield
