from __future__ import annotations

from pathlib import Path

import allure
import pytest

from latex_pipeline.files import LocalFileResolver

pytestmark = [
    allure.epic("Artifact Graph"),
    allure.feature("File Resolution"),
]


@pytest.fixture()
def tree(tmp_path: Path) -> Path:
    figures = tmp_path / "figures"
    (figures / "nested").mkdir(parents=True)
    (figures / "plot.svg").write_text("<svg/>", "utf-8")
    (figures / "nested" / "diagram.SVG").write_text("<svg/>", "utf-8")
    (figures / "notes.txt").write_text("notes", "utf-8")
    (figures / "photo.eps").write_text("%!PS", "utf-8")
    return tmp_path.resolve()


def test_resolve_is_relative_to_root(tree: Path) -> None:
    resolver = LocalFileResolver(tree)

    assert resolver.resolve("thesis.tex") == tree / "thesis.tex"
    assert resolver.resolve("chapters/../thesis.tex") == tree / "thesis.tex"
    assert resolver.resolve(tree / "other.tex") == tree / "other.tex"


def test_directory_yields_images_with_configured_extensions(tree: Path) -> None:
    resolver = LocalFileResolver(tree)

    assert resolver.find_files("figures") == {
        tree / "figures" / "plot.svg",
        tree / "figures" / "nested" / "diagram.SVG",
    }


def test_extra_extensions_are_normalized(tree: Path) -> None:
    resolver = LocalFileResolver(tree, image_extensions=("svg", "EPS"))

    assert resolver.image_extensions == (".svg", ".eps")
    assert tree / "figures" / "photo.eps" in resolver.find_files("figures")


def test_glob_pattern_matches_image_files_only(tree: Path) -> None:
    resolver = LocalFileResolver(tree)

    assert resolver.find_files("figures/*") == {tree / "figures" / "plot.svg"}
    assert LocalFileResolver(tree, image_extensions=("svg", "eps")).find_files("figures/*") == {
        tree / "figures" / "plot.svg",
        tree / "figures" / "photo.eps",
    }
    assert tree / "figures" / "nested" / "diagram.SVG" in resolver.find_files("figures/**/*")


def test_single_file_is_returned_as_is(tree: Path) -> None:
    resolver = LocalFileResolver(tree)

    assert resolver.find_files("figures/notes.txt") == {tree / "figures" / "notes.txt"}


def test_missing_source_yields_nothing(tree: Path, caplog: pytest.LogCaptureFixture) -> None:
    resolver = LocalFileResolver(tree)

    with caplog.at_level("WARNING", logger="latex_pipeline.files"):
        assert resolver.find_files("missing") == set()

    assert "does not exist" in caplog.text


def test_empty_extension_list_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="At least one image extension"):
        LocalFileResolver(tmp_path, image_extensions=())
