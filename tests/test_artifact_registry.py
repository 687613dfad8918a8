from __future__ import annotations

from pathlib import Path

import allure
import pytest

from latex_pipeline.files import LocalFileResolver
from latex_pipeline.graph.errors import CyclicDependency, UnknownArtifact, UnknownDependency
from latex_pipeline.graph.models import ArtifactSpec, artifact_name_for
from latex_pipeline.graph.registry import ArtifactRegistry

pytestmark = [
    allure.epic("Artifact Graph"),
    allure.feature("Declaration & Dependency Resolution"),
]


@pytest.fixture()
def registry(tmp_path: Path) -> ArtifactRegistry:
    return ArtifactRegistry(LocalFileResolver(tmp_path))


def test_name_strips_last_extension_only() -> None:
    assert artifact_name_for("thesis.tex") == "thesis"
    assert artifact_name_for("chapters/intro.tex") == "chapters/intro"
    assert artifact_name_for("paper.v2.tex") == "paper.v2"
    assert artifact_name_for("README") == "README"


def test_declare_resolves_default_output_next_to_project_root(
    registry: ArtifactRegistry,
    tmp_path: Path,
) -> None:
    artifact = registry.declare(ArtifactSpec(source_file="thesis.tex"))

    assert artifact.name == "thesis"
    assert artifact.source_path == tmp_path.resolve() / "thesis.tex"
    assert artifact.output_path == tmp_path.resolve() / "thesis.pdf"
    assert artifact.bibliography_path is None
    assert artifact.image_sources is None
    assert artifact.auxiliary_inputs is None
    assert artifact.depends_on == ()
    assert artifact.extra_args == ""


def test_declare_keeps_explicit_output_and_optional_inputs(
    registry: ArtifactRegistry,
    tmp_path: Path,
) -> None:
    figures = tmp_path / "figures"
    figures.mkdir()
    (figures / "plot.svg").write_text("<svg/>", "utf-8")
    (figures / "notes.txt").write_text("not an image", "utf-8")

    artifact = registry.declare(
        ArtifactSpec(
            source_file="thesis.tex",
            output_file="out/final.pdf",
            bibliography_file="refs.bib",
            image_sources=("figures",),
            auxiliary_files=("chapters/intro.tex", "chapters/outro.tex"),
            extra_args="-shell-escape",
        ),
    )

    root = tmp_path.resolve()
    assert artifact.output_path == root / "out" / "final.pdf"
    assert artifact.bibliography_path == root / "refs.bib"
    assert artifact.image_sources == frozenset({root / "figures" / "plot.svg"})
    assert artifact.auxiliary_inputs == frozenset(
        {root / "chapters" / "intro.tex", root / "chapters" / "outro.tex"},
    )
    assert artifact.extra_args == "-shell-escape"


def test_declared_image_sources_without_matches_still_request_conversion(
    registry: ArtifactRegistry,
) -> None:
    artifact = registry.declare(ArtifactSpec(source_file="thesis.tex", image_sources=("missing",)))

    assert artifact.image_sources == frozenset()
    assert artifact.needs_image_conversion


def test_valid_declaration_order_never_fails(registry: ArtifactRegistry) -> None:
    previous: tuple[str, ...] = ()
    for index in range(10):
        spec = ArtifactSpec(source_file=f"doc{index}.tex", depends_on=previous)
        artifact = registry.declare(spec)
        previous = (artifact.name,)

    assert registry.names() == tuple(f"doc{index}" for index in range(10))
    assert registry.get("doc9").dependency_names == ("doc8",)


def test_unknown_dependency_fails_and_leaves_registry_unchanged(
    registry: ArtifactRegistry,
) -> None:
    registry.declare(ArtifactSpec(source_file="appendix.tex"))

    with pytest.raises(UnknownDependency) as excinfo:
        registry.declare(
            ArtifactSpec(source_file="thesis.tex", depends_on=("appendix", "glossary")),
        )

    assert excinfo.value.name == "thesis"
    assert excinfo.value.dependency == "glossary"
    assert "thesis" not in registry
    assert registry.names() == ("appendix",)


def test_forward_reference_is_rejected(registry: ArtifactRegistry) -> None:
    with pytest.raises(UnknownDependency):
        registry.declare(ArtifactSpec(source_file="thesis.tex", depends_on=("appendix",)))

    registry.declare(ArtifactSpec(source_file="appendix.tex"))
    thesis = registry.declare(ArtifactSpec(source_file="thesis.tex", depends_on=("appendix",)))
    assert thesis.dependency_names == ("appendix",)


def test_dependency_may_be_named_by_source_filename(registry: ArtifactRegistry) -> None:
    appendix = registry.declare(ArtifactSpec(source_file="appendix.tex"))

    thesis = registry.declare(
        ArtifactSpec(source_file="thesis.tex", depends_on=("appendix.tex", "appendix")),
    )

    assert thesis.depends_on == (appendix,)


def test_redeclaration_overwrites_and_keeps_position(registry: ArtifactRegistry) -> None:
    registry.declare(ArtifactSpec(source_file="appendix.tex"))
    registry.declare(ArtifactSpec(source_file="thesis.tex"))

    replacement = registry.declare(
        ArtifactSpec(source_file="appendix.tex", bibliography_file="refs.bib"),
    )

    assert registry.get("appendix") is replacement
    assert registry.get("appendix").needs_bibliography
    assert registry.names() == ("appendix", "thesis")
    assert len(registry) == 2


def test_self_dependency_is_cyclic(registry: ArtifactRegistry) -> None:
    with pytest.raises(CyclicDependency) as excinfo:
        registry.declare(ArtifactSpec(source_file="thesis.tex", depends_on=("thesis",)))

    assert excinfo.value.path == ("thesis", "thesis")
    assert "thesis" not in registry


def test_self_dependency_by_filename_is_cyclic_even_when_already_declared(
    registry: ArtifactRegistry,
) -> None:
    original = registry.declare(ArtifactSpec(source_file="thesis.tex"))

    with pytest.raises(CyclicDependency):
        registry.declare(ArtifactSpec(source_file="thesis.tex", depends_on=("thesis.tex",)))

    assert registry.get("thesis") is original


def test_redeclaration_closing_a_cycle_is_rejected(registry: ArtifactRegistry) -> None:
    original = registry.declare(ArtifactSpec(source_file="a.tex"))
    registry.declare(ArtifactSpec(source_file="b.tex", depends_on=("a",)))
    registry.declare(ArtifactSpec(source_file="c.tex", depends_on=("b",)))

    with pytest.raises(CyclicDependency) as excinfo:
        registry.declare(ArtifactSpec(source_file="a.tex", depends_on=("c",)))

    assert excinfo.value.path == ("a", "c", "b", "a")
    assert registry.get("a") is original


def test_get_unknown_artifact(registry: ArtifactRegistry) -> None:
    with pytest.raises(UnknownArtifact, match="Unknown artifact: 'thesis'"):
        registry.get("thesis")


def test_dependencies_of_follows_latest_declaration(registry: ArtifactRegistry) -> None:
    registry.declare(ArtifactSpec(source_file="appendix.tex"))
    thesis = registry.declare(ArtifactSpec(source_file="thesis.tex", depends_on=("appendix",)))
    replacement = registry.declare(
        ArtifactSpec(source_file="appendix.tex", extra_args="-draftmode"),
    )

    assert registry.dependencies_of(thesis) == (replacement,)


def test_spec_from_mapping_accepts_build_file_keys() -> None:
    spec = ArtifactSpec.from_mapping(
        {
            "tex": "thesis.tex",
            "pdf": "thesis-final.pdf",
            "bib": "refs.bib",
            "img": "figures",
            "aux": ["chapters/intro.tex"],
            "dependsOn": ["appendix.tex"],
            "extraArgs": "-shell-escape",
        },
    )

    assert spec == ArtifactSpec(
        source_file="thesis.tex",
        output_file="thesis-final.pdf",
        bibliography_file="refs.bib",
        image_sources=("figures",),
        auxiliary_files=("chapters/intro.tex",),
        depends_on=("appendix.tex",),
        extra_args="-shell-escape",
    )


def test_spec_from_mapping_rejects_unknown_keys_and_missing_source() -> None:
    with pytest.raises(ValueError, match="Unknown artifact keys: images"):
        ArtifactSpec.from_mapping({"tex": "thesis.tex", "images": ["figures"]})
    with pytest.raises(ValueError, match="requires a 'tex' source file"):
        ArtifactSpec.from_mapping({"bib": "refs.bib"})
    with pytest.raises(ValueError, match="non-empty string"):
        ArtifactSpec(source_file="  ")


def test_long_declaration_chain_never_fails(registry: ArtifactRegistry) -> None:
    previous: tuple[str, ...] = ()
    for index in range(3000):
        artifact = registry.declare(ArtifactSpec(source_file=f"d{index}.tex", depends_on=previous))
        previous = (artifact.name,)

    assert len(registry) == 3000
    assert registry.get("d2999").dependency_names == ("d2998",)


def test_redeclaration_closing_a_long_cycle_is_rejected(registry: ArtifactRegistry) -> None:
    previous: tuple[str, ...] = ()
    for index in range(3000):
        registry.declare(ArtifactSpec(source_file=f"d{index}.tex", depends_on=previous))
        previous = (f"d{index}",)

    with pytest.raises(CyclicDependency) as excinfo:
        registry.declare(ArtifactSpec(source_file="d0.tex", depends_on=("d2999",)))

    assert excinfo.value.path[:2] == ("d0", "d2999")
    assert excinfo.value.path[-1] == "d0"
    assert len(excinfo.value.path) == 3001


def test_dotted_dependency_name_is_not_treated_as_a_filename(registry: ArtifactRegistry) -> None:
    with pytest.raises(UnknownDependency) as excinfo:
        registry.declare(ArtifactSpec(source_file="paper.tex", depends_on=("paper.v2",)))

    assert excinfo.value.dependency == "paper.v2"
    assert "paper" not in registry


def test_dotted_dependency_name_resolves_exactly(registry: ArtifactRegistry) -> None:
    v2 = registry.declare(ArtifactSpec(source_file="paper.v2.tex"))

    paper = registry.declare(ArtifactSpec(source_file="paper.tex", depends_on=("paper.v2",)))

    assert paper.depends_on == (v2,)


@pytest.mark.parametrize(
    ("fields", "message"),
    [
        ({"bib": 2024}, "'bib' must be a file name, got int"),
        ({"pdf": ["out.pdf"]}, "'pdf' must be a file name, got list"),
    ],
)
def test_spec_rejects_non_string_file_names(fields: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        ArtifactSpec.from_mapping({"tex": "thesis.tex", **fields})
