"""Artifact dependency model and task-graph construction.

Artifacts are declared in dependency order; each declaration synthesizes its
steps (compile, clean and, when needed, bibliography and image conversion)
into a task registry. Running the graph is left to an executor, see
:mod:`latex_pipeline.execution`.
"""

from latex_pipeline.graph.aggregates import AggregateWiring
from latex_pipeline.graph.errors import (
    ArtifactGraphError,
    CyclicDependency,
    UnknownArtifact,
    UnknownDependency,
    UnknownStep,
)
from latex_pipeline.graph.models import Artifact, ArtifactSpec, Step, StepKind
from latex_pipeline.graph.project import LatexProject
from latex_pipeline.graph.registry import ArtifactRegistry
from latex_pipeline.graph.synthesizer import StepSynthesizer
from latex_pipeline.graph.tasks import InMemoryTaskRegistry, TaskRegistry, execution_order
from latex_pipeline.graph.traversal import traverse

__all__ = [
    "AggregateWiring",
    "Artifact",
    "ArtifactGraphError",
    "ArtifactRegistry",
    "ArtifactSpec",
    "CyclicDependency",
    "InMemoryTaskRegistry",
    "LatexProject",
    "Step",
    "StepKind",
    "StepSynthesizer",
    "TaskRegistry",
    "UnknownArtifact",
    "UnknownDependency",
    "UnknownStep",
    "execution_order",
    "traverse",
]
