"""
LUCA Core Module
Contains the orchestrator, lifecycle state machine, collaborator interfaces
and schema definitions.
"""

from luca.core.base import (
    Collaborator,
    MemoryCollaborator,
    EvolutionCollaborator,
    InterpretationCollaborator,
)
from luca.core.config import CoreConfig
from luca.core.lifecycle import CancellationToken, LifecycleState, Phase
from luca.core.orchestrator import LUCACore, LearningStream
from luca.core.schemas import (
    ConfidenceLevel,
    GenomeResult,
    Interpretation,
    MemoryNode,
    ProcessResult,
    QueryResult,
    SnapshotState,
)

__all__ = [
    "Collaborator",
    "MemoryCollaborator",
    "EvolutionCollaborator",
    "InterpretationCollaborator",
    "CoreConfig",
    "CancellationToken",
    "LifecycleState",
    "Phase",
    "LUCACore",
    "LearningStream",
    "ConfidenceLevel",
    "GenomeResult",
    "Interpretation",
    "MemoryNode",
    "ProcessResult",
    "QueryResult",
    "SnapshotState",
]
