"""
Shared collaborator doubles for the LUCA Core tests.
"""

import itertools
from unittest.mock import AsyncMock, MagicMock

import pytest

from luca.core.base import (
    EvolutionCollaborator,
    InterpretationCollaborator,
    MemoryCollaborator,
)
from luca.core.config import CoreConfig
from luca.core.orchestrator import LUCACore
from luca.core.schemas import GenomeResult, Interpretation, MemoryNode


def _lifecycle_mocks(mock, name, state):
    mock.name = name
    mock.initialize = AsyncMock()
    mock.shutdown = AsyncMock()
    mock.export_state = AsyncMock(return_value=state)
    mock.import_state = AsyncMock()
    mock.get_stats = MagicMock(return_value={"name": name})
    return mock


def make_memory():
    memory = _lifecycle_mocks(MagicMock(spec=MemoryCollaborator), "memory", {"nodes": []})
    ids = itertools.count(1)
    memory.add_node = AsyncMock(side_effect=lambda data: MemoryNode(id=f"node-{next(ids)}", content=data))
    memory.link_nodes = AsyncMock()
    memory.search = AsyncMock(return_value=[
        {"id": "node-1", "content": "alpha", "score": 0.2},
        {"id": "node-2", "content": "beta", "score": 0.9},
        {"id": "node-3", "content": "gamma", "score": 0.5},
    ])
    return memory


def make_evolution():
    evolution = _lifecycle_mocks(MagicMock(spec=EvolutionCollaborator), "evolution", {"population": []})
    evolution.evolve = AsyncMock(
        side_effect=lambda data: GenomeResult(best_individual=f"best:{data}", fitness=0.9, generation=1)
    )
    evolution.update_fitness = AsyncMock()
    evolution.select_best = AsyncMock(
        side_effect=lambda candidates, interpretation: list(reversed(candidates))
    )
    return evolution


def make_interpreter(confidence=0.85):
    interpreter = _lifecycle_mocks(
        MagicMock(spec=InterpretationCollaborator), "interpretation", {"concept_counts": {}}
    )
    interpreter.analyze = AsyncMock(
        return_value=Interpretation(confidence=confidence, related_concepts=["energy", "light"])
    )
    return interpreter


@pytest.fixture
def memory():
    return make_memory()


@pytest.fixture
def evolution():
    return make_evolution()


@pytest.fixture
def interpreter():
    return make_interpreter()


@pytest.fixture
def core(memory, evolution, interpreter):
    return LUCACore(memory, evolution, interpreter, CoreConfig(interpretation_threshold=0.7))
