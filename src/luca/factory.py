"""Wiring of the Core to the reference collaborators."""

from typing import Optional

from luca.core.config import CoreConfig
from luca.core.orchestrator import LUCACore
from luca.evolution.genome import EmerickGenome, GenomeConfig
from luca.interpretation.module import InterpretationModule, InterpreterConfig
from luca.memory.mesh import MemoryMesh, MeshConfig


def create_core(config: Optional[CoreConfig] = None, seed: Optional[int] = None) -> LUCACore:
    """
    Build a LUCACore backed by MemoryMesh, EmerickGenome and InterpretationModule.

    Collaborator settings are derived from ``config``; ``seed`` makes the
    evolutionary collaborator deterministic.
    """
    config = config or CoreConfig()
    extras = config.extras

    memory = MemoryMesh(MeshConfig(max_nodes=config.max_memory_nodes))
    evolution = EmerickGenome(GenomeConfig(
        population_size=config.genome_population_size,
        generations=config.evolution_generations,
        mutation_rate=extras.get("mutation_rate", 0.05),
        crossover_rate=extras.get("crossover_rate", 0.7),
        selection_top_k=min(extras.get("selection_top_k", 4), config.genome_population_size),
        seed=seed if seed is not None else extras.get("seed"),
    ))
    interpreter = InterpretationModule(InterpreterConfig(threshold=config.interpretation_threshold))

    return LUCACore(memory, evolution, interpreter, config)
