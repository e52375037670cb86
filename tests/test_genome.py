"""
Tests for the EmerickGenome reference collaborator.
"""

import numpy as np
import pytest

from luca.core.exceptions import EvolutionError, FitnessUpdateError, RankingError, SerializationError
from luca.core.schemas import GenomeResult, Interpretation
from luca.evolution import EmerickGenome, GenomeConfig, Individual


def small_config(**overrides):
    params = dict(population_size=8, generations=3, selection_top_k=2, seed=5)
    params.update(overrides)
    return GenomeConfig(**params)


@pytest.fixture
def genome():
    return EmerickGenome(small_config())


class TestIndividual:
    """Tests for Individual bookkeeping."""

    def test_fitness_history(self):
        individual = Individual(genes=np.ones(4))
        assert individual.current_fitness == 0.0

        individual.record_fitness(0.4)
        individual.record_fitness(0.2)
        assert individual.current_fitness == 0.2
        assert individual.best_fitness == 0.4

    def test_history_is_bounded(self):
        individual = Individual(genes=np.ones(4))
        for i in range(150):
            individual.record_fitness(i / 150)
        assert len(individual.fitness_history) == 100

    def test_offspring_lineage(self):
        rng = np.random.default_rng(0)
        a = Individual(genes=np.zeros(4), generation_id=1)
        b = Individual(genes=np.ones(4), generation_id=3)

        child = a.crossover(b, rng)
        assert child.generation_id == 4
        assert child.parent_ids == [a.genome_id, b.genome_id]
        assert set(child.genes.tolist()) <= {0.0, 1.0}

        mutant = a.mutate(rng, mutation_rate=1.0)
        assert mutant.generation_id == 2
        assert mutant.parent_ids == [a.genome_id]


class TestEvolve:
    """Tests for evolve()."""

    @pytest.mark.asyncio
    async def test_evolve_requires_initialize(self, genome):
        with pytest.raises(EvolutionError):
            await genome.evolve("wind power")

    @pytest.mark.asyncio
    async def test_evolve_returns_best(self, genome):
        await genome.initialize()
        result = await genome.evolve("wind turbines generate power")

        assert isinstance(result, GenomeResult)
        assert isinstance(result.best_individual, Individual)
        assert 0.0 <= result.fitness <= 1.0
        assert result.generation == 2
        assert len(genome.population) == 8
        assert genome.best_individual is result.best_individual
        assert len(result.best_individual.traits) <= 5

    @pytest.mark.asyncio
    async def test_seeded_runs_are_deterministic(self):
        first = EmerickGenome(small_config())
        second = EmerickGenome(small_config())
        await first.initialize()
        await second.initialize()

        a = await first.evolve("tidal energy")
        b = await second.evolve("tidal energy")
        assert a.fitness == b.fitness
        assert a.best_individual.genome_id == b.best_individual.genome_id

    @pytest.mark.asyncio
    async def test_empty_input_has_zero_fitness(self, genome):
        await genome.initialize()
        result = await genome.evolve("")
        assert result.fitness == 0.0


class TestFeedback:
    """Tests for update_fitness() and adaptive mutation."""

    @pytest.mark.asyncio
    async def test_update_before_evolve(self, genome):
        await genome.initialize()
        with pytest.raises(FitnessUpdateError):
            await genome.update_fitness(0.5)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [1.5, -0.1, "high", None])
    async def test_invalid_feedback(self, genome, value):
        await genome.initialize()
        await genome.evolve("wind")
        with pytest.raises(FitnessUpdateError):
            await genome.update_fitness(value)

    @pytest.mark.asyncio
    async def test_feedback_raises_drift(self, genome):
        await genome.initialize()
        result = await genome.evolve("wind")

        await genome.update_fitness(0.2)
        assert result.best_individual.current_fitness == 0.2
        assert genome.get_stats()["drift_metric"] == pytest.approx(0.24)
        assert genome.get_stats()["feedback_count"] == 1

    def test_adaptive_mutation_rate(self, genome):
        assert genome._get_adaptive_mutation_rate(0.0) == 0.05
        assert genome._get_adaptive_mutation_rate(0.5) == pytest.approx(0.075)
        assert genome._get_adaptive_mutation_rate(0.9) == pytest.approx(0.1)


class TestSelectBest:
    """Tests for select_best() ranking."""

    @pytest.mark.asyncio
    async def test_ranks_descending(self, genome):
        await genome.initialize()
        await genome.evolve("wind power")
        candidates = [
            {"id": "b", "content": "unrelated pottery", "score": 0.0},
            {"id": "a", "content": "wind power", "concepts": ["wind"], "score": 0.9},
        ]

        ranked = await genome.select_best(
            candidates, Interpretation(confidence=0.5, related_concepts=["wind"])
        )
        assert [c["id"] for c in ranked] == ["a", "b"]
        assert ranked[0]["rank_score"] >= ranked[1]["rank_score"]
        assert "rank_score" not in candidates[0]

    @pytest.mark.asyncio
    async def test_empty_candidates(self, genome):
        await genome.initialize()
        assert await genome.select_best([], Interpretation(confidence=0.1)) == []

    @pytest.mark.asyncio
    async def test_bad_interpretation(self, genome):
        await genome.initialize()
        with pytest.raises(RankingError):
            await genome.select_best([{"content": "x"}], None)


class TestState:
    """Tests for export/import."""

    @pytest.mark.asyncio
    async def test_export_import(self, genome):
        await genome.initialize()
        await genome.evolve("geothermal heat")
        await genome.update_fitness(0.6)
        state = await genome.export_state()

        restored = EmerickGenome(small_config(seed=99))
        await restored.initialize()
        await restored.import_state(state)

        assert len(restored.population) == len(genome.population)
        assert restored.best_individual.genome_id == genome.best_individual.genome_id
        assert restored.get_stats()["drift_metric"] == pytest.approx(genome.get_stats()["drift_metric"])
        assert restored.current_generation == genome.current_generation

    @pytest.mark.asyncio
    async def test_dimension_mismatch(self, genome):
        await genome.initialize()
        state = await genome.export_state()

        other = EmerickGenome(small_config(dimension=8))
        await other.initialize()
        with pytest.raises(SerializationError):
            await other.import_state(state)

    @pytest.mark.asyncio
    async def test_invalid_state(self, genome):
        await genome.initialize()
        with pytest.raises(SerializationError):
            await genome.import_state({"population": [{"no": "genes"}]})
