"""
End-to-end tests for a Core wired to the reference collaborators.
"""

import json

import pytest

from luca import CoreConfig, QueryResult, create_core
from luca.core.exceptions import AlreadyInitializedError, NotInitializedError
from luca.main import main

ITEMS = [
    "wind turbines generate electricity",
    "solar panels convert sunlight into electricity",
    "hydro dams store water energy",
]


def small_config(**overrides):
    params = dict(genome_population_size=8, evolution_generations=3, interpretation_threshold=0.3)
    params.update(overrides)
    return CoreConfig(**params)


@pytest.mark.asyncio
async def test_learn_query_snapshot_restore():
    core = create_core(small_config(), seed=42)
    await core.initialize()

    results = [result async for result in core.learn(ITEMS)]
    assert len(results) == 3
    assert core.state.total_processed == 3
    assert core.is_learning is False

    answer = await core.query("electricity")
    assert isinstance(answer, QueryResult)
    scores = [entry["rank_score"] for entry in answer.results]
    assert scores == sorted(scores, reverse=True)

    blob = json.loads(json.dumps((await core.snapshot()).to_dict()))
    await core.shutdown()

    fresh = create_core(small_config(), seed=7)
    await fresh.restore(blob)
    stats = fresh.get_stats()
    assert stats["initialized"] is True
    assert stats["memory"]["node_count"] == 3
    assert stats["evolution"]["generation"] == blob["evolution_state"]["generation"]
    await fresh.shutdown()


def test_factory_derives_collaborator_settings():
    core = create_core(small_config(max_memory_nodes=2, extras={"mutation_rate": 0.2}))

    assert core.memory.config.max_nodes == 2
    assert core.evolution.config.population_size == 8
    assert core.evolution.config.generations == 3
    assert core.evolution.config.mutation_rate == 0.2
    assert core.interpreter.config.threshold == 0.3


@pytest.mark.asyncio
async def test_memory_stays_bounded():
    core = create_core(small_config(max_memory_nodes=2), seed=1)
    await core.initialize()
    for item in ITEMS:
        await core.process(item)

    assert core.get_stats()["memory"]["node_count"] == 2
    await core.shutdown()

    with pytest.raises(NotInitializedError):
        await core.process("after shutdown")


class TestCLI:
    """Tests for the luca command line entry point."""

    def test_cli_learns_and_writes_snapshot(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("LUCA_CONFIG", raising=False)
        (tmp_path / "config.yaml").write_text(
            "core:\n"
            "  genome_population_size: 6\n"
            "  evolution_generations: 2\n"
        )
        snapshot_path = tmp_path / "snapshot.json"

        code = main(ITEMS + ["--query", "electricity", "--snapshot", str(snapshot_path), "--seed", "3"])

        assert code == 0
        data = json.loads(snapshot_path.read_text())
        assert len(data["memory_state"]["nodes"]) == 3
        assert data["config"]["genome_population_size"] == 6

    def test_cli_without_work(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("LUCA_CONFIG", raising=False)
        assert main([]) == 1

    def test_cli_bad_config(self, tmp_path):
        assert main(["item", "--config", str(tmp_path / "missing.yaml")]) == 2


@pytest.mark.asyncio
async def test_second_initialize_keeps_evolved_population():
    core = create_core(small_config(), seed=11)
    await core.initialize()
    await core.process(ITEMS[0])
    population = list(core.evolution.population)
    best = core.evolution.best_individual

    with pytest.raises(AlreadyInitializedError):
        await core.initialize()

    assert core.evolution.population == population
    assert core.evolution.best_individual is best
    await core.shutdown()
