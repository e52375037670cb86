"""
Tests for LUCACore.query(): concurrent search/analyze followed by ranking.
"""

import asyncio

import pytest

from luca.core.exceptions import NotInitializedError, QueryError
from luca.core.schemas import Interpretation, QueryResult


@pytest.mark.asyncio
async def test_query_before_initialize(core, memory):
    with pytest.raises(NotInitializedError):
        await core.query("light")
    memory.search.assert_not_awaited()


@pytest.mark.asyncio
async def test_ranking_follows_select_best(core, memory, evolution, interpreter):
    await core.initialize()
    result = await core.query("light")

    assert isinstance(result, QueryResult)
    assert [entry["content"] for entry in result.results] == ["gamma", "beta", "alpha"]
    assert result.confidence == 0.85
    assert result.query == "light"

    memory.search.assert_awaited_once_with("light")
    interpreter.analyze.assert_awaited_once_with("light")
    candidates, interpretation = evolution.select_best.await_args.args
    assert candidates == memory.search.return_value
    assert interpretation is interpreter.analyze.return_value


@pytest.mark.asyncio
async def test_search_and_analyze_run_concurrently(core, memory, interpreter):
    both_started = asyncio.Event()
    started = []

    async def search(query):
        started.append("search")
        if len(started) == 2:
            both_started.set()
        await asyncio.wait_for(both_started.wait(), timeout=1.0)
        return []

    async def analyze(subject):
        started.append("analyze")
        if len(started) == 2:
            both_started.set()
        await asyncio.wait_for(both_started.wait(), timeout=1.0)
        return Interpretation(confidence=0.4)

    memory.search.side_effect = search
    interpreter.analyze.side_effect = analyze
    await core.initialize()

    result = await core.query("light")
    assert sorted(started) == ["analyze", "search"]
    assert result.results == ()


@pytest.mark.asyncio
async def test_query_does_not_count_as_processed(core):
    await core.initialize()
    await core.query("light")
    assert core.state.total_processed == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("stage", ["memory", "interpretation", "evolution"])
async def test_query_failure_names_stage(core, memory, evolution, interpreter, stage):
    cause = RuntimeError(f"{stage} unavailable")
    failing = {
        "memory": memory.search,
        "interpretation": interpreter.analyze,
        "evolution": evolution.select_best,
    }[stage]
    failing.side_effect = cause
    await core.initialize()

    with pytest.raises(QueryError) as exc_info:
        await core.query("light")

    assert exc_info.value.stage == stage
    assert exc_info.value.__cause__ is cause


@pytest.mark.asyncio
async def test_failed_search_skips_ranking(core, memory, evolution):
    memory.search.side_effect = RuntimeError("index offline")
    await core.initialize()

    with pytest.raises(QueryError):
        await core.query("light")
    evolution.select_best.assert_not_awaited()


@pytest.mark.asyncio
async def test_query_result_is_immutable(core):
    await core.initialize()
    result = await core.query("light")

    with pytest.raises(AttributeError):
        result.confidence = 1.0
    assert result.to_dict()["results"][0]["content"] == "gamma"
