"""
Tests for the MemoryMesh reference collaborator.
"""

import pytest

from luca.core.exceptions import LinkError, SearchError, SerializationError, StorageError
from luca.memory import MemoryMesh, MeshConfig


@pytest.fixture
def mesh():
    return MemoryMesh(MeshConfig(max_nodes=3))


class TestNodes:
    """Tests for add_node and link_nodes."""

    @pytest.mark.asyncio
    async def test_add_requires_initialize(self, mesh):
        with pytest.raises(StorageError):
            await mesh.add_node("data")

    @pytest.mark.asyncio
    async def test_add_node(self, mesh):
        await mesh.initialize()
        node = await mesh.add_node("solar panels convert light")

        assert node.content == "solar panels convert light"
        assert node.concepts == []
        assert mesh.get_node(node.id) is node
        assert mesh.get_stats()["node_count"] == 1

    @pytest.mark.asyncio
    async def test_link_normalizes_concepts(self, mesh):
        await mesh.initialize()
        node = await mesh.add_node("photosynthesis")
        await mesh.link_nodes(node.id, ["Energy", " energy ", "", "Light"])

        assert node.concepts == ["energy", "light"]
        assert mesh.get_stats()["concept_count"] == 2

    @pytest.mark.asyncio
    async def test_link_unknown_node(self, mesh):
        await mesh.initialize()
        with pytest.raises(LinkError) as exc_info:
            await mesh.link_nodes("missing", ["energy"])
        assert exc_info.value.node_id == "missing"

    @pytest.mark.asyncio
    async def test_eviction_prefers_least_accessed(self, mesh):
        await mesh.initialize()
        first = await mesh.add_node("alpha one")
        second = await mesh.add_node("beta two")
        third = await mesh.add_node("gamma three")
        await mesh.search("alpha")

        fourth = await mesh.add_node("delta four")

        assert mesh.get_node(first.id) is not None
        assert mesh.get_node(second.id) is None
        assert mesh.get_node(third.id) is not None
        assert mesh.get_node(fourth.id) is not None
        assert mesh.get_stats()["evictions"] == 1


class TestSearch:
    """Tests for keyword and concept search."""

    @pytest.mark.asyncio
    async def test_search_requires_initialize(self, mesh):
        with pytest.raises(SearchError):
            await mesh.search("light")

    @pytest.mark.asyncio
    async def test_keyword_match(self, mesh):
        await mesh.initialize()
        node = await mesh.add_node("solar panels convert light")
        await mesh.add_node("wind turbines spin")

        candidates = await mesh.search("light")
        assert [c["id"] for c in candidates] == [node.id]
        assert candidates[0]["score"] == pytest.approx(0.25)

    @pytest.mark.asyncio
    async def test_linked_concepts_boost_score(self, mesh):
        await mesh.initialize()
        plain = await mesh.add_node("leaves absorb energy")
        linked = await mesh.add_node("chlorophyll absorbs energy")
        await mesh.link_nodes(linked.id, ["energy"])

        scores = {c["id"]: c["score"] for c in await mesh.search("energy")}
        assert scores[linked.id] > scores[plain.id]

    @pytest.mark.asyncio
    async def test_stop_words_only(self, mesh):
        await mesh.initialize()
        await mesh.add_node("the light")
        assert await mesh.search("the and of") == []


class TestState:
    """Tests for export/import and shutdown."""

    @pytest.mark.asyncio
    async def test_export_import(self, mesh):
        await mesh.initialize()
        node = await mesh.add_node("tidal power")
        await mesh.link_nodes(node.id, ["ocean"])
        state = await mesh.export_state()

        restored = MemoryMesh(MeshConfig(max_nodes=3))
        await restored.initialize()
        await restored.import_state(state)

        copy = restored.get_node(node.id)
        assert copy.content == "tidal power"
        assert copy.concepts == ["ocean"]
        assert [c["id"] for c in await restored.search("ocean")] == [node.id]

    @pytest.mark.asyncio
    async def test_import_invalid_state(self, mesh):
        await mesh.initialize()
        with pytest.raises(SerializationError):
            await mesh.import_state({"nodes": [{"content": "no id"}]})

    @pytest.mark.asyncio
    async def test_shutdown_clears_nodes(self, mesh):
        await mesh.initialize()
        await mesh.add_node("data")
        await mesh.shutdown()

        stats = mesh.get_stats()
        assert stats["ready"] is False
        assert stats["node_count"] == 0
