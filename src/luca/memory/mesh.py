"""
LUCA MemoryMesh
Bounded in-process node store with concept links and keyword search.

Nodes are evicted least-accessed-first once ``max_nodes`` is reached.
Search scores a node by keyword overlap with its content plus its linked
concepts; results are unordered from the Core's perspective.
"""

from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set
import uuid

from luca.core.base import MemoryCollaborator
from luca.core.exceptions import LinkError, SearchError, SerializationError, StorageError
from luca.core.schemas import MemoryNode
from luca.utils.text import extract_keywords, jaccard_similarity, stringify


@dataclass
class MeshConfig:
    """Configuration for the MemoryMesh."""
    max_nodes: int = 1000
    concept_weight: float = 0.5   # Bonus per exact concept match
    min_score: float = 0.0        # Candidates must score above this


class MemoryMesh(MemoryCollaborator):
    """
    Memory collaborator backed by an ordered dictionary of nodes.

    Example:
        mesh = MemoryMesh(MeshConfig(max_nodes=100))
        await mesh.initialize()
        node = await mesh.add_node("photosynthesis converts light")
        await mesh.link_nodes(node.id, ["energy"])
        candidates = await mesh.search("light energy")
    """

    def __init__(self, config: Optional[MeshConfig] = None):
        super().__init__(config)
        self.config = config or MeshConfig()
        self._ready = False
        self._reset()

    def _reset(self) -> None:
        self._nodes: "OrderedDict[str, MemoryNode]" = OrderedDict()
        self._keywords: Dict[str, Set[str]] = {}
        self._access_counts: Dict[str, int] = {}
        self._concept_index: Dict[str, Set[str]] = {}
        self._evictions = 0

    async def initialize(self) -> None:
        self._ready = True
        self.logger.info(f"MemoryMesh ready (max_nodes={self.config.max_nodes})")

    async def shutdown(self) -> None:
        self._ready = False
        self._reset()
        self.logger.info("MemoryMesh released")

    # ------------------------------------------------------------------
    # Nodes and links
    # ------------------------------------------------------------------

    async def add_node(self, data: Any) -> MemoryNode:
        if not self._ready:
            raise StorageError("MemoryMesh is not initialized")

        while len(self._nodes) >= self.config.max_nodes:
            self._evict_one()

        node = MemoryNode(id=uuid.uuid4().hex[:16], content=data)
        self._nodes[node.id] = node
        self._keywords[node.id] = extract_keywords(stringify(data))
        self._access_counts[node.id] = 0
        self.logger.debug(f"Stored node {node.id} ({len(self._nodes)}/{self.config.max_nodes})")
        return node

    def _evict_one(self) -> None:
        """Evict the least-accessed node, oldest first on ties."""
        victim = min(self._nodes, key=lambda node_id: self._access_counts[node_id])
        node = self._nodes.pop(victim)
        for concept in node.concepts:
            members = self._concept_index.get(concept)
            if members:
                members.discard(victim)
                if not members:
                    del self._concept_index[concept]
        self._keywords.pop(victim, None)
        self._access_counts.pop(victim, None)
        self._evictions += 1
        self.logger.debug(f"Evicted node {victim}")

    async def link_nodes(self, node_id: str, concepts: Iterable[str]) -> None:
        if not self._ready:
            raise LinkError("MemoryMesh is not initialized", node_id=node_id)
        node = self.get_node(node_id)
        if node is None:
            raise LinkError("Unknown memory node", node_id=node_id)

        for concept in concepts:
            label = str(concept).strip().lower()
            if not label or label in node.concepts:
                continue
            node.concepts.append(label)
            self._concept_index.setdefault(label, set()).add(node_id)

    def get_node(self, node_id: str) -> Optional[MemoryNode]:
        return self._nodes.get(node_id)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(self, query: str) -> List[Dict[str, Any]]:
        if not self._ready:
            raise SearchError("MemoryMesh is not initialized")

        query_keywords = extract_keywords(stringify(query))
        if not query_keywords:
            return []

        candidates = []
        for node_id, node in self._nodes.items():
            concepts = set(node.concepts)
            score = jaccard_similarity(query_keywords, self._keywords[node_id] | concepts)
            score += self.config.concept_weight * len(query_keywords & concepts)
            if score > self.config.min_score:
                self._access_counts[node_id] += 1
                candidates.append({
                    "id": node_id,
                    "content": node.content,
                    "concepts": list(node.concepts),
                    "score": score,
                })
        return candidates

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    async def export_state(self) -> Dict[str, Any]:
        return {
            "max_nodes": self.config.max_nodes,
            "nodes": [
                dict(node.to_dict(), access_count=self._access_counts[node_id])
                for node_id, node in self._nodes.items()
            ],
        }

    async def import_state(self, state: Dict[str, Any]) -> None:
        try:
            nodes = [
                MemoryNode(
                    id=str(entry["id"]),
                    content=entry["content"],
                    concepts=list(entry.get("concepts", [])),
                    metadata=dict(entry.get("metadata", {})),
                    created_at=datetime.fromisoformat(entry["created_at"]),
                )
                for entry in state["nodes"]
            ]
            access_counts = {str(e["id"]): int(e.get("access_count", 0)) for e in state["nodes"]}
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError("Invalid MemoryMesh state", component="memory",
                                     original_error=e) from e

        self._reset()
        for node in nodes[-self.config.max_nodes:]:
            self._nodes[node.id] = node
            self._keywords[node.id] = extract_keywords(stringify(node.content))
            self._access_counts[node.id] = access_counts.get(node.id, 0)
            for concept in node.concepts:
                self._concept_index.setdefault(concept, set()).add(node.id)
        self.logger.info(f"Imported {len(self._nodes)} nodes")

    def get_stats(self) -> Dict[str, Any]:
        return {
            "ready": self._ready,
            "node_count": len(self._nodes),
            "max_nodes": self.config.max_nodes,
            "utilization": len(self._nodes) / self.config.max_nodes,
            "concept_count": len(self._concept_index),
            "link_count": sum(len(node.concepts) for node in self._nodes.values()),
            "evictions": self._evictions,
        }
