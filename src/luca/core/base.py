"""
LUCA Core Base Classes
Abstract interfaces for the Memory, Evolution and Interpretation collaborators.

The orchestrator only talks to collaborators through these contracts, so
any implementation (or a test double) can be substituted.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional
import logging

from luca.core.schemas import GenomeResult, Interpretation, MemoryNode


class Collaborator(ABC):
    """
    Capability set shared by every collaborator.

    Collaborators own their internal state; the Core only sees the
    exported blob and the stats record.
    """

    name: str = "collaborator"

    def __init__(self, config: Optional[Any] = None):
        self.config = config
        self.logger = logging.getLogger(f"LUCA.{self.__class__.__name__}")

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the collaborator for use."""
        pass

    @abstractmethod
    async def export_state(self) -> Dict[str, Any]:
        """Export internal state as a plain, JSON-compatible dictionary."""
        pass

    @abstractmethod
    async def import_state(self, state: Dict[str, Any]) -> None:
        """Replace internal state with a previously exported blob."""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Get collaborator statistics."""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Release resources held by the collaborator."""
        pass


class MemoryCollaborator(Collaborator):
    """Addressable store of data nodes and their relations, with search."""

    name = "memory"

    @abstractmethod
    async def add_node(self, data: Any) -> MemoryNode:
        """Store a payload as a new node and return it with its unique id."""
        pass

    @abstractmethod
    async def link_nodes(self, node_id: str, concepts: Iterable[str]) -> None:
        """Link a node to a set of concept references."""
        pass

    @abstractmethod
    async def search(self, query: str) -> List[Dict[str, Any]]:
        """Return candidate nodes related to the query (no ordering guaranteed)."""
        pass


class EvolutionCollaborator(Collaborator):
    """Population-based optimizer yielding a best candidate and its fitness."""

    name = "evolution"

    @abstractmethod
    async def evolve(self, data: Any) -> GenomeResult:
        """Evolve the population against a payload."""
        pass

    @abstractmethod
    async def update_fitness(self, confidence: float) -> None:
        """Feed interpretation confidence back as fitness feedback."""
        pass

    @abstractmethod
    async def select_best(
        self,
        candidates: List[Dict[str, Any]],
        query_interpretation: Interpretation,
    ) -> List[Dict[str, Any]]:
        """Rank candidates against a query interpretation, most relevant first."""
        pass


class InterpretationCollaborator(Collaborator):
    """Scorer mapping an individual or a raw query to a confidence and concepts."""

    name = "interpretation"

    @abstractmethod
    async def analyze(self, subject: Any) -> Interpretation:
        """Analyze an individual or raw text."""
        pass
