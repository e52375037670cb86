"""
LUCA Core Schema Definitions
Result records exchanged between the orchestrator and its collaborators.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum
from datetime import datetime

from pydantic import BaseModel, Field


class ConfidenceLevel(Enum):
    """Confidence level categories."""
    HIGH = "high"          # >= 0.8
    MEDIUM = "medium"      # 0.5 - 0.8
    LOW = "low"            # 0.3 - 0.5
    VERY_LOW = "very_low"  # < 0.3

    @classmethod
    def from_confidence(cls, confidence: float) -> "ConfidenceLevel":
        if confidence >= 0.8:
            return cls.HIGH
        if confidence >= 0.5:
            return cls.MEDIUM
        if confidence >= 0.3:
            return cls.LOW
        return cls.VERY_LOW


def _serialize(value: Any) -> Any:
    """Best-effort conversion of collaborator payloads into plain data."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize(v) for v in value]
    return value


@dataclass
class MemoryNode:
    """A node handed back by the memory collaborator."""
    id: str
    content: Any
    concepts: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": _serialize(self.content),
            "concepts": list(self.concepts),
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class GenomeResult:
    """Outcome of one evolution cycle: the best individual and its fitness."""
    best_individual: Any
    fitness: float
    generation: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best_individual": _serialize(self.best_individual),
            "fitness": self.fitness,
            "generation": self.generation,
        }


@dataclass(frozen=True)
class Interpretation:
    """
    Semantic judgment of an individual or a raw query.

    Attributes:
        confidence: Overall confidence (0.0 - 1.0)
        related_concepts: Concepts the subject relates to
        level: Categorical confidence level
        signals: Specific signals that shaped the score
    """
    confidence: float
    related_concepts: List[str] = field(default_factory=list)
    level: Optional[ConfidenceLevel] = None
    signals: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.level is None:
            object.__setattr__(self, "level", ConfidenceLevel.from_confidence(self.confidence))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence": self.confidence,
            "related_concepts": list(self.related_concepts),
            "level": self.level.value,
            "signals": list(self.signals),
        }


@dataclass(frozen=True)
class ProcessResult:
    """Immutable outcome of a single process() call."""
    memory_node_id: str
    genome_result: GenomeResult
    interpretation: Interpretation
    timestamp: datetime
    success: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "memory_node_id": self.memory_node_id,
            "genome_result": self.genome_result.to_dict(),
            "interpretation": self.interpretation.to_dict(),
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
        }


@dataclass(frozen=True)
class QueryResult:
    """Immutable outcome of a query() call. Results are ordered, most relevant first."""
    query: str
    results: Tuple[Any, ...]
    confidence: float
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": self.query,
            "results": _serialize(list(self.results)),
            "confidence": self.confidence,
            "timestamp": self.timestamp.isoformat(),
        }


class SnapshotState(BaseModel):
    """
    Aggregate state produced by LUCACore.snapshot().

    Collaborator sub-states are opaque to the Core; persisting the
    snapshot is the caller's job.
    """
    version: int = 1
    config: Dict[str, Any]
    stats: Dict[str, Any] = Field(default_factory=dict)
    memory_state: Dict[str, Any]
    evolution_state: Dict[str, Any]
    interpretation_state: Dict[str, Any]
    saved_at: str

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()
