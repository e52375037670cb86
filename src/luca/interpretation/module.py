"""
LUCA InterpretationModule
Maps an evolved individual or a raw query onto a confidence score and a set
of related concepts.

Individuals are scored from their fitness and how many traits they express.
Raw text is scored from linguistic hedging markers and how familiar its
keywords are to the concepts learned so far.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import re

from luca.core.base import InterpretationCollaborator
from luca.core.exceptions import AnalysisError, SerializationError
from luca.core.schemas import Interpretation
from luca.utils.text import extract_keywords, stringify


@dataclass
class InterpreterConfig:
    """Configuration for the InterpretationModule."""
    threshold: float = 0.7
    max_concepts: int = 5
    fitness_weight: float = 0.6  # Remainder goes to trait coverage


class InterpretationModule(InterpretationCollaborator):
    """Confidence-scoring interpreter."""

    # Linguistic hedging patterns (ordered by strength)
    HEDGING_PATTERNS = [
        (r'\b(i don\'t know|i\'m not sure|unclear|uncertain|unknown)\b', 0.9),
        (r'\b(perhaps|maybe|possibly|presumably)\b', 0.8),
        (r'\b(might|could|may)\b', 0.6),
        (r'\b(i think|i believe|seems|appears)\b', 0.5),
        (r'\b(likely|probably|generally|usually)\b', 0.4),
        # Confidence markers
        (r'\b(definitely|certainly|absolutely|always)\b', -0.3),
    ]

    def __init__(self, config: Optional[InterpreterConfig] = None):
        super().__init__(config)
        self.config = config or InterpreterConfig()
        self._concept_counts: Counter = Counter()
        self._analysis_count = 0
        self._confidence_total = 0.0
        self._ready = False

    async def initialize(self) -> None:
        self._ready = True
        self.logger.info(f"InterpretationModule ready (threshold={self.config.threshold})")

    async def shutdown(self) -> None:
        self._ready = False
        self.logger.info("InterpretationModule released")

    async def analyze(self, subject: Any) -> Interpretation:
        if not self._ready:
            raise AnalysisError("InterpretationModule is not initialized")

        try:
            if hasattr(subject, "traits") and hasattr(subject, "current_fitness"):
                interpretation = self._analyze_individual(subject)
            else:
                interpretation = self._analyze_text(stringify(subject))
        except (TypeError, ValueError, AttributeError) as e:
            raise AnalysisError(f"Could not analyze subject: {e}") from e

        self._analysis_count += 1
        self._confidence_total += interpretation.confidence
        return interpretation

    def _analyze_individual(self, individual: Any) -> Interpretation:
        traits = [str(t).lower() for t in individual.traits][:self.config.max_concepts]
        fitness = max(0.0, min(1.0, float(individual.current_fitness)))
        coverage = len(traits) / self.config.max_concepts if self.config.max_concepts else 0.0

        signals = [f"fitness: {fitness:.2f}", f"trait_coverage: {coverage:.2f}"]
        if not traits:
            signals.append("no_expressed_traits")

        confidence = self.config.fitness_weight * fitness + (1.0 - self.config.fitness_weight) * coverage
        self._concept_counts.update(traits)
        return Interpretation(
            confidence=max(0.0, min(1.0, confidence)),
            related_concepts=traits,
            signals=signals,
        )

    def _analyze_text(self, text: str) -> Interpretation:
        keywords = extract_keywords(text)
        if not keywords:
            return Interpretation(confidence=0.0, related_concepts=[], signals=["empty_subject"])

        hedging_score, signals = self._analyze_hedging(text)
        known = [k for k in keywords if k in self._concept_counts]
        familiarity = len(known) / len(keywords)
        signals.append(f"familiarity: {familiarity:.2f}")

        # Known concepts first (most reinforced), then the remaining keywords
        ranked = sorted(known, key=lambda k: (-self._concept_counts[k], k))
        ranked += sorted(k for k in keywords if k not in self._concept_counts)

        confidence = 0.5 * hedging_score + 0.5 * familiarity
        return Interpretation(
            confidence=max(0.0, min(1.0, confidence)),
            related_concepts=ranked[:self.config.max_concepts],
            signals=signals,
        )

    def _analyze_hedging(self, text: str) -> Tuple[float, List[str]]:
        """
        Analyze text for hedging language.

        Returns:
            (hedging_score, signals) tuple
        """
        text_lower = text.lower()
        hedging_score = 1.0  # Start confident
        signals = []

        for pattern, weight in self.HEDGING_PATTERNS:
            matches = re.findall(pattern, text_lower)
            if not matches:
                continue
            if weight > 0:
                hedging_score -= weight * len(matches) * 0.1
                signals.append(f"hedging: {matches[0]}")
            else:
                hedging_score += abs(weight) * len(matches) * 0.1

        return max(0.0, min(1.0, hedging_score)), signals

    async def export_state(self) -> Dict[str, Any]:
        return {
            "concept_counts": dict(self._concept_counts),
            "analysis_count": self._analysis_count,
            "confidence_total": self._confidence_total,
        }

    async def import_state(self, state: Dict[str, Any]) -> None:
        try:
            counts = Counter({str(k): int(v) for k, v in state["concept_counts"].items()})
            analysis_count = int(state.get("analysis_count", 0))
            confidence_total = float(state.get("confidence_total", 0.0))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise SerializationError("Invalid InterpretationModule state", component="interpretation",
                                     original_error=e) from e

        self._concept_counts = counts
        self._analysis_count = analysis_count
        self._confidence_total = confidence_total

    def get_stats(self) -> Dict[str, Any]:
        return {
            "ready": self._ready,
            "threshold": self.config.threshold,
            "analysis_count": self._analysis_count,
            "known_concepts": len(self._concept_counts),
            "average_confidence": (
                self._confidence_total / self._analysis_count if self._analysis_count else 0.0
            ),
            "top_concepts": [c for c, _ in self._concept_counts.most_common(5)],
        }
