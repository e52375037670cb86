"""
LUCA EmerickGenome
Population of gene vectors evolved against a hashed encoding of the input.

Features:
- Elite preservation with fitness-proportionate parent selection
- Uniform crossover and gaussian mutation
- Drift-adaptive mutation rates driven by interpretation feedback
- Candidate ranking for query results
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import hashlib

import numpy as np

from luca.core.base import EvolutionCollaborator
from luca.core.exceptions import (
    EvolutionError,
    FitnessUpdateError,
    RankingError,
    SerializationError,
)
from luca.core.schemas import GenomeResult, Interpretation
from luca.utils.text import (
    HashingEncoder,
    batch_cosine_similarity,
    cosine_similarity,
    extract_keywords,
    jaccard_similarity,
    stringify,
)


@dataclass
class GenomeConfig:
    """Configuration for the evolutionary collaborator."""
    population_size: int = 100
    generations: int = 50
    mutation_rate: float = 0.05
    crossover_rate: float = 0.7
    selection_top_k: int = 4
    dimension: int = 64
    trait_count: int = 5
    seed: Optional[int] = None


@dataclass(eq=False)
class Individual:
    """
    A single gene vector with its fitness lineage.

    Attributes:
        genes: Real-valued gene vector
        generation_id: Lineage tracking
        fitness_history: Bounded record of fitness evaluations
        parent_ids: Ids of the parents this individual was bred from
        traits: Keywords expressed most strongly by the genes
    """
    genes: np.ndarray
    generation_id: int = 0
    fitness_history: List[float] = field(default_factory=list)
    parent_ids: List[str] = field(default_factory=list)
    traits: List[str] = field(default_factory=list)

    @property
    def genome_id(self) -> str:
        digest = hashlib.sha256(self.genes.tobytes()).hexdigest()[:16]
        return f"gen{self.generation_id}_{digest}"

    @property
    def current_fitness(self) -> float:
        """Get most recent fitness value."""
        if not self.fitness_history:
            return 0.0
        return self.fitness_history[-1]

    @property
    def best_fitness(self) -> float:
        """Get best fitness ever achieved."""
        if not self.fitness_history:
            return 0.0
        return max(self.fitness_history)

    def record_fitness(self, fitness: float) -> None:
        """Record a fitness evaluation."""
        self.fitness_history.append(float(fitness))
        # Keep history bounded
        if len(self.fitness_history) > 100:
            self.fitness_history = self.fitness_history[-100:]

    def mutate(self, rng: np.random.Generator, mutation_rate: float,
               drift_metric: float = 0.0) -> "Individual":
        """
        Apply gaussian noise to a random subset of genes.

        HIGH drift -> larger steps for exploration
        """
        mask = rng.random(self.genes.shape) < max(mutation_rate, 1.0 / self.genes.size)
        scale = 0.1 * (1.0 + drift_metric)
        genes = self.genes + mask * rng.normal(0.0, scale, self.genes.shape)
        return Individual(
            genes=genes,
            generation_id=self.generation_id + 1,
            parent_ids=[self.genome_id],
        )

    def crossover(self, other: "Individual", rng: np.random.Generator) -> "Individual":
        """Uniform crossover with another individual."""
        mask = rng.random(self.genes.shape) < 0.5
        return Individual(
            genes=np.where(mask, self.genes, other.genes),
            generation_id=max(self.generation_id, other.generation_id) + 1,
            parent_ids=[self.genome_id, other.genome_id],
        )

    def to_text(self) -> str:
        return " ".join(self.traits)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "genome_id": self.genome_id,
            "genes": self.genes.tolist(),
            "generation_id": self.generation_id,
            "fitness_history": list(self.fitness_history),
            "parent_ids": list(self.parent_ids),
            "traits": list(self.traits),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Individual":
        return cls(
            genes=np.asarray(data["genes"], dtype=np.float64),
            generation_id=int(data.get("generation_id", 0)),
            fitness_history=[float(f) for f in data.get("fitness_history", [])],
            parent_ids=list(data.get("parent_ids", [])),
            traits=list(data.get("traits", [])),
        )


class EmerickGenome(EvolutionCollaborator):
    """
    Evolution collaborator managing a population of Individuals.

    Example:
        genome = EmerickGenome(GenomeConfig(population_size=16, generations=10))
        await genome.initialize()
        result = await genome.evolve("wind turbines generate power")
        await genome.update_fitness(0.8)
    """

    def __init__(self, config: Optional[GenomeConfig] = None):
        super().__init__(config)
        self.config = config or GenomeConfig()
        self.encoder = HashingEncoder(self.config.dimension)
        self._rng = np.random.default_rng(self.config.seed)

        # Population state
        self.population: List[Individual] = []
        self.current_generation: int = 0
        self.best_individual: Optional[Individual] = None

        # Drift tracking
        self._drift_metric: float = 0.0
        self._feedback_count: int = 0
        self._ready = False

    async def initialize(self) -> None:
        self.population = [self._random_individual() for _ in range(self.config.population_size)]
        self.current_generation = 0
        self.best_individual = None
        self._ready = True
        self.logger.info(f"Initialized population with {len(self.population)} individuals")

    async def shutdown(self) -> None:
        self._ready = False
        self.population = []
        self.best_individual = None
        self.logger.info("EmerickGenome released")

    def _random_individual(self) -> Individual:
        genes = self._rng.normal(0.0, 1.0, self.config.dimension)
        return Individual(genes=genes / (np.linalg.norm(genes) + 1e-8))

    # ------------------------------------------------------------------
    # Evolution
    # ------------------------------------------------------------------

    async def evolve(self, data: Any) -> GenomeResult:
        """
        Evolve the population against ``data`` for the configured generations.

        Returns:
            GenomeResult carrying the fittest individual of the final generation
        """
        if not self._ready or not self.population:
            raise EvolutionError("EmerickGenome is not initialized")

        target = self.encoder.encode(data)
        mutation_rate = self._get_adaptive_mutation_rate(self._drift_metric)

        fitness_scores = self._evaluate(target)
        for _ in range(self.config.generations - 1):
            self.population = self._next_generation(fitness_scores, mutation_rate)
            self.current_generation += 1
            fitness_scores = self._evaluate(target)

        best_index = int(np.argmax(fitness_scores))
        best = self.population[best_index]
        best.traits = self.encoder.decode(best.genes, top_k=self.config.trait_count)
        self.best_individual = best

        self.logger.debug(
            f"Generation {self.current_generation}: best={fitness_scores[best_index]:.4f}, "
            f"avg={float(np.mean(fitness_scores)):.4f}, drift={self._drift_metric:.3f}"
        )
        return GenomeResult(
            best_individual=best,
            fitness=float(fitness_scores[best_index]),
            generation=self.current_generation,
        )

    def _evaluate(self, target: np.ndarray) -> np.ndarray:
        genes = np.stack([ind.genes for ind in self.population])
        if not np.any(target):
            scores = np.zeros(len(self.population))
        else:
            scores = np.clip(batch_cosine_similarity(target, genes), 0.0, 1.0)
        for individual, score in zip(self.population, scores):
            individual.record_fitness(score)
        return scores

    def _next_generation(self, fitness_scores: np.ndarray, mutation_rate: float) -> List[Individual]:
        elite_count = min(self.config.selection_top_k, len(self.population))
        sorted_indices = np.argsort(fitness_scores)[::-1]  # Descending
        new_population = [self.population[i] for i in sorted_indices[:elite_count]]

        while len(new_population) < self.config.population_size:
            parent_a, parent_b = self._select_parents(fitness_scores)
            if self._rng.random() < self.config.crossover_rate:
                child = parent_a.crossover(parent_b, self._rng)
            else:
                child = parent_a.mutate(self._rng, mutation_rate, self._drift_metric)
            if self._rng.random() < mutation_rate:
                child = child.mutate(self._rng, mutation_rate, self._drift_metric)
            new_population.append(child)

        return new_population

    def _select_parents(self, fitness_scores: np.ndarray) -> Tuple[Individual, Individual]:
        """Select two parents using fitness-proportionate selection."""
        if len(self.population) < 2:
            return self.population[0], self.population[0]
        shifted = fitness_scores - fitness_scores.min() + 0.01  # Shift to positive
        probabilities = shifted / shifted.sum()
        indices = self._rng.choice(len(self.population), size=2, replace=False, p=probabilities)
        return self.population[indices[0]], self.population[indices[1]]

    def _get_adaptive_mutation_rate(self, drift_metric: float) -> float:
        """
        HIGH drift -> higher mutation for exploration
        LOW drift -> lower mutation for exploitation
        """
        base_rate = self.config.mutation_rate
        if drift_metric > 0.7:
            return min(0.3, base_rate * 2.0)
        elif drift_metric > 0.3:
            return min(0.2, base_rate * 1.5)
        return base_rate

    async def update_fitness(self, confidence: float) -> None:
        """
        Record interpretation confidence as feedback on the current best.

        Low confidence raises the drift metric, which widens mutation.
        """
        try:
            value = float(confidence)
        except (TypeError, ValueError) as e:
            raise FitnessUpdateError(f"Invalid confidence: {confidence!r}") from e
        if not 0.0 <= value <= 1.0:
            raise FitnessUpdateError(f"Confidence out of range: {value}")
        if self.best_individual is None:
            raise FitnessUpdateError("No evolved individual to reward")

        self.best_individual.record_fitness(value)
        # Exponential moving average of dissatisfaction
        self._drift_metric = 0.7 * self._drift_metric + 0.3 * (1.0 - value)
        self._feedback_count += 1

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    async def select_best(
        self,
        candidates: List[Dict[str, Any]],
        query_interpretation: Interpretation,
    ) -> List[Dict[str, Any]]:
        """
        Rank candidates against the query interpretation.

        Score = memory score + concept overlap + genome affinity weighted by
        the query confidence.
        """
        try:
            query_concepts = set(query_interpretation.related_concepts)
            confidence = float(query_interpretation.confidence)
            ranked = []
            for candidate in candidates:
                entry = dict(candidate) if isinstance(candidate, dict) else {"content": candidate}
                concepts = set(entry.get("concepts", []))
                keywords = extract_keywords(stringify(entry.get("content"))) | concepts
                overlap = jaccard_similarity(query_concepts, keywords)
                affinity = 0.0
                if self.best_individual is not None:
                    vector = self.encoder.encode(" ".join(sorted(keywords)))
                    affinity = max(0.0, cosine_similarity(self.best_individual.genes, vector))
                entry["rank_score"] = float(entry.get("score", 0.0)) + overlap + confidence * affinity
                ranked.append(entry)
        except (AttributeError, TypeError, ValueError) as e:
            raise RankingError(f"Could not rank candidates: {e}") from e

        ranked.sort(key=lambda c: c["rank_score"], reverse=True)
        return ranked

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    async def export_state(self) -> Dict[str, Any]:
        return {
            "generation": self.current_generation,
            "drift_metric": self._drift_metric,
            "feedback_count": self._feedback_count,
            "population": [ind.to_dict() for ind in self.population],
            "best_index": (
                self.population.index(self.best_individual)
                if self.best_individual in self.population else None
            ),
            "vocabulary": {str(k): v for k, v in self.encoder.vocabulary.items()},
        }

    async def import_state(self, state: Dict[str, Any]) -> None:
        try:
            population = [Individual.from_dict(d) for d in state["population"]]
            vocabulary = {int(k): str(v) for k, v in state.get("vocabulary", {}).items()}
            best_index = state.get("best_index")
            best = population[int(best_index)] if best_index is not None else None
            generation = int(state.get("generation", 0))
            drift = float(state.get("drift_metric", 0.0))
        except (IndexError, KeyError, TypeError, ValueError) as e:
            raise SerializationError("Invalid EmerickGenome state", component="evolution",
                                     original_error=e) from e

        if any(ind.genes.shape != (self.config.dimension,) for ind in population):
            raise SerializationError("Gene dimension mismatch", component="evolution")

        self.population = population or [self._random_individual()
                                         for _ in range(self.config.population_size)]
        self.best_individual = best
        self.encoder.vocabulary = vocabulary
        self.current_generation = generation
        self._drift_metric = drift
        self._feedback_count = int(state.get("feedback_count", 0))
        self.logger.info(f"Imported population of {len(self.population)} at generation {generation}")

    def get_stats(self) -> Dict[str, Any]:
        """Get current population statistics."""
        if not self.population:
            return {"status": "empty", "generation": self.current_generation}

        fitness_values = [ind.current_fitness for ind in self.population]
        return {
            "generation": self.current_generation,
            "population_size": len(self.population),
            "best_fitness": float(max(fitness_values)),
            "average_fitness": float(np.mean(fitness_values)),
            "fitness_std": float(np.std(fitness_values)),
            "drift_metric": float(self._drift_metric),
            "mutation_rate": self._get_adaptive_mutation_rate(self._drift_metric),
            "feedback_count": self._feedback_count,
            "best_genome_id": self.best_individual.genome_id if self.best_individual else None,
        }
