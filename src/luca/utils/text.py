"""
LUCA text utilities
Keyword extraction, signature similarity and deterministic hashed vectors
shared by the reference collaborators.
"""

from typing import Any, Dict, Iterable, List, Set
import hashlib
import json
import re

import numpy as np

# STOP WORDS LIST (Common words to ignore during keyword extraction)
STOP_WORDS = {
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "has", "he",
    "in", "is", "it", "its", "of", "on", "that", "the", "to", "was", "were",
    "will", "with", "you", "your", "me", "my", "i", "this", "what", "how", "why",
    "not", "but", "or", "so", "can", "into", "than", "then", "there", "they",
}


def stringify(data: Any) -> str:
    """Render an arbitrary payload as text."""
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    if hasattr(data, "to_text"):
        return data.to_text()
    try:
        return json.dumps(data, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return str(data)


def tokenize(text: str) -> List[str]:
    return re.findall(r'\b\w+\b', text.lower())


def extract_keywords(text: str) -> Set[str]:
    """Extracts significant keywords by removing stop words."""
    if not text:
        return set()
    return {t for t in tokenize(text) if t not in STOP_WORDS and len(t) > 2}


def jaccard_similarity(a: Iterable[str], b: Iterable[str]) -> float:
    set1, set2 = set(a), set(b)
    union = len(set1 | set2)
    return len(set1 & set2) / union if union else 0.0


def stable_bucket(token: str, dimension: int) -> int:
    """Deterministic bucket for a token (independent of PYTHONHASHSEED)."""
    digest = hashlib.md5(token.encode()).hexdigest()
    return int(digest[:8], 16) % dimension


class HashingEncoder:
    """
    Maps text onto a fixed-size vector by hashing keywords into buckets.

    Also remembers which keyword last landed in each bucket so vectors can
    be read back as human terms.
    """

    def __init__(self, dimension: int = 64):
        self.dimension = dimension
        self.vocabulary: Dict[int, str] = {}

    def encode(self, data: Any) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype=np.float64)
        for keyword in sorted(extract_keywords(stringify(data))):
            bucket = stable_bucket(keyword, self.dimension)
            vector[bucket] += 1.0
            self.vocabulary[bucket] = keyword
        norm = np.linalg.norm(vector)
        return vector / norm if norm > 0 else vector

    def decode(self, vector: np.ndarray, top_k: int = 5, min_weight: float = 0.05) -> List[str]:
        """Return the known keywords carrying the most weight in ``vector``."""
        order = np.argsort(vector)[::-1]
        terms = []
        for bucket in order:
            if vector[bucket] < min_weight or len(terms) >= top_k:
                break
            term = self.vocabulary.get(int(bucket))
            if term:
                terms.append(term)
        return terms


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Compute cosine similarity between two vectors."""
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def batch_cosine_similarity(query: np.ndarray, vectors: np.ndarray) -> np.ndarray:
    """Compute cosine similarity between a query and multiple vectors."""
    query_norm = query / (np.linalg.norm(query) + 1e-8)
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    vectors_norm = vectors / (norms + 1e-8)
    return np.dot(vectors_norm, query_norm)
