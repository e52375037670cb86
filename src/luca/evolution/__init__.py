"""
LUCA Evolution Module
Reference evolution collaborator: gene-vector population and its individuals.
"""

from luca.evolution.genome import EmerickGenome, GenomeConfig, Individual

__all__ = [
    "EmerickGenome",
    "GenomeConfig",
    "Individual",
]
