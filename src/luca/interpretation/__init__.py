"""
LUCA Interpretation Module
Reference interpretation collaborator: confidence scoring and related concepts.
"""

from luca.interpretation.module import InterpretationModule, InterpreterConfig

__all__ = [
    "InterpretationModule",
    "InterpreterConfig",
]
