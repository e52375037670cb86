"""
LUCA: orchestration core coordinating memory, evolution and interpretation.
"""

from luca.config import CoreConfig, load_config
from luca.core import LUCACore, LearningStream, ProcessResult, QueryResult, SnapshotState
from luca.factory import create_core

__version__ = "1.0.0"

__all__ = [
    "CoreConfig",
    "load_config",
    "LUCACore",
    "LearningStream",
    "ProcessResult",
    "QueryResult",
    "SnapshotState",
    "create_core",
]
