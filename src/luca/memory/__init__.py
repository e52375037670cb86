"""
LUCA Memory Module
Reference memory collaborator: a bounded node mesh with concept links.
"""

from luca.memory.mesh import MemoryMesh, MeshConfig

__all__ = [
    "MemoryMesh",
    "MeshConfig",
]
