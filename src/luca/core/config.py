"""
LUCA Core Configuration
Immutable settings fixed at startup and shared read-only by all operations.
"""

from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any, Dict, List, Mapping
import json

import yaml

from luca.core.exceptions import ConfigurationError


def read_config_file(path: str) -> Dict[str, Any]:
    """Parse a YAML (or ``.json``) file into a mapping."""
    try:
        with open(path, "r") as f:
            if path.endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not load {path}: {e}", path=path) from e

    data = data or {}
    if not isinstance(data, dict):
        raise ConfigurationError("Config file must contain a mapping", path=path)
    return data


@dataclass(frozen=True)
class CoreConfig:
    """
    Configuration for the LUCA Core.

    Attributes:
        max_memory_nodes: Upper bound handed to the memory collaborator
        genome_population_size: Population size for the evolution collaborator
        evolution_generations: Generations run per evolve() call
        interpretation_threshold: Minimum confidence counted as success (0.0 - 1.0)
        extras: Free-form settings passed through untouched (read-only copy)
    """
    max_memory_nodes: int = 1000
    genome_population_size: int = 100
    evolution_generations: int = 50
    interpretation_threshold: float = 0.7
    extras: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "extras", MappingProxyType(dict(self.extras or {})))
        issues = self.validate()
        if issues:
            raise ConfigurationError("Invalid LUCA Core configuration", issues=issues)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        issues = []
        for name in ("max_memory_nodes", "genome_population_size", "evolution_generations"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                issues.append(f"ERROR: {name} must be a positive integer (got {value!r})")

        threshold = self.interpretation_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            issues.append(f"ERROR: interpretation_threshold must be a number (got {threshold!r})")
        elif not 0.0 <= threshold <= 1.0:
            issues.append(f"ERROR: interpretation_threshold must be within [0, 1] (got {threshold!r})")

        return issues

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoreConfig":
        """Construct from a dictionary. Unknown keys land in ``extras``."""
        known = {"max_memory_nodes", "genome_population_size",
                 "evolution_generations", "interpretation_threshold"}
        kwargs = {k: v for k, v in data.items() if k in known}
        extras = dict(data.get("extras") or {})
        extras.update({k: v for k, v in data.items() if k not in known and k != "extras"})
        return cls(**kwargs, extras=extras)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize configuration to dictionary."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["extras"] = dict(self.extras)
        return data

    @classmethod
    def from_file(cls, path: str) -> "CoreConfig":
        """Load the ``core:`` section of a YAML or JSON file."""
        return cls.from_dict(read_config_file(path).get("core") or {})
