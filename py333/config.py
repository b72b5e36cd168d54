"""Configuration and I/O models."""

from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, StrictInt, field_validator


class SolverConfig(BaseModel):
    # Depth bounds of the two IDA* searches
    phase1_max_depth: int = 12
    phase2_max_depth: int = 18

    # After the first solution, keep trying phase-1 solutions up to this many
    # moves longer than the first one, looking for a shorter total
    max_extra_depth: int = 3

    # Seconds spent improving a solution once one is found (None = no limit)
    timeout: Optional[float] = 5.0

    # Also prune with the twist/flip x slice and perm x slice-perm tables
    use_pair_tables: bool = True

    # Directory for cached pruning tables (None = build in memory)
    table_dir: Optional[str] = None

    verbose: bool = False

    @field_validator("phase1_max_depth", "phase2_max_depth", "max_extra_depth")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("depth limits must be >= 0")
        return value

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("timeout must be positive")
        return value


class EvaluateConfig(BaseModel):
    num_cubes: int = 10
    scramble_moves: int = 20
    seed: int = 42
    workers: int = 1


class TableMetadata(BaseModel):
    format_version: int
    shapes: Dict[str, List[int]]
    build_seconds: float = 0.0
    created: str = ""


class CubeStateModel(BaseModel):
    """JSON form of a CubeState (``CubeState.to_dict``). Floats and bools are refused."""
    corner_perm: List[StrictInt]
    corner_orient: List[StrictInt]
    edge_perm: List[StrictInt]
    edge_orient: List[StrictInt]


def load_config(path: Union[str, Path], **overrides) -> SolverConfig:
    """Read a SolverConfig from YAML; keyword overrides that are not None win."""
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a mapping")
    data.update({k: v for k, v in overrides.items() if v is not None})
    return SolverConfig(**data)
