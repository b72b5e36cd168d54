"""
Transition (move) tables and pruning tables for the two search phases.

A transition table maps (coordinate, move) -> coordinate and is built by
enumerating one representative state per coordinate value and turning all of
them at once with numpy. A pruning table maps a coordinate (or a pair of
coordinates) to the number of moves needed to reach coordinate 0, found by a
breadth-first search from the solved cube that expands one whole level per
step.

Tables are built once per process, made read-only, and shared by every solver
through a TableRegistry.
"""

import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, fields
from datetime import datetime
from functools import cached_property
from itertools import combinations, permutations, product
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Union

import numpy as np
from tqdm import tqdm

from . import coords
from .config import TableMetadata
from .moves import ALL_MOVES, MOVE_CUBIES, PHASE2_MOVES

N_MOVES = len(ALL_MOVES)
UNVISITED = 255
TABLES_FORMAT_VERSION = 1
METADATA_FILE = "tables.json"

_MOVE_CP = np.array([c[0] for c in MOVE_CUBIES], dtype=np.int64)
_MOVE_CO = np.array([c[1] for c in MOVE_CUBIES], dtype=np.int64)
_MOVE_EP = np.array([c[2] for c in MOVE_CUBIES], dtype=np.int64)
_MOVE_EO = np.array([c[3] for c in MOVE_CUBIES], dtype=np.int64)

_ALL = [int(m) for m in ALL_MOVES]
_G1 = [int(m) for m in PHASE2_MOVES]


# ============================================================================
# Representatives: one state fragment per coordinate value
# ============================================================================

def _twist_reps() -> np.ndarray:
    digits = np.array(list(product(range(3), repeat=7)), dtype=np.int64)
    return np.column_stack([digits, -digits.sum(axis=1) % 3])


def _flip_reps() -> np.ndarray:
    digits = np.array(list(product(range(2), repeat=11)), dtype=np.int64)
    return np.column_stack([digits, digits.sum(axis=1) % 2])


def _slice_reps() -> np.ndarray:
    reps = []
    for slots in combinations(range(12), 4):
        ep = np.empty(12, dtype=np.int64)
        ep[list(slots)] = [8, 9, 10, 11]
        ep[[j for j in range(12) if j not in slots]] = range(8)
        reps.append(ep)
    return np.array(reps)


def _corner_perm_reps() -> np.ndarray:
    return np.array(list(permutations(range(8))), dtype=np.int64)


def _ud_edge_perm_reps() -> np.ndarray:
    perms = np.array(list(permutations(range(8))), dtype=np.int64)
    slice_edges = np.tile(np.arange(8, 12), (len(perms), 1))
    return np.column_stack([perms, slice_edges])


def _slice_perm_reps() -> np.ndarray:
    perms = np.array(list(permutations(range(8, 12))), dtype=np.int64)
    ud_edges = np.tile(np.arange(8), (len(perms), 1))
    return np.column_stack([ud_edges, perms])


# ============================================================================
# Batch move application (same cubie tables as CubeState.apply)
# ============================================================================

def _turn_corner_orient(co: np.ndarray, move: int) -> np.ndarray:
    return (co[:, _MOVE_CP[move]] + _MOVE_CO[move]) % 3


def _turn_edge_orient(eo: np.ndarray, move: int) -> np.ndarray:
    return (eo[:, _MOVE_EP[move]] + _MOVE_EO[move]) % 2


def _turn_corner_perm(cp: np.ndarray, move: int) -> np.ndarray:
    return cp[:, _MOVE_CP[move]]


def _turn_edge_perm(ep: np.ndarray, move: int) -> np.ndarray:
    return ep[:, _MOVE_EP[move]]


def build_move_table(
    reps: np.ndarray,
    rank: Callable[[np.ndarray], np.ndarray],
    turn: Callable[[np.ndarray, int], np.ndarray],
    moves: Sequence[int] = _ALL,
) -> np.ndarray:
    """
    Transition table of shape (N, 18); columns of moves not in ``moves`` hold -1.

    Args:
        reps: one representative per coordinate value (any order)
        rank: batch coordinate function
        turn: batch move application for the pieces in ``reps``
        moves: moves to tabulate
    """
    ranks = rank(reps)
    n = len(ranks)
    if not np.array_equal(np.sort(ranks), np.arange(n)):
        raise RuntimeError("Representatives do not cover the coordinate range exactly once")
    reps = reps[np.argsort(ranks)]

    table = np.full((n, N_MOVES), -1, dtype=np.int32)
    for m in moves:
        table[:, m] = rank(turn(reps, m))
    return table


def build_pruning_table(
    outer: np.ndarray,
    moves: Sequence[int],
    inner: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Breadth-first distances from coordinate 0.

    With ``inner`` given the table covers the pair (outer, inner), indexed
    ``outer * len(inner) + inner``.
    """
    n_inner = 1 if inner is None else inner.shape[0]
    dist = np.full(outer.shape[0] * n_inner, UNVISITED, dtype=np.uint8)
    dist[0] = 0
    frontier = np.zeros(1, dtype=np.int64)
    depth = 0
    while frontier.size:
        depth += 1
        o, i = np.divmod(frontier, n_inner)
        found = []
        for m in moves:
            nxt = outer[o, m].astype(np.int64) * n_inner
            if inner is not None:
                nxt += inner[i, m]
            nxt = nxt[dist[nxt] == UNVISITED]
            dist[nxt] = depth
            found.append(nxt)
        frontier = np.unique(np.concatenate(found))
    return dist


# name -> (representatives, batch coordinate, batch turn, moves)
_MOVE_TABLE_RECIPES = {
    "twist_move": (_twist_reps, coords.twist_batch, _turn_corner_orient, _ALL),
    "flip_move": (_flip_reps, coords.flip_batch, _turn_edge_orient, _ALL),
    "slice_move": (_slice_reps, coords.ud_slice_batch, _turn_edge_perm, _ALL),
    "corner_perm_move": (_corner_perm_reps, coords.corner_perm_batch, _turn_corner_perm, _ALL),
    "ud_edge_perm_move": (_ud_edge_perm_reps, coords.ud_edge_perm_batch, _turn_edge_perm, _G1),
    "slice_perm_move": (_slice_perm_reps, coords.slice_perm_batch, _turn_edge_perm, _G1),
}

# name -> (outer transition table, inner transition table or None, moves)
_PRUNE_TABLE_RECIPES = {
    "twist_prune": ("twist_move", None, _ALL),
    "flip_prune": ("flip_move", None, _ALL),
    "slice_prune": ("slice_move", None, _ALL),
    "twist_slice_prune": ("twist_move", "slice_move", _ALL),
    "flip_slice_prune": ("flip_move", "slice_move", _ALL),
    "corner_perm_prune": ("corner_perm_move", None, _G1),
    "ud_edge_perm_prune": ("ud_edge_perm_move", None, _G1),
    "slice_perm_prune": ("slice_perm_move", None, _G1),
    "corner_slice_prune": ("corner_perm_move", "slice_perm_move", _G1),
    "edge_slice_prune": ("ud_edge_perm_move", "slice_perm_move", _G1),
}


@dataclass(frozen=True, eq=False)
class PruningTables:
    # transition tables, int32 (N, 18)
    twist_move: np.ndarray
    flip_move: np.ndarray
    slice_move: np.ndarray
    corner_perm_move: np.ndarray
    ud_edge_perm_move: np.ndarray
    slice_perm_move: np.ndarray
    # distance tables, uint8
    twist_prune: np.ndarray
    flip_prune: np.ndarray
    slice_prune: np.ndarray
    twist_slice_prune: np.ndarray
    flip_slice_prune: np.ndarray
    corner_perm_prune: np.ndarray
    ud_edge_perm_prune: np.ndarray
    slice_perm_prune: np.ndarray
    corner_slice_prune: np.ndarray
    edge_slice_prune: np.ndarray

    def __post_init__(self):
        for array in self.arrays().values():
            array.setflags(write=False)

    def arrays(self) -> Dict[str, np.ndarray]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @cached_property
    def lookup(self) -> Dict[str, Union[bytes, list]]:
        """Python-native copies for per-node access during search.

        Transition tables become flat lists indexed ``coord * 18 + move``;
        distance tables become bytes.
        """
        views = {}
        for name, array in self.arrays().items():
            if array.dtype == np.uint8:
                views[name] = array.tobytes()
            else:
                views[name] = array.ravel().tolist()
        return views

    # ------------------------------------------------------------------
    # Disk cache
    # ------------------------------------------------------------------

    def save(self, directory: Union[str, Path], build_seconds: float = 0.0) -> Path:
        """Write one ``<name>.npy`` per table plus ``tables.json``."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        arrays = self.arrays()
        for name, array in arrays.items():
            np.save(directory / f"{name}.npy", array)

        metadata = TableMetadata(
            format_version=TABLES_FORMAT_VERSION,
            shapes={name: list(array.shape) for name, array in arrays.items()},
            build_seconds=build_seconds,
            created=datetime.now().isoformat(timespec="seconds"),
        )
        with open(directory / METADATA_FILE, "w") as f:
            json.dump(metadata.model_dump(), f, indent=2)
        return directory

    @classmethod
    def load(cls, directory: Union[str, Path]) -> "PruningTables":
        directory = Path(directory)
        metadata_path = directory / METADATA_FILE
        if not metadata_path.exists():
            raise FileNotFoundError(f"No pruning tables found in {directory}")

        with open(metadata_path, "r") as f:
            metadata = TableMetadata(**json.load(f))
        if metadata.format_version != TABLES_FORMAT_VERSION:
            raise ValueError(
                f"Table format {metadata.format_version} in {directory}, expected {TABLES_FORMAT_VERSION}"
            )

        arrays = {}
        for f in fields(cls):
            array = np.load(directory / f"{f.name}.npy")
            if list(array.shape) != metadata.shapes.get(f.name):
                raise ValueError(f"Table {f.name} in {directory} has shape {array.shape}")
            arrays[f.name] = array
        return cls(**arrays)


def build_tables(workers: Optional[int] = None, verbose: bool = False) -> PruningTables:
    """Build every transition and pruning table.

    Tables of the same kind are independent of each other and are built in a
    thread pool.
    """
    start = time.time()
    if verbose:
        print("generating transition tables...")
    move_tables = _run_parallel(
        {name: _move_table_job(*recipe) for name, recipe in _MOVE_TABLE_RECIPES.items()},
        workers, verbose, "Transition tables",
    )

    if verbose:
        print("generating pruning tables...")
    prune_tables = _run_parallel(
        {name: _prune_table_job(move_tables, *recipe) for name, recipe in _PRUNE_TABLE_RECIPES.items()},
        workers, verbose, "Pruning tables",
    )

    tables = PruningTables(**move_tables, **prune_tables)
    if verbose:
        print(f"tables ready in {time.time() - start:.2f}s")
    return tables


def _move_table_job(reps, rank, turn, moves):
    return lambda: build_move_table(reps(), rank, turn, moves)


def _prune_table_job(move_tables, outer, inner, moves):
    return lambda: build_pruning_table(
        move_tables[outer], moves, None if inner is None else move_tables[inner]
    )


def _run_parallel(jobs: Dict[str, Callable[[], np.ndarray]], workers, verbose, desc) -> Dict[str, np.ndarray]:
    results = {}
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(job): name for name, job in jobs.items()}
        for future in tqdm(as_completed(futures), total=len(futures), desc=desc, disable=not verbose):
            results[futures[future]] = future.result()
    return results


# ============================================================================
# Registry
# ============================================================================

class TableRegistry:
    """Builds (or loads) the tables once, then hands out the same instance.

    When ``cache_dir`` is set the tables are loaded from it if present,
    otherwise built and written there.
    """

    def __init__(self, cache_dir: Optional[Union[str, Path]] = None, workers: Optional[int] = None,
                 verbose: bool = False):
        self.cache_dir = Path(cache_dir) if cache_dir else None
        self.workers = workers
        self.verbose = verbose
        self._tables: Optional[PruningTables] = None
        self._lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self._tables is not None

    def get(self) -> PruningTables:
        tables = self._tables
        if tables is not None:
            return tables
        with self._lock:
            if self._tables is None:
                self._tables = self._load_or_build()
            return self._tables

    def _load_or_build(self) -> PruningTables:
        if self.cache_dir is not None and (self.cache_dir / METADATA_FILE).exists():
            if self.verbose:
                print(f"loading pruning tables from {self.cache_dir}")
            return PruningTables.load(self.cache_dir)

        start = time.time()
        tables = build_tables(self.workers, self.verbose)
        if self.cache_dir is not None:
            tables.save(self.cache_dir, build_seconds=time.time() - start)
            if self.verbose:
                print(f"saved pruning tables to {self.cache_dir}")
        return tables


_registries: Dict[Optional[str], TableRegistry] = {}
_registries_lock = threading.Lock()


def get_registry(cache_dir: Optional[Union[str, Path]] = None, verbose: bool = False) -> TableRegistry:
    """Process-wide registry for one cache location (``None``: memory only).

    A later call with ``verbose=True`` turns progress output on for the
    shared registry; it is never turned off again.
    """
    key = str(Path(cache_dir).resolve()) if cache_dir else None
    with _registries_lock:
        if key not in _registries:
            _registries[key] = TableRegistry(cache_dir=key, verbose=verbose)
        registry = _registries[key]
        if verbose:
            registry.verbose = True
        return registry


def get_tables(cache_dir: Optional[Union[str, Path]] = None, verbose: bool = False) -> PruningTables:
    return get_registry(cache_dir, verbose).get()
