"""
Two-phase solver.

Phase 1 searches with all 18 moves until the cube is in
G1 = <U, D, R2, L2, F2, B2> (no twist, no flip, slice edges in the slice).
Phase 2 solves the G1 cube with the 10 moves that generate G1. Both phases are
IDA* over coordinates, pruned by the distance tables in ``tables.py``.
"""

import time
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Protocol, Tuple

from .config import SolverConfig
from .coords import N_SLICE, N_SLICE_PERM, phase1_coords, phase2_coords
from .cube import CubeState
from .errors import DepthExhaustedError, Phase2PreconditionError
from .moves import ALL_MOVES, PHASE2_MOVES, Move, format_moves, is_redundant
from .tables import N_MOVES, PruningTables, get_tables

_ALL = [int(m) for m in ALL_MOVES]
_G1 = [int(m) for m in PHASE2_MOVES]


def _followers(moves: List[int], exclude: Tuple[int, ...] = ()) -> Dict[int, List[int]]:
    """Moves allowed after a move on ``last_face`` (-1: first move)."""
    return {
        last_face: [m for m in moves if not is_redundant(m, last_face) and m not in exclude]
        for last_face in range(-1, 6)
    }


_PHASE1_FOLLOWERS = _followers(_ALL)
# a phase-1 solution never ends with a G1 move: its prefix would already be in G1
_PHASE1_LAST_FOLLOWERS = _followers(_ALL, exclude=tuple(_G1))
_PHASE2_FOLLOWERS = _followers(_G1)


class SearchTimeout(Exception):
    """Raised inside a search when its deadline passes."""


class SearchContext:
    """Per-call bookkeeping shared by the recursive search."""
    __slots__ = ("nodes", "deadline")

    def __init__(self, deadline: Optional[float] = None):
        self.nodes = 0
        self.deadline = deadline

    def tick(self):
        self.nodes += 1
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise SearchTimeout()


class CubeSolver(Protocol):
    def solve(self, state: CubeState) -> List[Move]:
        ...


# ============================================================================
# Phase 1
# ============================================================================

class Phase1Solver:
    """IDA* from any valid state into G1."""

    def __init__(self, tables: Optional[PruningTables] = None, max_depth: int = 12,
                 use_pair_tables: bool = True):
        self.tables = tables if tables is not None else get_tables()
        self.max_depth = max_depth
        self.use_pair_tables = use_pair_tables

        lookup = self.tables.lookup
        self._twist_move = lookup["twist_move"]
        self._flip_move = lookup["flip_move"]
        self._slice_move = lookup["slice_move"]
        self._twist_prune = lookup["twist_prune"]
        self._flip_prune = lookup["flip_prune"]
        self._slice_prune = lookup["slice_prune"]
        self._twist_slice_prune = lookup["twist_slice_prune"]
        self._flip_slice_prune = lookup["flip_slice_prune"]

    def _distance(self, twist: int, flip: int, slice_: int) -> int:
        h = max(self._twist_prune[twist], self._flip_prune[flip], self._slice_prune[slice_])
        if self.use_pair_tables:
            h = max(
                h,
                self._twist_slice_prune[twist * N_SLICE + slice_],
                self._flip_slice_prune[flip * N_SLICE + slice_],
            )
        return h

    def heuristic(self, state: CubeState) -> int:
        """Lower bound on the number of moves from ``state`` into G1."""
        return self._distance(*phase1_coords(state))

    def solve(self, state: CubeState) -> Optional[List[Move]]:
        """Shortest move sequence into G1, or None if longer than ``max_depth``.

        Moves are tried in encoding order and the first shortest sequence
        wins, so for ``R`` this is ``[R]`` (reaching G1 as R2) rather than
        ``[R']``. ``TwoPhaseSolver`` keeps searching and ends with ``R'``.
        """
        return next(self.solutions(state), None)

    def solutions(self, state: CubeState, max_depth: Optional[int] = None,
                  context: Optional[SearchContext] = None) -> Iterator[List[Move]]:
        """Every phase-1 solution, shortest first."""
        max_depth = self.max_depth if max_depth is None else max_depth
        for depth in range(self.heuristic(state), max_depth + 1):
            yield from self.solutions_at_depth(state, depth, context)

    def solutions_at_depth(self, state: CubeState, depth: int,
                           context: Optional[SearchContext] = None) -> Iterator[List[Move]]:
        twist, flip, slice_ = phase1_coords(state)
        if self._distance(twist, flip, slice_) > depth:
            return
        if context is None:
            context = SearchContext()
        yield from self._search(twist, flip, slice_, depth, -1, [], context)

    def _search(self, twist, flip, slice_, togo, last_face, path, context):
        if togo == 0:
            if twist == 0 and flip == 0 and slice_ == 0:
                yield [Move(m) for m in path]
            return
        context.tick()

        followers = _PHASE1_LAST_FOLLOWERS if togo == 1 else _PHASE1_FOLLOWERS
        for m in followers[last_face]:
            t = self._twist_move[twist * N_MOVES + m]
            f = self._flip_move[flip * N_MOVES + m]
            s = self._slice_move[slice_ * N_MOVES + m]
            if self._distance(t, f, s) >= togo:
                continue
            path.append(m)
            yield from self._search(t, f, s, togo - 1, m // 3, path, context)
            path.pop()


# ============================================================================
# Phase 2
# ============================================================================

class Phase2Solver:
    """IDA* from a G1 state to solved, using G1 moves only."""

    def __init__(self, tables: Optional[PruningTables] = None, max_depth: int = 18,
                 use_pair_tables: bool = True):
        self.tables = tables if tables is not None else get_tables()
        self.max_depth = max_depth
        self.use_pair_tables = use_pair_tables

        lookup = self.tables.lookup
        self._corner_move = lookup["corner_perm_move"]
        self._edge_move = lookup["ud_edge_perm_move"]
        self._slice_move = lookup["slice_perm_move"]
        self._corner_prune = lookup["corner_perm_prune"]
        self._edge_prune = lookup["ud_edge_perm_prune"]
        self._slice_prune = lookup["slice_perm_prune"]
        self._corner_slice_prune = lookup["corner_slice_prune"]
        self._edge_slice_prune = lookup["edge_slice_prune"]

    def _distance(self, corner: int, edge: int, slice_: int) -> int:
        h = max(self._corner_prune[corner], self._edge_prune[edge], self._slice_prune[slice_])
        if self.use_pair_tables:
            h = max(
                h,
                self._corner_slice_prune[corner * N_SLICE_PERM + slice_],
                self._edge_slice_prune[edge * N_SLICE_PERM + slice_],
            )
        return h

    def heuristic(self, state: CubeState) -> int:
        self._check_g1(state)
        return self._distance(*phase2_coords(state))

    def solve(self, state: CubeState, max_depth: Optional[int] = None, last_face: Optional[int] = None,
              context: Optional[SearchContext] = None) -> Optional[List[Move]]:
        """
        Shortest G1-move sequence solving ``state``.

        Args:
            last_face: face of the move played just before ``state``; the
                first move then follows the same redundancy rule as inside
                the search

        Returns:
            The moves, or None if no solution exists within ``max_depth``.

        Raises:
            Phase2PreconditionError: ``state`` is not in G1.
        """
        self._check_g1(state)
        max_depth = self.max_depth if max_depth is None else max_depth
        if context is None:
            context = SearchContext()

        first_face = -1 if last_face is None else int(last_face)
        corner, edge, slice_ = phase2_coords(state)
        path = []
        for depth in range(self._distance(corner, edge, slice_), max_depth + 1):
            if self._search(corner, edge, slice_, depth, first_face, path, context):
                return [Move(m) for m in path]
        return None

    @staticmethod
    def _check_g1(state: CubeState):
        if not state.is_in_g1():
            raise Phase2PreconditionError("Phase 2 needs a state in G1; run phase 1 first")

    def _search(self, corner, edge, slice_, togo, last_face, path, context) -> bool:
        if togo == 0:
            return corner == 0 and edge == 0 and slice_ == 0
        context.tick()

        for m in _PHASE2_FOLLOWERS[last_face]:
            c = self._corner_move[corner * N_MOVES + m]
            e = self._edge_move[edge * N_MOVES + m]
            s = self._slice_move[slice_ * N_MOVES + m]
            if self._distance(c, e, s) >= togo:
                continue
            path.append(m)
            if self._search(c, e, s, togo - 1, m // 3, path, context):
                return True
            path.pop()
        return False


# ============================================================================
# Two-phase
# ============================================================================

@dataclass(frozen=True)
class Solution:
    phase1_moves: Tuple[Move, ...] = ()
    phase2_moves: Tuple[Move, ...] = ()
    phase1_seconds: float = 0.0
    phase2_seconds: float = 0.0
    total_seconds: float = 0.0
    phase1_nodes: int = 0
    phase2_nodes: int = 0
    success: bool = False

    @property
    def moves(self) -> List[Move]:
        return list(self.phase1_moves) + list(self.phase2_moves)

    @property
    def length(self) -> int:
        return len(self.phase1_moves) + len(self.phase2_moves)

    @property
    def notation(self) -> str:
        return format_moves(self.moves)

    @property
    def phase1_notation(self) -> str:
        return format_moves(self.phase1_moves)

    @property
    def phase2_notation(self) -> str:
        return format_moves(self.phase2_moves)

    def unwrap(self) -> List[Move]:
        """The moves; raises DepthExhaustedError if the search failed."""
        if not self.success:
            raise DepthExhaustedError("No solution found within the configured depth limits")
        return self.moves

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "moves": self.notation,
            "phase1": self.phase1_notation,
            "phase2": self.phase2_notation,
            "length": self.length,
            "phase1_seconds": self.phase1_seconds,
            "phase2_seconds": self.phase2_seconds,
            "total_seconds": self.total_seconds,
            "phase1_nodes": self.phase1_nodes,
            "phase2_nodes": self.phase2_nodes,
        }


class TwoPhaseSolver:
    """
    Phase 1 into G1, then phase 2 to solved.

    Phase-1 solutions are tried shortest first. After the first complete
    solution the search continues with longer phase-1 solutions (bounded by
    ``max_extra_depth`` and ``timeout``), and each phase-2 search is limited so
    that only strictly shorter totals are accepted.
    """

    def __init__(self, config: Optional[SolverConfig] = None, tables: Optional[PruningTables] = None):
        self.config = config if config is not None else SolverConfig()
        if tables is None:
            tables = get_tables(self.config.table_dir, self.config.verbose)
        self.tables = tables
        self.phase1 = Phase1Solver(tables, self.config.phase1_max_depth, self.config.use_pair_tables)
        self.phase2 = Phase2Solver(tables, self.config.phase2_max_depth, self.config.use_pair_tables)

    def solve(self, state: CubeState) -> List[Move]:
        """Solving moves; empty when already solved or when no solution was found."""
        solution = self.solve_detailed(state)
        return solution.moves if solution.success else []

    def solve_detailed(self, state: CubeState) -> Solution:
        """
        Solve ``state`` and report per-phase moves, timings and node counts.

        Raises:
            InvalidStateError: ``state`` is not a legal cube.
        """
        state.validate()
        config = self.config
        start = time.perf_counter()
        phase2_seconds = 0.0
        context1 = SearchContext()
        context2 = SearchContext()

        best: Optional[Tuple[List[Move], List[Move]]] = None
        best_length = 0
        first_depth = 0

        try:
            for depth in range(self.phase1.heuristic(state), config.phase1_max_depth + 1):
                if best is not None and (depth >= best_length or depth > first_depth + config.max_extra_depth):
                    break
                if config.verbose:
                    print("phase 1 depth {}".format(depth))

                for phase1 in self.phase1.solutions_at_depth(state, depth, context1):
                    limit = config.phase2_max_depth
                    if best is not None:
                        limit = min(limit, best_length - depth - 1)
                        if limit < 0:
                            break

                    g1_state = state.apply_sequence(phase1)
                    phase2_start = time.perf_counter()
                    try:
                        phase2 = self.phase2.solve(g1_state, limit, context=context2)
                    finally:
                        phase2_seconds += time.perf_counter() - phase2_start
                    if phase2 is None:
                        continue

                    if best is None:
                        first_depth = depth
                        if config.timeout is not None:
                            context1.deadline = context2.deadline = time.monotonic() + config.timeout
                    best = (phase1, phase2)
                    best_length = depth + len(phase2)
                    if config.verbose:
                        print(f"  {best_length} moves: {format_moves(phase1)} | {format_moves(phase2)}")
                    if best_length == depth:
                        break
        except SearchTimeout:
            if config.verbose:
                print("  timeout, keeping best solution")

        total_seconds = time.perf_counter() - start
        phase1_moves, phase2_moves = best if best is not None else ([], [])
        return Solution(
            phase1_moves=tuple(phase1_moves),
            phase2_moves=tuple(phase2_moves),
            phase1_seconds=total_seconds - phase2_seconds,
            phase2_seconds=phase2_seconds,
            total_seconds=total_seconds,
            phase1_nodes=context1.nodes,
            phase2_nodes=context2.nodes,
            success=best is not None,
        )
