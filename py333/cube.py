"""
Combinatorial cube state: permutation and orientation of the 20 movable pieces.
"""

import operator
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
from pydantic import ValidationError

from .config import CubeStateModel
from .errors import InvalidStateError
from .moves import MOVE_CUBIES, Move, MoveLike, multiply, to_move, to_moves

N_CORNERS = 8
N_EDGES = 12

# UD-slice edges FR, FL, BL, BR and the slots they occupy in G1
SLICE_EDGES = frozenset(range(8, 12))


def parity(perm: Sequence[int]) -> int:
    """0 for an even permutation, 1 for an odd one."""
    inversions = 0
    for i in range(len(perm)):
        for j in range(i + 1, len(perm)):
            if perm[j] < perm[i]:
                inversions += 1
    return inversions % 2


@dataclass(frozen=True)
class CubeState:
    corner_perm: tuple = tuple(range(N_CORNERS))
    corner_orient: tuple = (0,) * N_CORNERS
    edge_perm: tuple = tuple(range(N_EDGES))
    edge_orient: tuple = (0,) * N_EDGES

    def __post_init__(self):
        # accept lists / numpy arrays but always store plain int tuples;
        # operator.index refuses floats instead of truncating them
        for name in ("corner_perm", "corner_orient", "edge_perm", "edge_orient"):
            object.__setattr__(self, name, tuple(operator.index(v) for v in getattr(self, name)))

    # ------------------------------------------------------------------
    # Group action
    # ------------------------------------------------------------------

    def apply(self, move: MoveLike) -> "CubeState":
        """Return the state after turning ``move``."""
        return CubeState(*multiply(self._cubies(), MOVE_CUBIES[to_move(move)]))

    def apply_sequence(self, moves: Union[str, Iterable[MoveLike]]) -> "CubeState":
        cubies = self._cubies()
        for move in to_moves(moves):
            cubies = multiply(cubies, MOVE_CUBIES[move])
        return CubeState(*cubies)

    def _cubies(self):
        return (self.corner_perm, self.corner_orient, self.edge_perm, self.edge_orient)

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def is_solved(self) -> bool:
        return self == SOLVED

    def is_in_g1(self) -> bool:
        """Phase-1 goal: no twist, no flip, slice edges inside the UD slice."""
        return (
            not any(self.corner_orient)
            and not any(self.edge_orient)
            and set(self.edge_perm[8:]) == SLICE_EDGES
        )

    def validate(self) -> "CubeState":
        """Check the four invariants of a physically realizable cube.

        Raises:
            InvalidStateError: naming the first invariant that does not hold.
        """
        if sorted(self.corner_perm) != list(range(N_CORNERS)):
            raise InvalidStateError(f"corner_perm is not a permutation of 0..7: {self.corner_perm}")
        if sorted(self.edge_perm) != list(range(N_EDGES)):
            raise InvalidStateError(f"edge_perm is not a permutation of 0..11: {self.edge_perm}")
        if len(self.corner_orient) != N_CORNERS or any(o not in (0, 1, 2) for o in self.corner_orient):
            raise InvalidStateError(f"corner_orient must hold 8 values in {{0,1,2}}: {self.corner_orient}")
        if len(self.edge_orient) != N_EDGES or any(o not in (0, 1) for o in self.edge_orient):
            raise InvalidStateError(f"edge_orient must hold 12 values in {{0,1}}: {self.edge_orient}")
        if sum(self.corner_orient) % 3:
            raise InvalidStateError("corner twist: sum(corner_orient) is not divisible by 3")
        if sum(self.edge_orient) % 2:
            raise InvalidStateError("edge flip: sum(edge_orient) is odd")
        if parity(self.corner_perm) != parity(self.edge_perm):
            raise InvalidStateError("permutation parity of corners and edges differs")
        return self

    # ------------------------------------------------------------------
    # Construction / serialization
    # ------------------------------------------------------------------

    @classmethod
    def solved(cls) -> "CubeState":
        return SOLVED

    @classmethod
    def from_scramble(cls, moves: Union[str, Iterable[MoveLike]]) -> "CubeState":
        return SOLVED.apply_sequence(moves)

    @classmethod
    def random(cls, rng: Optional[np.random.Generator] = None) -> "CubeState":
        """Uniformly random legal state."""
        if rng is None:
            rng = np.random.default_rng()
        cp = rng.permutation(N_CORNERS).tolist()
        ep = rng.permutation(N_EDGES).tolist()
        if parity(cp) != parity(ep):
            ep[-2], ep[-1] = ep[-1], ep[-2]
        co = rng.integers(0, 3, size=N_CORNERS - 1).tolist()
        co.append(-sum(co) % 3)
        eo = rng.integers(0, 2, size=N_EDGES - 1).tolist()
        eo.append(sum(eo) % 2)
        return cls(cp, co, ep, eo)

    def to_dict(self) -> Dict[str, List[int]]:
        return {
            "corner_perm": list(self.corner_perm),
            "corner_orient": list(self.corner_orient),
            "edge_perm": list(self.edge_perm),
            "edge_orient": list(self.edge_orient),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Sequence[int]]) -> "CubeState":
        """Build and validate a state from the ``to_dict`` format.

        Every entry must be a plain int; floats, bools and strings are
        rejected rather than converted.
        """
        try:
            model = CubeStateModel.model_validate(dict(data))
        except (ValidationError, TypeError, ValueError) as e:
            raise InvalidStateError(f"Malformed cube state: {e}") from e
        return cls(**model.model_dump()).validate()


SOLVED = CubeState()


def apply(move: MoveLike, state: CubeState) -> CubeState:
    """Group action of one move on a state."""
    return state.apply(move)
