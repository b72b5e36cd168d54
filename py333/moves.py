"""
Face turns of the 3x3x3 cube.

Move encoding (array index into every transition table):
    0=U  1=U2  2=U'   3=R  4=R2  5=R'   6=F  7=F2  8=F'
    9=D 10=D2 11=D'  12=L 13=L2 14=L'  15=B 16=B2 17=B'

Pieces are numbered
    corners: URF UFL ULB UBR DFR DLF DBL DRB  (0-7)
    edges:   UR UF UL UB DR DF DL DB FR FL BL BR  (0-11)
and every move is stored as a cubie table (cp, co, ep, eo): after the move,
slot i holds the piece that was in slot cp[i], twisted by co[i].
"""

from enum import IntEnum
from typing import Iterable, List, Sequence, Tuple, Union

import numpy as np

from .errors import MoveParseError

Cubies = Tuple[Tuple[int, ...], Tuple[int, ...], Tuple[int, ...], Tuple[int, ...]]


class Face(IntEnum):
    U = 0
    R = 1
    F = 2
    D = 3
    L = 4
    B = 5

    @property
    def axis(self) -> int:
        """0 for U/D, 1 for R/L, 2 for F/B."""
        return self.value % 3

    @property
    def opposite(self) -> "Face":
        return Face((self.value + 3) % 6)


class Move(IntEnum):
    U = 0
    U2 = 1
    U3 = 2
    R = 3
    R2 = 4
    R3 = 5
    F = 6
    F2 = 7
    F3 = 8
    D = 9
    D2 = 10
    D3 = 11
    L = 12
    L2 = 13
    L3 = 14
    B = 15
    B2 = 16
    B3 = 17

    @property
    def face(self) -> Face:
        return Face(self.value // 3)

    @property
    def turns(self) -> int:
        """Clockwise quarter turns: 1, 2 or 3."""
        return self.value % 3 + 1

    @property
    def axis(self) -> int:
        return self.face.axis

    @property
    def inverse(self) -> "Move":
        return Move(self.value - self.value % 3 + (2 - self.value % 3))

    @property
    def notation(self) -> str:
        return self.face.name + _SUFFIXES[self.turns]

    @classmethod
    def parse(cls, token: str) -> "Move":
        """Parse one notation token such as ``R``, ``R2`` or ``R'``."""
        token = token.strip()
        if not token or token[0] not in Face.__members__:
            raise MoveParseError(f"Invalid move token: {token!r}")
        suffix = token[1:]
        if suffix not in _TURNS_BY_SUFFIX:
            raise MoveParseError(f"Invalid move token: {token!r}")
        return cls(Face[token[0]] * 3 + _TURNS_BY_SUFFIX[suffix] - 1)

    def __str__(self) -> str:
        return self.notation


_SUFFIXES = {1: "", 2: "2", 3: "'"}
# U3 and Ui are accepted as aliases of U'
_TURNS_BY_SUFFIX = {"": 1, "2": 2, "'": 3, "3": 3, "i": 3, "’": 3}

ALL_MOVES: Tuple[Move, ...] = tuple(Move)

# Moves that keep a cube inside G1 = <U, D, R2, L2, F2, B2>
PHASE2_MOVES: Tuple[Move, ...] = (
    Move.U, Move.U2, Move.U3,
    Move.R2,
    Move.F2,
    Move.D, Move.D2, Move.D3,
    Move.L2,
    Move.B2,
)


MoveLike = Union[Move, int, str]


def parse_moves(text: str) -> List[Move]:
    """Parse a space-separated move sequence, e.g. ``"U R F2 D' L2"``."""
    return [Move.parse(token) for token in text.split()]


def format_moves(moves: Iterable[MoveLike]) -> str:
    """Serialize moves as space-separated notation."""
    return " ".join(to_move(m).notation for m in moves)


def to_move(value: MoveLike) -> Move:
    if isinstance(value, Move):
        return value
    if isinstance(value, str):
        return Move.parse(value)
    return Move(int(value))


def to_moves(moves: Union[str, Iterable[MoveLike]]) -> List[Move]:
    if isinstance(moves, str):
        return parse_moves(moves)
    return [to_move(m) for m in moves]


def invert_moves(moves: Union[str, Iterable[MoveLike]]) -> List[Move]:
    """Sequence that undoes ``moves``."""
    return [m.inverse for m in reversed(to_moves(moves))]


def is_redundant(move: int, last_face: int) -> bool:
    """Pruning rule shared by both search phases.

    A move is skipped when it turns the face turned last, or when it turns the
    opposite face of the same axis out of canonical order (U before D,
    R before L, F before B).
    """
    if last_face < 0:
        return False
    face = move // 3
    return face == last_face or (face % 3 == last_face % 3 and face < last_face)


def random_moves(rng: np.random.Generator, length: int) -> List[Move]:
    """Random scramble that never turns the same face twice in a row."""
    moves = []
    last_face = -1
    for _ in range(length):
        while True:
            move = int(rng.integers(0, len(ALL_MOVES)))
            if move // 3 != last_face:
                break
        moves.append(Move(move))
        last_face = move // 3
    return moves


# ============================================================================
# Cubie tables
# ============================================================================

_BASE_TURNS = {
    Face.U: (
        (3, 0, 1, 2, 4, 5, 6, 7),
        (0, 0, 0, 0, 0, 0, 0, 0),
        (3, 0, 1, 2, 4, 5, 6, 7, 8, 9, 10, 11),
        (0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0),
    ),
    Face.R: (
        (4, 1, 2, 0, 7, 5, 6, 3),
        (2, 0, 0, 1, 1, 0, 0, 2),
        (8, 1, 2, 3, 11, 5, 6, 7, 4, 9, 10, 0),
        (0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0),
    ),
    Face.F: (
        (1, 5, 2, 3, 0, 4, 6, 7),
        (1, 2, 0, 0, 2, 1, 0, 0),
        (0, 9, 2, 3, 4, 8, 6, 7, 1, 5, 10, 11),
        (0, 1, 0, 0, 0, 1, 0, 0, 1, 1, 0, 0),
    ),
    Face.D: (
        (0, 1, 2, 3, 5, 6, 7, 4),
        (0, 0, 0, 0, 0, 0, 0, 0),
        (0, 1, 2, 3, 5, 6, 7, 4, 8, 9, 10, 11),
        (0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0),
    ),
    Face.L: (
        (0, 2, 6, 3, 4, 1, 5, 7),
        (0, 1, 2, 0, 0, 2, 1, 0),
        (0, 1, 10, 3, 4, 5, 9, 7, 8, 2, 6, 11),
        (0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0),
    ),
    Face.B: (
        (0, 1, 3, 7, 4, 5, 2, 6),
        (0, 0, 1, 2, 0, 0, 2, 1),
        (0, 1, 2, 11, 4, 5, 6, 10, 8, 9, 3, 7),
        (0, 0, 0, 1, 0, 0, 0, 1, 0, 0, 1, 1),
    ),
}


def multiply(a: Cubies, b: Cubies) -> Cubies:
    """Cubie product a*b: perform a, then b."""
    a_cp, a_co, a_ep, a_eo = a
    b_cp, b_co, b_ep, b_eo = b
    return (
        tuple(a_cp[j] for j in b_cp),
        tuple((a_co[j] + t) % 3 for j, t in zip(b_cp, b_co)),
        tuple(a_ep[j] for j in b_ep),
        tuple((a_eo[j] + f) % 2 for j, f in zip(b_ep, b_eo)),
    )


def _build_move_cubies() -> List[Cubies]:
    tables = []
    for face in Face:
        base = _BASE_TURNS[face]
        power = base
        for _ in range(3):
            tables.append(power)
            power = multiply(power, base)
    return tables


MOVE_CUBIES: Sequence[Cubies] = tuple(_build_move_cubies())
