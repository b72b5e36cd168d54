import numpy as np
import pytest

from py333 import ALL_MOVES, PHASE2_MOVES, Face, Move, MoveParseError, format_moves, invert_moves, parse_moves, random_moves
from py333.cube import SOLVED
from py333.moves import is_redundant


def test_parse_and_format():
    moves = parse_moves("R U2 F' D  L B2")
    assert moves == [Move.R, Move.U2, Move.F3, Move.D, Move.L, Move.B2]
    assert format_moves(moves) == "R U2 F' D L B2"
    assert parse_moves("") == []


def test_parse_aliases():
    assert parse_moves("U3 Ri F’") == [Move.U3, Move.R3, Move.F3]


@pytest.mark.parametrize("token", ["X", "R4", "r", "U''", "2R", "RU"])
def test_parse_rejects_bad_tokens(token):
    with pytest.raises(MoveParseError):
        Move.parse(token)


def test_parse_error_is_value_error():
    with pytest.raises(ValueError):
        parse_moves("R U Q")


def test_move_properties():
    assert len(ALL_MOVES) == 18
    assert [int(m) for m in ALL_MOVES] == list(range(18))
    assert Move.F2.face is Face.F
    assert Move.F2.turns == 2
    assert Move.L3.notation == "L'"
    assert str(Move.D) == "D"
    assert Move.R.inverse is Move.R3
    assert Move.U2.inverse is Move.U2
    assert Move.B3.inverse is Move.B
    assert Face.U.opposite is Face.D
    assert Face.L.opposite is Face.R
    assert Face.F.axis == Face.B.axis != Face.U.axis


def test_phase2_moves_are_g1_generators():
    assert len(PHASE2_MOVES) == 10
    for move in PHASE2_MOVES:
        assert move.face in (Face.U, Face.D) or move.turns == 2
        assert SOLVED.apply(move).is_in_g1()


def test_invert_moves():
    assert invert_moves("R U F'") == [Move.F, Move.U3, Move.R3]
    scramble = "R U R' U' F2 D L' B"
    assert SOLVED.apply_sequence(scramble).apply_sequence(invert_moves(scramble)).is_solved()


def test_is_redundant():
    assert not is_redundant(Move.R, -1)
    assert is_redundant(Move.R2, Face.R)
    # opposite faces only in U-D, R-L, F-B order
    assert not is_redundant(Move.D, Face.U)
    assert is_redundant(Move.U, Face.D)
    assert not is_redundant(Move.L3, Face.R)
    assert is_redundant(Move.R, Face.L)
    assert not is_redundant(Move.F, Face.U)


def test_random_moves():
    a = random_moves(np.random.default_rng(7), 30)
    b = random_moves(np.random.default_rng(7), 30)
    assert a == b
    assert len(a) == 30
    for prev, move in zip(a, a[1:]):
        assert prev.face != move.face
