from itertools import permutations

import numpy as np
import pytest

from py333 import ALL_MOVES, PHASE2_MOVES, SOLVED, CubeState, random_moves
from py333 import coords
from py333.tables import N_MOVES


def _g1_state(rng, length=15):
    moves = [PHASE2_MOVES[i] for i in rng.integers(0, len(PHASE2_MOVES), size=length)]
    return SOLVED.apply_sequence(moves)


def test_sizes():
    assert coords.N_TWIST == 2187
    assert coords.N_FLIP == 2048
    assert coords.N_SLICE == 495
    assert coords.N_CORNER_PERM == coords.N_UD_EDGE_PERM == 40320
    assert coords.N_SLICE_PERM == 24


def test_solved_is_zero():
    assert coords.phase1_coords(SOLVED) == (0, 0, 0)
    assert coords.phase2_coords(SOLVED) == (0, 0, 0)


def test_permutation_rank_is_lexicographic():
    for index, perm in enumerate(permutations(range(5))):
        assert coords.permutation_rank(perm) == index
    perms = np.array(list(permutations(range(5))))
    assert np.array_equal(coords.permutation_rank_batch(perms), np.arange(len(perms)))


def test_coordinate_ranges(rng):
    for _ in range(100):
        state = CubeState.random(rng)
        assert 0 <= coords.twist(state) < coords.N_TWIST
        assert 0 <= coords.flip(state) < coords.N_FLIP
        assert 0 <= coords.ud_slice(state) < coords.N_SLICE
        assert 0 <= coords.corner_perm(state) < coords.N_CORNER_PERM


def test_ud_slice_ignores_slice_edge_order():
    assert coords.ud_slice(SOLVED.apply_sequence("R2 L2 F2 B2")) == 0
    assert coords.ud_slice(SOLVED.apply("R")) != 0


def test_phase2_coords_need_g1():
    state = SOLVED.apply("R")
    with pytest.raises(ValueError):
        coords.ud_edge_perm(state)
    with pytest.raises(ValueError):
        coords.slice_perm(state)


def test_batch_matches_scalar(rng):
    states = [CubeState.random(rng) for _ in range(64)]
    co = np.array([s.corner_orient for s in states])
    eo = np.array([s.edge_orient for s in states])
    cp = np.array([s.corner_perm for s in states])
    ep = np.array([s.edge_perm for s in states])
    assert coords.twist_batch(co).tolist() == [coords.twist(s) for s in states]
    assert coords.flip_batch(eo).tolist() == [coords.flip(s) for s in states]
    assert coords.ud_slice_batch(ep).tolist() == [coords.ud_slice(s) for s in states]
    assert coords.corner_perm_batch(cp).tolist() == [coords.corner_perm(s) for s in states]

    g1 = [_g1_state(rng) for _ in range(64)]
    ep = np.array([s.edge_perm for s in g1])
    assert coords.ud_edge_perm_batch(ep).tolist() == [coords.ud_edge_perm(s) for s in g1]
    assert coords.slice_perm_batch(ep).tolist() == [coords.slice_perm(s) for s in g1]


def test_phase1_transitions_match_cube(tables, rng):
    for _ in range(30):
        state = SOLVED.apply_sequence(random_moves(rng, 20))
        twist, flip, slice_ = coords.phase1_coords(state)
        for move in ALL_MOVES:
            after = state.apply(move)
            assert tables.twist_move[twist, move] == coords.twist(after)
            assert tables.flip_move[flip, move] == coords.flip(after)
            assert tables.slice_move[slice_, move] == coords.ud_slice(after)
            assert tables.corner_perm_move[coords.corner_perm(state), move] == coords.corner_perm(after)


def test_phase2_transitions_match_cube(tables, rng):
    for _ in range(30):
        state = _g1_state(rng)
        corner, edge, slice_ = coords.phase2_coords(state)
        for move in PHASE2_MOVES:
            after = state.apply(move)
            assert tables.corner_perm_move[corner, move] == coords.corner_perm(after)
            assert tables.ud_edge_perm_move[edge, move] == coords.ud_edge_perm(after)
            assert tables.slice_perm_move[slice_, move] == coords.slice_perm(after)


def test_phase2_tables_leave_other_moves_empty(tables):
    other = [m for m in range(N_MOVES) if m not in set(int(x) for x in PHASE2_MOVES)]
    assert (tables.ud_edge_perm_move[:, other] == -1).all()
    assert (tables.slice_perm_move[:, other] == -1).all()
