"""
Coordinates: small integers projecting a cube state for table lookups.

Every coordinate has a scalar version (one CubeState) and a batch version
(a numpy array with one state per row) used to build the transition tables.
The solved cube has coordinate 0 everywhere.
"""

from math import comb, factorial
from typing import Sequence, Tuple

import numpy as np

from .cube import CubeState

N_TWIST = 3 ** 7          # corner orientations
N_FLIP = 2 ** 11          # edge orientations
N_SLICE = comb(12, 4)     # positions of the 4 UD-slice edges
N_CORNER_PERM = factorial(8)
N_UD_EDGE_PERM = factorial(8)
N_SLICE_PERM = factorial(4)

_TWIST_WEIGHTS = 3 ** np.arange(6, -1, -1)
_FLIP_WEIGHTS = 2 ** np.arange(10, -1, -1)
_COMB = np.array([[comb(n, k) for k in range(6)] for n in range(12)], dtype=np.int64)


# ============================================================================
# Scalar coordinates
# ============================================================================

def permutation_rank(perm: Sequence[int]) -> int:
    """Lehmer rank; equals the index in ``itertools.permutations`` order."""
    n = len(perm)
    rank = 0
    for i in range(n):
        smaller = 0
        for j in range(i + 1, n):
            if perm[j] < perm[i]:
                smaller += 1
        rank = rank * (n - i) + smaller
    return rank


def twist(state: CubeState) -> int:
    value = 0
    for o in state.corner_orient[:7]:
        value = 3 * value + o
    return value


def flip(state: CubeState) -> int:
    value = 0
    for o in state.edge_orient[:11]:
        value = 2 * value + o
    return value


def ud_slice(state: CubeState) -> int:
    """Rank of the set of slots holding FR, FL, BL, BR (order ignored)."""
    value = 0
    found = 0
    for j in range(11, -1, -1):
        if state.edge_perm[j] >= 8:
            found += 1
            value += comb(11 - j, found)
    return value


def corner_perm(state: CubeState) -> int:
    return permutation_rank(state.corner_perm)


def ud_edge_perm(state: CubeState) -> int:
    """Permutation of the 8 U/D-layer edges. Defined for G1 states only."""
    edges = state.edge_perm[:8]
    if any(e >= 8 for e in edges):
        raise ValueError("ud_edge_perm requires the slice edges inside the UD slice")
    return permutation_rank(edges)


def slice_perm(state: CubeState) -> int:
    """Permutation of the 4 UD-slice edges. Defined for G1 states only."""
    edges = state.edge_perm[8:]
    if any(e < 8 for e in edges):
        raise ValueError("slice_perm requires the slice edges inside the UD slice")
    return permutation_rank([e - 8 for e in edges])


def phase1_coords(state: CubeState) -> Tuple[int, int, int]:
    return twist(state), flip(state), ud_slice(state)


def phase2_coords(state: CubeState) -> Tuple[int, int, int]:
    return corner_perm(state), ud_edge_perm(state), slice_perm(state)


# ============================================================================
# Batch coordinates
# ============================================================================

def permutation_rank_batch(perms: np.ndarray) -> np.ndarray:
    perms = np.asarray(perms)
    n = perms.shape[1]
    rank = np.zeros(perms.shape[0], dtype=np.int64)
    for i in range(n):
        smaller = (perms[:, i + 1:] < perms[:, i:i + 1]).sum(axis=1)
        rank = rank * (n - i) + smaller
    return rank


def twist_batch(corner_orient: np.ndarray) -> np.ndarray:
    return np.asarray(corner_orient)[:, :7].astype(np.int64) @ _TWIST_WEIGHTS


def flip_batch(edge_orient: np.ndarray) -> np.ndarray:
    return np.asarray(edge_orient)[:, :11].astype(np.int64) @ _FLIP_WEIGHTS


def ud_slice_batch(edge_perm: np.ndarray) -> np.ndarray:
    is_slice = np.asarray(edge_perm) >= 8
    value = np.zeros(is_slice.shape[0], dtype=np.int64)
    found = np.zeros(is_slice.shape[0], dtype=np.int64)
    for j in range(11, -1, -1):
        hit = is_slice[:, j]
        found += hit
        value += np.where(hit, _COMB[11 - j, found], 0)
    return value


def corner_perm_batch(corner_perm: np.ndarray) -> np.ndarray:
    return permutation_rank_batch(corner_perm)


def ud_edge_perm_batch(edge_perm: np.ndarray) -> np.ndarray:
    return permutation_rank_batch(np.asarray(edge_perm)[:, :8])


def slice_perm_batch(edge_perm: np.ndarray) -> np.ndarray:
    return permutation_rank_batch(np.asarray(edge_perm)[:, 8:] - 8)
