import numpy as np
import pytest

from py333 import Phase1Solver, Phase2Solver, SolverConfig, TwoPhaseSolver, get_tables


@pytest.fixture(scope="session")
def tables():
    # built once for the whole test session (a few seconds)
    return get_tables()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture(scope="session")
def phase1(tables):
    return Phase1Solver(tables)


@pytest.fixture(scope="session")
def phase2(tables):
    return Phase2Solver(tables)


@pytest.fixture(scope="session")
def solver(tables):
    return TwoPhaseSolver(SolverConfig(timeout=1.0), tables=tables)


@pytest.fixture(scope="session")
def fast_solver(tables):
    """Stops at the first solution found."""
    return TwoPhaseSolver(SolverConfig(max_extra_depth=0, timeout=0.5), tables=tables)
