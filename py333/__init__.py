from .errors import (
    CubeError,
    InvalidStateError,
    MoveParseError,
    Phase2PreconditionError,
    DepthExhaustedError,
)

from .moves import (
    Face,
    Move,
    ALL_MOVES,
    PHASE2_MOVES,
    parse_moves,
    format_moves,
    invert_moves,
    random_moves,
)

from .cube import (
    CubeState,
    SOLVED,
    apply,
    parity,
)

from .config import (
    SolverConfig,
    EvaluateConfig,
    load_config,
)

from .tables import (
    PruningTables,
    TableRegistry,
    build_tables,
    get_registry,
    get_tables,
)

from .solver import (
    CubeSolver,
    Phase1Solver,
    Phase2Solver,
    TwoPhaseSolver,
    Solution,
)

__version__ = "0.1.0"

__all__ = [
    'CubeError',
    'InvalidStateError',
    'MoveParseError',
    'Phase2PreconditionError',
    'DepthExhaustedError',
    'Face',
    'Move',
    'ALL_MOVES',
    'PHASE2_MOVES',
    'parse_moves',
    'format_moves',
    'invert_moves',
    'random_moves',
    'CubeState',
    'SOLVED',
    'apply',
    'parity',
    'SolverConfig',
    'EvaluateConfig',
    'load_config',
    'PruningTables',
    'TableRegistry',
    'build_tables',
    'get_registry',
    'get_tables',
    'CubeSolver',
    'Phase1Solver',
    'Phase2Solver',
    'TwoPhaseSolver',
    'Solution',
]
