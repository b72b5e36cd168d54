"""Exceptions raised by the py333 solver."""


class CubeError(Exception):
    """Base class for every error raised by py333."""


class InvalidStateError(CubeError, ValueError):
    """A cube state breaks one of the permutation/orientation invariants."""


class MoveParseError(CubeError, ValueError):
    """A move token is not valid face-turn notation."""


class Phase2PreconditionError(CubeError):
    """Phase 2 was asked to solve a state that is not in G1."""


class DepthExhaustedError(CubeError):
    """No solution was found within the configured search depths."""
