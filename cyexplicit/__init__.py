"""
Cyexplicit - Explicit constraint solving on Lie group state vectors

Compose functions that each compute part of a state vector from another part
into a single evaluation and a single Jacobian over the whole state.
"""

from beartype import BeartypeConf
from beartype.claw import beartype_package

beartype_package(__name__, conf=BeartypeConf(is_pep484_tower=True))

__version__ = "0.1.0"

from . import lie
from .block_indices import BlockIndices, BlockView, MatrixBlocks, MatrixBlockView
from .errors import (
    DependencyCycleError,
    EvaluationError,
    ExplicitSolverError,
    SizeMismatchError,
)
from .explicit_solver import (
    DEFAULT_SQUARED_ERROR_THRESHOLD,
    ExplicitFunctionEntry,
    ExplicitSolver,
)
from .function import ConstantFunction, DifferentiableFunction, SymbolicFunction

__all__ = [
    "lie",
    "BlockIndices",
    "BlockView",
    "MatrixBlocks",
    "MatrixBlockView",
    "DependencyCycleError",
    "EvaluationError",
    "ExplicitSolverError",
    "SizeMismatchError",
    "DEFAULT_SQUARED_ERROR_THRESHOLD",
    "ExplicitFunctionEntry",
    "ExplicitSolver",
    "ConstantFunction",
    "DifferentiableFunction",
    "SymbolicFunction",
    "__version__",
]
