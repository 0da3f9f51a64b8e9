"""
Explicit constraint solver.

An :class:`ExplicitSolver` holds functions that each compute some entries of a
state vector directly from other entries. Every function is registered with
four block index sets:

- ``in_arg``: value space entries read by the function,
- ``out_arg``: value space entries written by the function,
- ``in_der``: derivative space columns of the function's Jacobian,
- ``out_der``: derivative space rows of the function's Jacobian.

No two functions may write the same entries. Entries not written by any
function are free: they are the variables left to a caller, typically an
implicit solver working on the free derivative columns of
:meth:`ExplicitSolver.jacobian`.

Example:
    >>> import numpy as np
    >>> from cyexplicit import BlockIndices, ConstantFunction, ExplicitSolver
    >>> from cyexplicit.lie import Rn
    >>> space = Rn(1)
    >>> solver = ExplicitSolver(3, 3)
    >>> lock = ConstantFunction(space, np.array([0.5]))
    >>> solver.add(lock, BlockIndices(), BlockIndices([(1, 1)]),
    ...            BlockIndices(), BlockIndices([(1, 1)]))
    True
    >>> q = np.zeros(3)
    >>> solver.solve(q)
    True
    >>> q
    array([0. , 0.5, 0. ])
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from beartype import beartype
from beartype.typing import Callable, List, Optional, Tuple

from cyexplicit.block_indices import BlockIndices, MatrixBlocks, MatrixBlockView
from cyexplicit.errors import DependencyCycleError, SizeMismatchError
from cyexplicit.function import DifferentiableFunction
from cyexplicit.graph import DependencyGraph

__all__ = [
    "ExplicitSolver",
    "ExplicitFunctionEntry",
    "DifferenceOperator",
    "DEFAULT_SQUARED_ERROR_THRESHOLD",
]

DEFAULT_SQUARED_ERROR_THRESHOLD = 1e-12

# (a, b) -> a - b, nq sized inputs, nv sized output
DifferenceOperator = Callable[[np.ndarray, np.ndarray], np.ndarray]


@dataclass(frozen=True)
class ExplicitFunctionEntry:
    """A function bound to the blocks it reads and writes."""

    function: DifferentiableFunction
    in_arg: BlockIndices
    out_arg: BlockIndices
    in_der: BlockIndices
    out_der: BlockIndices

    def depends_on(self, producer: ExplicitFunctionEntry) -> bool:
        """True if self reads a value or derivative block producer writes"""
        return self.in_arg.overlaps(producer.out_arg) or self.in_der.overlaps(
            producer.out_der
        )


@beartype
class ExplicitSolver:
    """
    Compose explicit functions into one evaluation and one Jacobian.

    nq is the size of the state value vector, nv the size of its derivative.
    difference computes a - b for two states, it defaults to subtraction
    which is only valid when nq == nv.
    """

    def __init__(
        self,
        nq: int,
        nv: int,
        difference: Optional[DifferenceOperator] = None,
        squared_error_threshold: float = DEFAULT_SQUARED_ERROR_THRESHOLD,
    ):
        if nq < 0 or nv < 0:
            raise ValueError(f"invalid sizes nq={nq}, nv={nv}")
        self._nq = nq
        self._nv = nv
        self._difference = difference
        self.squared_error_threshold = squared_error_threshold
        self._entries: List[ExplicitFunctionEntry] = []
        self._out_args = BlockIndices()
        self._out_ders = BlockIndices()
        self._graph = DependencyGraph()
        self._order: List[int] = []

    # accessors

    @property
    def nq(self) -> int:
        return self._nq

    @property
    def nv(self) -> int:
        return self._nv

    @property
    def entries(self) -> Tuple[ExplicitFunctionEntry, ...]:
        return tuple(self._entries)

    @property
    def evaluation_order(self) -> List[int]:
        """indices into entries, in the order solve and jacobian visit them"""
        return list(self._order)

    @property
    def difference(self) -> DifferenceOperator:
        if self._difference is None:
            return self._subtract
        return self._difference

    @difference.setter
    def difference(self, difference: Optional[DifferenceOperator]) -> None:
        self._difference = difference

    @property
    def squared_error_threshold(self) -> float:
        return self._squared_error_threshold

    @squared_error_threshold.setter
    def squared_error_threshold(self, value: float) -> None:
        if value < 0:
            raise ValueError(f"squared error threshold must be non-negative, got {value}")
        self._squared_error_threshold = value

    def out_args(self) -> BlockIndices:
        """value space entries computed by the solver"""
        return self._out_args.copy()

    def out_ders(self) -> BlockIndices:
        """derivative space entries computed by the solver"""
        return self._out_ders.copy()

    def free_args(self) -> BlockIndices:
        return self._out_args.complement(self._nq)

    def free_ders(self) -> BlockIndices:
        return self._out_ders.complement(self._nv)

    def in_args(self) -> BlockIndices:
        result = BlockIndices()
        for entry in self._entries:
            result = result.union(entry.in_arg)
        return result

    def in_ders(self) -> BlockIndices:
        result = BlockIndices()
        for entry in self._entries:
            result = result.union(entry.in_der)
        return result

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return "ExplicitSolver(nq={:d}, nv={:d}, functions={:d})".format(
            self._nq, self._nv, len(self._entries)
        )

    def __str__(self) -> str:
        lines = [repr(self)]
        for i in self._order:
            e = self._entries[i]
            lines.append(
                "  {:s}: in {:s} -> out {:s}".format(
                    e.function.name, repr(list(e.in_arg)), repr(list(e.out_arg))
                )
            )
        return "\n".join(lines)

    # registration

    def _check_sizes(
        self,
        function: DifferentiableFunction,
        in_arg: BlockIndices,
        out_arg: BlockIndices,
        in_der: BlockIndices,
        out_der: BlockIndices,
    ) -> None:
        expected = [
            ("in_arg", in_arg, function.input_size, self._nq),
            ("out_arg", out_arg, function.output_size, self._nq),
            ("in_der", in_der, function.input_derivative_size, self._nv),
            ("out_der", out_der, function.output_derivative_size, self._nv),
        ]
        for name, blocks, size, dim in expected:
            if blocks.nb_indices() != size:
                raise SizeMismatchError(
                    f"{function.name}: {name} covers {blocks.nb_indices()} indices, "
                    f"function expects {size}"
                )
            if blocks.end() > dim:
                raise SizeMismatchError(
                    f"{function.name}: {name} {blocks} exceeds dimension {dim}"
                )
        if out_arg.nb_indices() == 0 or out_der.nb_indices() == 0:
            raise SizeMismatchError(f"{function.name}: function has an empty output")

    def add(
        self,
        function: DifferentiableFunction,
        in_arg: BlockIndices,
        out_arg: BlockIndices,
        in_der: BlockIndices,
        out_der: BlockIndices,
    ) -> bool:
        """
        Register a function computing out_arg from in_arg.

        Returns False, leaving the solver unchanged, when out_arg or out_der
        overlaps an output of a previously added function. Raises
        SizeMismatchError when the block sizes disagree with the function
        and DependencyCycleError when the function closes a dependency cycle.
        """
        self._check_sizes(function, in_arg, out_arg, in_der, out_der)
        if out_arg.overlaps(self._out_args) or out_der.overlaps(self._out_ders):
            return False

        entry = ExplicitFunctionEntry(
            function=function,
            in_arg=in_arg.copy(),
            out_arg=out_arg.copy(),
            in_der=in_der.copy(),
            out_der=out_der.copy(),
        )
        k = len(self._entries)
        graph = self._graph.copy()
        graph.add_node(k)
        if entry.depends_on(entry):
            graph.add_edge(k, k)
        for j, other in enumerate(self._entries):
            if entry.depends_on(other):
                graph.add_edge(j, k)
            if other.depends_on(entry):
                graph.add_edge(k, j)
        cycles = graph.cycles()
        if cycles:
            names = [
                [(self._entries + [entry])[i].function.name for i in cycle]
                for cycle in cycles
            ]
            raise DependencyCycleError(cycles, names)

        self._entries.append(entry)
        self._out_args = self._out_args.union(entry.out_arg)
        self._out_ders = self._out_ders.union(entry.out_der)
        self._graph = graph
        self._order = graph.evaluation_order()
        return True

    # evaluation

    def _check_state(self, state: np.ndarray) -> None:
        if state.shape != (self._nq,):
            raise ValueError(f"state has shape {state.shape}, expected ({self._nq},)")

    def solve(self, state: np.ndarray) -> bool:
        """
        Overwrite the out_args of state with the values of the functions.

        Functions are evaluated in dependency order so chained functions see
        the values computed by their producers. state is modified only if
        every function succeeds; a non finite value returns False.
        """
        self._check_state(state)
        if not np.issubdtype(state.dtype, np.floating):
            raise ValueError(f"state must hold floats, got {state.dtype}")
        work = state.copy()
        for i in self._order:
            entry = self._entries[i]
            value = entry.function.value(entry.in_arg.rview(work).eval())
            if not np.all(np.isfinite(value)):
                import warnings

                warnings.warn(
                    f"{entry.function.name} returned a non finite value, state left unchanged"
                )
                return False
            entry.out_arg.rview(work).assign(value)
        state[:] = work
        return True

    def jacobian(self, matrix: np.ndarray, state: np.ndarray) -> None:
        """
        Write into matrix (nv x nv) the derivative of the state with respect
        to its free derivative entries, evaluated at state.

        Free rows are the identity, the rows of each out_der are the product
        of the function Jacobian with the rows of its in_der, which are
        either identity rows or rows of earlier functions.
        """
        self._check_state(state)
        if matrix.shape != (self._nv, self._nv):
            raise ValueError(
                f"jacobian has shape {matrix.shape}, expected ({self._nv}, {self._nv})"
            )
        if not np.issubdtype(matrix.dtype, np.floating):
            raise ValueError(f"jacobian must hold floats, got {matrix.dtype}")
        matrix[...] = 0
        free = self.free_ders().indices()
        matrix[free, free] = 1
        for i in self._order:
            entry = self._entries[i]
            J = entry.function.jacobian(entry.in_arg.rview(state).eval())
            rows = entry.in_der.rview(matrix).eval()
            entry.out_der.rview(matrix).assign(J @ rows)

    def view_jacobian(self, matrix: np.ndarray) -> MatrixBlockView:
        """the out_ders x free_ders block of a matrix filled by jacobian"""
        return MatrixBlocks(self.out_ders(), self.free_ders()).view(matrix)

    # satisfaction

    def _subtract(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        if self._nq != self._nv:
            raise ValueError(
                f"nq={self._nq} and nv={self._nv} differ, a difference operator is required"
            )
        return a - b

    def residual(self, state: np.ndarray) -> np.ndarray:
        """state - solved state, restricted to out_ders"""
        self._check_state(state)
        expected = np.array(state, dtype=float)
        if not self.solve(expected):
            # a non finite value is never satisfied
            return np.full(self._out_ders.nb_indices(), np.inf)
        diff = np.asarray(self.difference(state, expected), dtype=float).reshape(-1)
        if diff.shape != (self._nv,):
            raise ValueError(f"difference returned shape {diff.shape}, expected ({self._nv},)")
        return self._out_ders.rview(diff).eval()

    def is_satisfied(self, state: np.ndarray, error: Optional[np.ndarray] = None) -> bool:
        """
        True if the out_args of state match the functions' values.

        If error is given it receives the residual (size out_ders().nb_indices()).
        """
        residual = self.residual(state)
        if error is not None:
            if error.shape != residual.shape:
                raise ValueError(
                    f"error has shape {error.shape}, expected {residual.shape}"
                )
            error[:] = residual
        return bool(residual @ residual <= self._squared_error_threshold)
