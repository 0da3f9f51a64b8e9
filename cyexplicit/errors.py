"""Exceptions raised by the explicit solver and its function plugins."""

from __future__ import annotations

from beartype.typing import List, Optional


class ExplicitSolverError(Exception):
    """Base class for explicit solver errors."""


class SizeMismatchError(ExplicitSolverError, ValueError):
    """A function's declared sizes disagree with the supplied block indices."""


class DependencyCycleError(ExplicitSolverError):
    """Registered functions depend on each other's outputs."""

    def __init__(self, cycles: List[List[int]], names: Optional[List[List[str]]] = None):
        self.cycles = cycles
        if names is None:
            names = [[str(i) for i in cycle] for cycle in cycles]
        desc = "; ".join(" <-> ".join(cycle) for cycle in names)
        super().__init__(f"dependency cycle between explicit functions: {desc}")


class EvaluationError(ExplicitSolverError):
    """A function cannot produce a value for the given input."""
