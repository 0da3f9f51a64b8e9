"""
Differentiable functions that can be plugged into an ExplicitSolver.

A function maps an input vector of ``input_size`` values to an element of its
``output_space``. Its Jacobian maps input derivatives (``input_derivative_size``)
to output derivatives (``output_space.nv``), so that for a manifold valued
output the Jacobian is expressed in the output's tangent space and not with
respect to its parameters.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import casadi as ca
import numpy as np
from beartype import beartype
from beartype.typing import Optional

from cyexplicit.lie.space import LiegroupSpace, Rn

__all__ = ["DifferentiableFunction", "ConstantFunction", "SymbolicFunction"]


@beartype
class DifferentiableFunction(ABC):
    def __init__(
        self,
        input_size: int,
        input_derivative_size: int,
        output_space: LiegroupSpace,
        name: str,
    ):
        self.input_size = input_size
        self.input_derivative_size = input_derivative_size
        self.output_space = output_space
        self.name = name

    @property
    def output_size(self) -> int:
        return self.output_space.nq

    @property
    def output_derivative_size(self) -> int:
        return self.output_space.nv

    def _input(self, arg: np.ndarray) -> np.ndarray:
        arg = np.asarray(arg, dtype=float).reshape(-1)
        if arg.shape != (self.input_size,):
            raise ValueError(
                f"{self.name}: input has {arg.shape[0]} entries, expected {self.input_size}"
            )
        return arg

    def value(self, arg: np.ndarray) -> np.ndarray:
        """evaluate the function, returns an array of output_size values"""
        result = np.asarray(self._compute(self._input(arg)), dtype=float).reshape(-1)
        if result.shape != (self.output_size,):
            raise ValueError(
                f"{self.name}: output has {result.shape[0]} entries, expected {self.output_size}"
            )
        return result

    def jacobian(self, arg: np.ndarray) -> np.ndarray:
        """output_derivative_size x input_derivative_size Jacobian at arg"""
        J = np.asarray(self._jacobian(self._input(arg)), dtype=float)
        shape = (self.output_derivative_size, self.input_derivative_size)
        if J.size == 0 and 0 in shape:
            return np.zeros(shape)
        if J.shape != shape:
            raise ValueError(f"{self.name}: jacobian has shape {J.shape}, expected {shape}")
        return J

    @abstractmethod
    def _compute(self, arg: np.ndarray) -> np.ndarray:
        ...

    @abstractmethod
    def _jacobian(self, arg: np.ndarray) -> np.ndarray:
        ...

    def __repr__(self) -> str:
        return "{:s}({:s}: R{:d} -> {:s})".format(
            self.__class__.__name__, self.name, self.input_size, repr(self.output_space)
        )


@beartype
class ConstantFunction(DifferentiableFunction):
    """
    Function without input returning a fixed element of output_space.

    Typical use is locking a joint at a given value.
    """

    def __init__(
        self, output_space: LiegroupSpace, value: np.ndarray, name: str = "Constant"
    ):
        super().__init__(
            input_size=0,
            input_derivative_size=0,
            output_space=output_space,
            name=name,
        )
        value = np.asarray(value, dtype=float).reshape(-1)
        if value.shape != (output_space.nq,):
            raise ValueError(
                f"{name}: value has {value.shape[0]} entries, expected {output_space.nq}"
            )
        self._value = value

    def _compute(self, arg: np.ndarray) -> np.ndarray:
        return self._value.copy()

    def _jacobian(self, arg: np.ndarray) -> np.ndarray:
        return np.zeros((self.output_derivative_size, 0))


@beartype
class SymbolicFunction(DifferentiableFunction):
    """
    Function given by casadi expressions of a symbolic input vector.

    When jacobian is None it is computed with ca.jacobian, which is only the
    tangent Jacobian when both input and output are vector spaces. Manifold
    valued functions must provide it.
    """

    def __init__(
        self,
        name: str,
        arg: ca.SX,
        expr: ca.SX,
        jacobian: Optional[ca.SX] = None,
        output_space: Optional[LiegroupSpace] = None,
        input_derivative_size: Optional[int] = None,
    ):
        if output_space is None:
            output_space = Rn(expr.shape[0])
        if input_derivative_size is None:
            input_derivative_size = arg.shape[0]
        super().__init__(
            input_size=arg.shape[0],
            input_derivative_size=input_derivative_size,
            output_space=output_space,
            name=name,
        )
        if jacobian is None:
            if not output_space.is_vector_space or input_derivative_size != arg.shape[0]:
                raise ValueError(
                    f"{name}: a jacobian expression is required for manifold input or output"
                )
            jacobian = ca.jacobian(expr, arg)
        self.f_value = ca.Function("f_value", [arg], [expr], ["x"], ["y"])
        self.f_jacobian = ca.Function("f_jacobian", [arg], [jacobian], ["x"], ["J"])

    def _compute(self, arg: np.ndarray) -> np.ndarray:
        return self.f_value(arg).full()

    def _jacobian(self, arg: np.ndarray) -> np.ndarray:
        return self.f_jacobian(arg).full()
