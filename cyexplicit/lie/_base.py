from __future__ import annotations

import casadi as ca

from abc import ABC, abstractmethod
from beartype import beartype
from beartype.typing import Union

__all__ = [
    "LieAlgebraElement",
    "LieAlgebra",
    "LieGroupElement",
    "LieGroup",
    "PARAM_TYPE",
]

PARAM_TYPE = Union[ca.SX, ca.DM]


@beartype
class LieAlgebraElement:
    """
    This is a generic Lie algebra elem, expressed by its parameter vector
    """

    def __init__(self, algebra: LieAlgebra, param: PARAM_TYPE):
        self.algebra = algebra
        self.param = ca.SX(param)
        assert self.param.shape == (self.algebra.n_param, 1)

    def exp(self, group: LieGroup) -> LieGroupElement:
        return group.exp(self)

    def __repr__(self) -> str:
        return "{:s}: {:s}".format(repr(self.algebra), repr(self.param))


@beartype
class LieAlgebra(ABC):
    """
    This is a generic Lie algebra, not necessarily represented as a matrix
    """

    def __init__(self, n_param: int):
        self.n_param = n_param

    def __mul__(self, other: LieAlgebra) -> LieAlgebraDirectProduct:
        """
        Implements Direct Product of Lie Algebras
        """
        return LieAlgebraDirectProduct(algebras=[self, other])

    def elem(self, param: PARAM_TYPE) -> LieAlgebraElement:
        return LieAlgebraElement(algebra=self, param=param)

    def __repr__(self) -> str:
        return self.__class__.__name__


@beartype
class LieGroupElement:
    """
    This is a generic Lie group elem, not necessarily represented as a matrix
    """

    def __init__(self, group: LieGroup, param: PARAM_TYPE):
        self.group = group
        self.param = ca.SX(param)
        assert self.param.shape == (self.group.n_param, 1)

    def inverse(self) -> LieGroupElement:
        return self.group.inverse(arg=self)

    def __add__(self, other: LieAlgebraElement) -> LieGroupElement:
        return self * other.exp(self.group)

    def __sub__(self, other: LieGroupElement) -> LieAlgebraElement:
        """X1 - X2 is the tangent vector log(X2^-1 X1)"""
        return self.group.difference(left=self, right=other)

    def __mul__(self, right: LieGroupElement) -> LieGroupElement:
        return self.group.product(left=self, right=right)

    def log(self) -> LieAlgebraElement:
        return self.group.log(arg=self)

    def __repr__(self) -> str:
        return "{:s}: {:s}".format(repr(self.group), repr(self.param))


@beartype
class LieGroup(ABC):
    """
    This is a generic Lie group, not necessarily represented as a matrix

    n_param is the size of the parameter vector, the size of the tangent
    space is given by the algebra (algebra.n_param).
    """

    def __init__(self, algebra: LieAlgebra, n_param: int):
        self.algebra = algebra
        self.n_param = n_param

    @property
    def n_tangent(self) -> int:
        return self.algebra.n_param

    @property
    def is_vector_space(self) -> bool:
        return False

    def elem(self, param: PARAM_TYPE) -> LieGroupElement:
        return LieGroupElement(group=self, param=param)

    def __mul__(self, other: LieGroup) -> LieGroupDirectProduct:
        """
        Implements Direct Product of Groups
        """
        return LieGroupDirectProduct(groups=[self, other])

    def difference(
        self, left: LieGroupElement, right: LieGroupElement
    ) -> LieAlgebraElement:
        """log(right^-1 left), the body frame tangent from right to left"""
        return (right.inverse() * left).log()

    @abstractmethod
    def product(self, left: LieGroupElement, right: LieGroupElement) -> LieGroupElement:
        ...

    @abstractmethod
    def inverse(self, arg: LieGroupElement) -> LieGroupElement:
        ...

    @abstractmethod
    def identity(self) -> LieGroupElement:
        ...

    @abstractmethod
    def exp(self, arg: LieAlgebraElement) -> LieGroupElement:
        ...

    @abstractmethod
    def log(self, arg: LieGroupElement) -> LieAlgebraElement:
        ...

    @abstractmethod
    def random_param(self, rng, lower: float, upper: float) -> ca.DM:
        """draws a random parameter vector, lower/upper bound Euclidean parts"""
        ...

    def __repr__(self) -> str:
        return self.__class__.__name__


from ._direct_product import LieGroupDirectProduct, LieAlgebraDirectProduct
