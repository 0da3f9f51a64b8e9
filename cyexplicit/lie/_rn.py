from __future__ import annotations

import casadi as ca

from beartype import beartype

from ._base import *

__all__ = ["RnLieAlgebra", "RnLieGroup", "r3", "R3"]


@beartype
class RnLieAlgebra(LieAlgebra):
    def __init__(self, n: int):
        super().__init__(n_param=n)

    def __str__(self):
        return "{:s}({:d})".format(self.__class__.__name__, self.n_param)

    def __repr__(self):
        return "r{:d}".format(self.n_param)


@beartype
class RnLieGroup(LieGroup):
    def __init__(self, algebra: RnLieAlgebra):
        n = algebra.n_param
        super().__init__(algebra=algebra, n_param=n)

    @property
    def is_vector_space(self) -> bool:
        return True

    def product(self, left: LieGroupElement, right: LieGroupElement) -> LieGroupElement:
        return self.elem(param=left.param + right.param)

    def inverse(self, arg: LieGroupElement) -> LieGroupElement:
        return self.elem(param=-arg.param)

    def identity(self) -> LieGroupElement:
        return self.elem(param=ca.SX(self.n_param, 1))

    def difference(
        self, left: LieGroupElement, right: LieGroupElement
    ) -> LieAlgebraElement:
        return self.algebra.elem(left.param - right.param)

    def exp(self, arg: LieAlgebraElement) -> LieGroupElement:
        """It is the identity map"""
        return self.elem(param=arg.param)

    def log(self, arg: LieGroupElement) -> LieAlgebraElement:
        """It is the identity map"""
        return self.algebra.elem(arg.param)

    def random_param(self, rng, lower: float, upper: float) -> ca.DM:
        return ca.DM(rng.uniform(lower, upper, self.n_param))

    def __str__(self):
        return "{:s}({:d})".format(self.__class__.__name__, self.n_param)

    def __repr__(self):
        return "R{:d}".format(self.n_param)


r3 = RnLieAlgebra(n=3)
R3 = RnLieGroup(algebra=r3)
