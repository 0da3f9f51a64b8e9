from __future__ import annotations

import casadi as ca
from beartype import beartype
from beartype.typing import List

from ._base import *


@beartype
class LieAlgebraDirectProduct(LieAlgebra):
    def __init__(self, algebras: List[LieAlgebra]):
        self.algebras = []
        for algebra in algebras:
            if isinstance(algebra, LieAlgebraDirectProduct):
                self.algebras += algebra.algebras
            else:
                self.algebras.append(algebra)
        self.n_param_list = [algebra.n_param for algebra in self.algebras]
        n_param = sum(self.n_param_list)

        # param start indices for subalgebras
        count = 0
        self.subparam_start = [0]
        for i in range(len(self.algebras)):
            count += self.n_param_list[i]
            self.subparam_start.append(count)
        super().__init__(n_param=n_param)

    def __mul__(self, other: LieAlgebra) -> LieAlgebraDirectProduct:
        """
        Implements Direct Product of Lie Algebras
        """
        return LieAlgebraDirectProduct(algebras=self.algebras + [other])

    def sub_param(self, i: int, param: PARAM_TYPE) -> ca.SX:
        start = self.subparam_start[i]
        stop = start + self.algebras[i].n_param
        return param[start:stop]

    def sub_elems(self, arg: LieAlgebraElement) -> List[LieAlgebraElement]:
        return [
            self.algebras[i].elem(self.sub_param(i=i, param=arg.param))
            for i in range(len(self.algebras))
        ]

    def __repr__(self):
        return " x ".join([repr(algebra) for algebra in self.algebras])


@beartype
class LieGroupDirectProduct(LieGroup):
    def __init__(self, groups: List[LieGroup]):
        self.groups = []
        for group in groups:
            if isinstance(group, LieGroupDirectProduct):
                self.groups += group.groups
            else:
                self.groups.append(group)
        self.n_param_list = [group.n_param for group in self.groups]
        n_param = sum(self.n_param_list)

        # param start indices for subgroups
        count = 0
        self.subparam_start = [0]
        algebra = None
        for i in range(len(self.groups)):
            group = self.groups[i]
            if algebra is None:
                algebra = group.algebra
            else:
                algebra = algebra * group.algebra
            count += self.n_param_list[i]
            self.subparam_start.append(count)

        # a single group is still wrapped so that sub_elems works
        if not isinstance(algebra, LieAlgebraDirectProduct):
            algebra = LieAlgebraDirectProduct(algebras=[algebra])
        super().__init__(algebra=algebra, n_param=n_param)

    @property
    def is_vector_space(self) -> bool:
        return all(group.is_vector_space for group in self.groups)

    def __mul__(self, other: LieGroup) -> LieGroupDirectProduct:
        """
        Implements Direct Product of Lie Groups
        """
        return LieGroupDirectProduct(groups=self.groups + [other])

    def sub_param(self, i: int, param: PARAM_TYPE) -> ca.SX:
        start = self.subparam_start[i]
        stop = start + self.groups[i].n_param
        return param[start:stop]

    def sub_elems(self, arg: LieGroupElement) -> List[LieGroupElement]:
        return [
            self.groups[i].elem(self.sub_param(i=i, param=arg.param))
            for i in range(len(self.groups))
        ]

    def product(self, left: LieGroupElement, right: LieGroupElement) -> LieGroupElement:
        return self.elem(
            param=ca.vertcat(
                *[
                    (X1 * X2).param
                    for X1, X2 in zip(self.sub_elems(left), self.sub_elems(right))
                ]
            )
        )

    def inverse(self, arg: LieGroupElement) -> LieGroupElement:
        return self.elem(
            param=ca.vertcat(*[X.inverse().param for X in self.sub_elems(arg)])
        )

    def identity(self) -> LieGroupElement:
        return self.elem(
            param=ca.vertcat(*[group.identity().param for group in self.groups])
        )

    def difference(
        self, left: LieGroupElement, right: LieGroupElement
    ) -> LieAlgebraElement:
        return self.algebra.elem(
            param=ca.vertcat(
                *[
                    (X1 - X2).param
                    for X1, X2 in zip(self.sub_elems(left), self.sub_elems(right))
                ]
            )
        )

    def exp(self, arg: LieAlgebraElement) -> LieGroupElement:
        return self.elem(
            param=ca.vertcat(
                *[
                    x.exp(group=group).param
                    for group, x in zip(self.groups, self.algebra.sub_elems(arg))
                ]
            )
        )

    def log(self, arg: LieGroupElement) -> LieAlgebraElement:
        return self.algebra.elem(
            param=ca.vertcat(*[X.log().param for X in self.sub_elems(arg)])
        )

    def random_param(self, rng, lower: float, upper: float) -> ca.DM:
        return ca.vertcat(
            *[group.random_param(rng, lower, upper) for group in self.groups]
        )

    def __repr__(self) -> str:
        return " x ".join([repr(group) for group in self.groups])
