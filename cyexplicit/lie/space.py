"""
Numeric facade over a direct product of Lie groups.

A :class:`LiegroupSpace` describes a state vector whose entries are the
parameters of a list of Lie groups, stacked. Its value dimension ``nq`` and
derivative dimension ``nv`` differ as soon as one group is not a vector space
(``SO3Quat`` has 4 parameters and 3 tangent directions).

The symbolic group operations are compiled once into casadi Functions and
evaluated on numpy arrays.
"""

from __future__ import annotations

import casadi as ca
import numpy as np
from beartype import beartype
from beartype.typing import List, Optional, Tuple

from cyexplicit.block_indices import BlockIndices

from ._base import LieGroup
from ._direct_product import LieGroupDirectProduct
from ._rn import RnLieAlgebra, RnLieGroup, R3
from ._so3 import SO3Quat

__all__ = ["LiegroupSpace", "Rn", "SO3", "R3xSO3"]


@beartype
class LiegroupSpace:
    """
    Stacked Lie groups with numeric neutral, random, difference and integrate.

    lower/upper bound the Euclidean parameters drawn by random().
    """

    def __init__(self, groups: List[LieGroup], lower: float = -1.0, upper: float = 1.0):
        self.group = LieGroupDirectProduct(groups=groups)
        self.lower = lower
        self.upper = upper
        self.nq = self.group.n_param
        self.nv = self.group.n_tangent

        q1 = ca.SX.sym("q1", self.nq)
        q0 = ca.SX.sym("q0", self.nq)
        v = ca.SX.sym("v", self.nv)
        X1 = self.group.elem(q1)
        X0 = self.group.elem(q0)
        x = self.group.algebra.elem(v)
        self._f_difference = ca.Function("difference", [q1, q0], [(X1 - X0).param])
        self._f_integrate = ca.Function("integrate", [q0, v], [(X0 + x).param])
        self._neutral = np.array(ca.DM(ca.evalf(self.group.identity().param))).reshape(-1)

    @property
    def groups(self) -> List[LieGroup]:
        return self.group.groups

    @property
    def is_vector_space(self) -> bool:
        return self.group.is_vector_space

    def __mul__(self, other: LiegroupSpace) -> LiegroupSpace:
        return LiegroupSpace(
            groups=self.groups + other.groups,
            lower=min(self.lower, other.lower),
            upper=max(self.upper, other.upper),
        )

    def neutral(self) -> np.ndarray:
        """the identity element of every group"""
        return self._neutral.copy()

    def random(self, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        if rng is None:
            rng = np.random.default_rng()
        return np.array(self.group.random_param(rng, self.lower, self.upper)).reshape(-1)

    def _check(self, arg: np.ndarray, n: int, name: str) -> None:
        if arg.shape != (n,):
            raise ValueError(f"{name} has shape {arg.shape}, expected ({n},)")

    def difference(self, q1: np.ndarray, q0: np.ndarray) -> np.ndarray:
        """q1 - q0, the tangent vector v such that integrate(q0, v) = q1"""
        self._check(q1, self.nq, "q1")
        self._check(q0, self.nq, "q0")
        return self._f_difference(q1, q0).full().reshape(-1)

    def integrate(self, q: np.ndarray, v: np.ndarray) -> np.ndarray:
        """q + v, moving q along the tangent vector v"""
        self._check(q, self.nq, "q")
        self._check(v, self.nv, "v")
        return self._f_integrate(q, v).full().reshape(-1)

    def value_blocks(self) -> List[Tuple[int, int, int, int]]:
        """(value start, value size, derivative start, derivative size) per group"""
        blocks = []
        iq = iv = 0
        for group in self.groups:
            blocks.append((iq, group.n_param, iv, group.n_tangent))
            iq += group.n_param
            iv += group.n_tangent
        return blocks

    def derivative_indices(self, value_indices: BlockIndices) -> BlockIndices:
        """
        Map value space indices to the matching derivative space indices.

        Vector space groups map index by index. Any other group must be
        covered entirely, a partial quaternion has no tangent counterpart.
        """
        if value_indices.end() > self.nq:
            raise ValueError(f"{value_indices} out of range for nq={self.nq}")
        result = BlockIndices()
        for (iq, nq, iv, nv), group in zip(self.value_blocks(), self.groups):
            covered = value_indices.intersection(BlockIndices([(iq, nq)]))
            if covered.nb_indices() == 0:
                continue
            if group.is_vector_space:
                for s, l in covered:
                    result.add(iv + s - iq, l)
            elif covered.nb_indices() == nq:
                result.add(iv, nv)
            else:
                raise ValueError(
                    f"{value_indices} covers part of {repr(group)} at [{iq}, {iq + nq})"
                )
        return result

    def __repr__(self) -> str:
        return "LiegroupSpace({:s})".format(repr(self.group))


def Rn(n: int) -> LiegroupSpace:
    return LiegroupSpace(groups=[RnLieGroup(algebra=RnLieAlgebra(n=n))])


def SO3() -> LiegroupSpace:
    return LiegroupSpace(groups=[SO3Quat])


def R3xSO3() -> LiegroupSpace:
    """free flyer: translation then unit quaternion, 7 values, 6 derivatives"""
    return LiegroupSpace(groups=[R3, SO3Quat])
