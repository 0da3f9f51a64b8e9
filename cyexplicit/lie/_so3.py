from __future__ import annotations

import casadi as ca

from beartype import beartype

from ._base import *

__all__ = ["so3", "SO3Quat", "SO3LieAlgebra", "SO3QuatLieGroup"]

EPS = 1e-7


@beartype
class SO3LieAlgebra(LieAlgebra):
    def __init__(self):
        super().__init__(n_param=3)

    def __repr__(self):
        return "so3"


so3 = SO3LieAlgebra()


@beartype
class SO3QuatLieGroup(LieGroup):
    """
    SO3 parameterized by a unit quaternion [w, x, y, z]
    """

    def __init__(self):
        super().__init__(algebra=so3, n_param=4)

    def product(self, left: LieGroupElement, right: LieGroupElement) -> LieGroupElement:
        q = left.param
        p = right.param
        return self.elem(
            param=ca.vertcat(
                q[0] * p[0] - q[1] * p[1] - q[2] * p[2] - q[3] * p[3],
                q[1] * p[0] + q[0] * p[1] - q[3] * p[2] + q[2] * p[3],
                q[2] * p[0] + q[3] * p[1] + q[0] * p[2] - q[1] * p[3],
                q[3] * p[0] - q[2] * p[1] + q[1] * p[2] + q[0] * p[3],
            )
        )

    def inverse(self, arg: LieGroupElement) -> LieGroupElement:
        q = arg.param
        return self.elem(param=ca.vertcat(q[0], -q[1], -q[2], -q[3]))

    def identity(self) -> LieGroupElement:
        return self.elem(param=ca.SX([1, 0, 0, 0]))

    def exp(self, arg: LieAlgebraElement) -> LieGroupElement:
        v = arg.param
        theta = ca.norm_2(v)
        c = ca.sin(theta / 2)
        q = ca.vertcat(
            ca.cos(theta / 2), c * v[0] / theta, c * v[1] / theta, c * v[2] / theta
        )
        # first order expansion near identity
        q_small = ca.vertcat(1, v[0] / 2, v[1] / 2, v[2] / 2)
        return self.elem(param=ca.if_else(ca.fabs(theta) > EPS, q, q_small))

    def log(self, arg: LieGroupElement) -> LieAlgebraElement:
        # q and -q are the same rotation, take the short way around
        q = ca.if_else(arg.param[0] < 0, -arg.param, arg.param)
        w = q[0]
        v = q[1:]
        n = ca.norm_2(v)
        theta = 2 * ca.atan2(n, w)
        return self.algebra.elem(
            param=ca.if_else(n > EPS, theta * v / n, 2 * v / w)
        )

    def random_param(self, rng, lower: float, upper: float) -> ca.DM:
        """uniform on the sphere, bounds do not apply to rotations"""
        q = rng.normal(size=4)
        q /= max(float((q**2).sum()) ** 0.5, EPS)
        return ca.DM(q)

    def __repr__(self):
        return "SO3Quat"


SO3Quat = SO3QuatLieGroup()
