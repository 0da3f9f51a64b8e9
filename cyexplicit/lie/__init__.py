from ._base import LieAlgebra, LieAlgebraElement, LieGroup, LieGroupElement
from ._direct_product import LieAlgebraDirectProduct, LieGroupDirectProduct
from ._rn import RnLieAlgebra, RnLieGroup, r3, R3
from ._so3 import so3, SO3Quat
from .space import LiegroupSpace, Rn, SO3, R3xSO3
