"""Tests for ExplicitSolver on a free flyer robot with six revolute joints.

The state is [translation (3), quaternion (4), joints (6)], so nq = 13 and
nv = 12, and a joint at value rank r has derivative rank r - 1. The derivative
ranks are obtained from the space rather than hard coded.
"""

from tests.common import *

import pytest

from cyexplicit import (
    BlockIndices,
    ConstantFunction,
    DependencyCycleError,
    DifferentiableFunction,
    EvaluationError,
    ExplicitSolver,
    SizeMismatchError,
    SymbolicFunction,
)
from cyexplicit.lie import R3xSO3, Rn

SPACE = R3xSO3() * Rn(6)
EE1, EE2, EE3 = 8, 10, 11


def rank_in_velocity(rank):
    return SPACE.derivative_indices(BlockIndices([(rank, 1)])).indices()[0]


def locked_joint(rank, value=0.0):
    """(function, in_arg, out_arg, in_der, out_der) locking one joint"""
    out_arg = BlockIndices([(rank, 1)])
    return (
        ConstantFunction(Rn(1), np.array([value]), name="locked_{:d}".format(rank)),
        BlockIndices(),
        out_arg,
        BlockIndices(),
        SPACE.derivative_indices(out_arg),
    )


def joint_function(rank_in, rank_out, expr=None, name=None):
    """one joint computed from another, identity unless expr is given"""
    x = ca.SX.sym("x", 1)
    if expr is None:
        expr = x
    else:
        expr = expr(x)
    in_arg = BlockIndices([(rank_in, 1)])
    out_arg = BlockIndices([(rank_out, 1)])
    return (
        SymbolicFunction(name or "joint_{:d}_{:d}".format(rank_in, rank_out), x, expr),
        in_arg,
        out_arg,
        SPACE.derivative_indices(in_arg),
        SPACE.derivative_indices(out_arg),
    )


def pose_from_joints():
    """
    free flyer pose computed from the first three joints: translation equals
    the joints, rotation is about z by the third joint
    """
    x = ca.SX.sym("x", 3)
    expr = ca.vertcat(x, ca.cos(x[2] / 2), 0, 0, ca.sin(x[2] / 2))
    J = ca.SX(6, 3)
    J[0, 0] = 1
    J[1, 1] = 1
    J[2, 2] = 1
    J[5, 2] = 1
    in_arg = BlockIndices([(7, 3)])
    out_arg = BlockIndices([(0, 7)])
    return (
        SymbolicFunction("pose", x, expr, jacobian=J, output_space=R3xSO3()),
        in_arg,
        out_arg,
        SPACE.derivative_indices(in_arg),
        SPACE.derivative_indices(out_arg),
    )


class Test_ExplicitSolver(ProfiledTestCase):
    def setUp(self):
        super().setUp()
        self.rng = np.random.default_rng(1)
        self.q = SPACE.neutral()
        self.qrand = SPACE.random(self.rng)
        self.l1 = locked_joint(EE1)
        self.l2 = locked_joint(EE2)
        self.l3 = locked_joint(EE3)
        self.t1 = joint_function(EE1, EE2)

    def new_solver(self):
        return ExplicitSolver(SPACE.nq, SPACE.nv)

    def test_locked_joints(self):
        solver = self.new_solver()
        self.assertTrue(solver.add(*self.l1))
        self.assertFalse(solver.add(*self.l1))
        self.assertTrue(solver.add(*self.l2))
        self.assertEqual(len(solver), 2)

        self.assertTrue(solver.solve(self.qrand))
        self.assertEqual(self.qrand[EE1], 0)
        self.assertEqual(self.qrand[EE2], 0)

        jacobian = np.zeros((SPACE.nv, SPACE.nv))
        solver.jacobian(jacobian, self.q)
        self.assertTrue(np.all(solver.view_jacobian(jacobian).eval() == 0))

    def test_locked_and_chained_satisfied(self):
        solver = self.new_solver()
        solver.difference = SPACE.difference
        self.assertTrue(solver.add(*self.l1))
        self.assertTrue(solver.add(*self.t1))

        self.assertTrue(solver.solve(self.qrand))
        error = np.zeros(solver.out_ders().nb_indices())
        self.assertTrue(solver.is_satisfied(self.qrand, error))
        np.testing.assert_allclose(error, 0, atol=1e-12)
        self.assertEqual(self.qrand[EE1], 0)
        self.assertEqual(self.qrand[EE2], 0)

        jacobian = np.zeros((SPACE.nv, SPACE.nv))
        solver.jacobian(jacobian, self.q)
        self.assertTrue(np.all(solver.view_jacobian(jacobian).eval() == 0))

    def test_identity_jacobian(self):
        solver = self.new_solver()
        self.assertTrue(solver.add(*self.t1))

        jacobian = np.zeros((SPACE.nv, SPACE.nv))
        solver.jacobian(jacobian, self.q)
        self.assertEqual(jacobian[rank_in_velocity(EE2), rank_in_velocity(EE1)], 1)
        self.assertEqual(np.linalg.norm(solver.view_jacobian(jacobian).eval()), 1)
        # free variables are their own derivative
        free = solver.free_ders().indices()
        np.testing.assert_array_equal(
            jacobian[np.ix_(free, free)], np.eye(len(free))
        )

    def test_conflict_rejection_keeps_previous(self):
        solver = self.new_solver()
        self.assertTrue(solver.add(*self.t1))
        out_args = solver.out_args()
        out_ders = solver.out_ders()
        self.assertFalse(solver.add(*self.l2))
        self.assertEqual(solver.out_args(), out_args)
        self.assertEqual(solver.out_ders(), out_ders)
        self.assertTrue(solver.add(*self.l3))

        jacobian = np.zeros((SPACE.nv, SPACE.nv))
        solver.jacobian(jacobian, self.q)
        self.assertEqual(jacobian[rank_in_velocity(EE2), rank_in_velocity(EE1)], 1)
        self.assertEqual(np.linalg.norm(solver.view_jacobian(jacobian).eval()), 1)

        q = self.qrand.copy()
        self.assertTrue(solver.solve(q))
        self.assertEqual(q[EE2], self.qrand[EE1])
        self.assertEqual(q[EE3], 0)

    def test_free_flyer_transformation(self):
        et = pose_from_joints()
        solver = self.new_solver()
        solver.difference = SPACE.difference
        self.assertTrue(solver.add(*et))
        self.assertTrue(solver.add(*self.l2))
        self.assertEqual(list(solver.out_ders()), [(0, 6), (9, 1)])
        self.assertEqual(list(solver.free_ders()), [(6, 3), (10, 2)])

        jacobian = np.zeros((SPACE.nv, SPACE.nv))
        solver.jacobian(jacobian, self.qrand)
        view = solver.view_jacobian(jacobian).eval()
        self.assertEqual(view.shape, (7, 5))
        expected = np.zeros((6, 3))
        expected[:3, :3] = np.eye(3)
        expected[5, 2] = 1
        np.testing.assert_allclose(jacobian[:6, 6:9], expected)
        np.testing.assert_allclose(jacobian[:6, 9:], 0)

        q = self.qrand.copy()
        self.assertTrue(solver.solve(q))
        self.assertTrue(solver.is_satisfied(q))
        np.testing.assert_allclose(q[:3], q[7:10])

        # rotate the free flyer away from its explicit value
        perturbed = SPACE.integrate(q, np.r_[0, 0, 0, 0.1, 0, 0, np.zeros(6)])
        error = np.zeros(7)
        self.assertFalse(solver.is_satisfied(perturbed, error))
        np.testing.assert_allclose(error, [0, 0, 0, 0.1, 0, 0, 0], atol=1e-9)

    def test_chained_composition(self):
        # registered consumer first, the order must still be producer first
        b = joint_function(EE2, EE3, expr=lambda y: y**2, name="B")
        a = joint_function(EE1, EE2, expr=ca.sin, name="A")
        solver = self.new_solver()
        self.assertTrue(solver.add(*b))
        self.assertTrue(solver.add(*a))
        self.assertEqual(solver.evaluation_order, [1, 0])

        q = self.qrand.copy()
        self.assertTrue(solver.solve(q))
        self.assertAlmostEqual(q[EE2], np.sin(q[EE1]))
        self.assertAlmostEqual(q[EE3], np.sin(q[EE1]) ** 2)

        jacobian = np.zeros((SPACE.nv, SPACE.nv))
        solver.jacobian(jacobian, q)
        v1, v2, v3 = (rank_in_velocity(r) for r in (EE1, EE2, EE3))
        J_A = np.cos(q[EE1])
        J_B = 2 * q[EE2]
        self.assertAlmostEqual(jacobian[v2, v1], J_A)
        self.assertAlmostEqual(jacobian[v3, v1], J_B * J_A)
        # explicit columns are expanded through the chain
        self.assertEqual(jacobian[v3, v2], 0)

    def test_dependency_cycle(self):
        solver = self.new_solver()
        self.assertTrue(solver.add(*self.t1))
        with self.assertRaises(DependencyCycleError) as ctx:
            solver.add(*joint_function(EE2, EE1))
        self.assertEqual(ctx.exception.cycles, [[0, 1]])
        self.assertEqual(len(solver), 1)
        self.assertEqual(list(solver.out_args()), [(EE2, 1)])

        with self.assertRaises(DependencyCycleError):
            solver.add(*joint_function(EE3, EE3))
        self.assertEqual(len(solver), 1)
        self.assertTrue(solver.add(*self.l3))

    def test_size_mismatch(self):
        solver = self.new_solver()
        f, in_arg, out_arg, in_der, out_der = self.t1
        with self.assertRaises(SizeMismatchError):
            solver.add(f, BlockIndices([(EE1, 2)]), out_arg, in_der, out_der)
        with self.assertRaises(SizeMismatchError):
            solver.add(f, in_arg, out_arg, in_der, BlockIndices([(0, 2)]))
        with self.assertRaises(SizeMismatchError):
            solver.add(f, in_arg, BlockIndices([(SPACE.nq, 1)]), in_der, out_der)
        self.assertEqual(len(solver), 0)

    def test_disjoint_outputs(self):
        solver = self.new_solver()
        for rank in self.rng.integers(7, SPACE.nq, size=20):
            solver.add(*locked_joint(int(rank)))
        entries = solver.entries
        for i in range(len(entries)):
            for j in range(i + 1, len(entries)):
                self.assertFalse(entries[i].out_arg.overlaps(entries[j].out_arg))
                self.assertFalse(entries[i].out_der.overlaps(entries[j].out_der))
        self.assertEqual(solver.out_args().nb_indices(), len(entries))

    def test_set_accessors(self):
        solver = self.new_solver()
        solver.add(*self.t1)
        solver.add(*self.l3)
        self.assertEqual(list(solver.in_args()), [(EE1, 1)])
        self.assertEqual(list(solver.in_ders()), [(EE1 - 1, 1)])
        self.assertEqual(list(solver.free_args()), [(0, EE2), (EE2 + 2, 1)])
        self.assertIn("joint_8_10", str(solver))
        repr(solver)


class Test_Satisfaction(ProfiledTestCase):
    def setUp(self):
        super().setUp()
        self.solver = ExplicitSolver(4, 4)
        out = BlockIndices([(1, 2)])
        self.solver.add(
            ConstantFunction(Rn(2), np.array([0.5, -0.5])),
            BlockIndices(),
            out,
            BlockIndices(),
            out,
        )

    def test_satisfied(self):
        state = np.array([3.0, 0.5, -0.5, 7.0])
        error = np.ones(2)
        self.assertTrue(self.solver.is_satisfied(state, error))
        np.testing.assert_array_equal(error, 0)

    def test_perturbed(self):
        state = np.array([3.0, 0.6, -0.5, 7.0])
        error = np.zeros(2)
        self.assertFalse(self.solver.is_satisfied(state, error))
        np.testing.assert_allclose(error, [0.1, 0.0])
        np.testing.assert_allclose(self.solver.residual(state), [0.1, 0.0])
        # is_satisfied does not modify the state
        self.assertEqual(state[1], 0.6)

    def test_threshold(self):
        state = np.array([3.0, 0.5 + 1e-3, -0.5, 7.0])
        self.assertFalse(self.solver.is_satisfied(state))
        self.solver.squared_error_threshold = 1e-4
        self.assertTrue(self.solver.is_satisfied(state))
        with self.assertRaises(ValueError):
            self.solver.squared_error_threshold = -1.0

    def test_error_shape_checked(self):
        with self.assertRaises(ValueError):
            self.solver.is_satisfied(np.zeros(4), np.zeros(3))

    def test_default_difference_needs_same_sizes(self):
        solver = ExplicitSolver(SPACE.nq, SPACE.nv)
        solver.add(*locked_joint(EE1))
        with self.assertRaises(ValueError):
            solver.is_satisfied(SPACE.neutral())
        solver.difference = SPACE.difference
        self.assertTrue(solver.is_satisfied(SPACE.neutral()))


class Unreachable(DifferentiableFunction):
    def __init__(self, value):
        super().__init__(1, 1, Rn(1), "unreachable")
        self._out = value

    def _compute(self, arg):
        if self._out is None:
            raise EvaluationError("no solution for {}".format(arg))
        return np.array([self._out])

    def _jacobian(self, arg):
        return np.ones((1, 1))


def _single(function):
    solver = ExplicitSolver(3, 3)
    solver.add(
        function,
        BlockIndices([(0, 1)]),
        BlockIndices([(2, 1)]),
        BlockIndices([(0, 1)]),
        BlockIndices([(2, 1)]),
    )
    return solver


def test_evaluation_error_propagates_and_keeps_state():
    solver = _single(Unreachable(None))
    state = np.array([1.0, 2.0, 3.0])
    with pytest.raises(EvaluationError):
        solver.solve(state)
    np.testing.assert_array_equal(state, [1.0, 2.0, 3.0])


def test_non_finite_value_fails():
    solver = _single(Unreachable(np.nan))
    state = np.array([1.0, 2.0, 3.0])
    with pytest.warns(UserWarning):
        assert not solver.solve(state)
    np.testing.assert_array_equal(state, [1.0, 2.0, 3.0])
    with pytest.warns(UserWarning):
        assert not solver.is_satisfied(state)


def test_solve_checks_state():
    solver = _single(Unreachable(1.0))
    with pytest.raises(ValueError):
        solver.solve(np.zeros(4))
    with pytest.raises(ValueError):
        solver.solve(np.zeros(3, dtype=int))
    with pytest.raises(ValueError):
        solver.jacobian(np.zeros((2, 2)), np.zeros(3))


def test_empty_solver():
    solver = ExplicitSolver(2, 2)
    state = np.array([1.0, 2.0])
    assert solver.solve(state)
    assert solver.is_satisfied(state)
    J = np.full((2, 2), 5.0)
    solver.jacobian(J, state)
    np.testing.assert_array_equal(J, np.eye(2))
    assert solver.view_jacobian(J).shape == (0, 2)


def test_jacobian_checks_matrix_dtype():
    x = ca.SX.sym("x", 1)
    solver = ExplicitSolver(2, 2)
    one = BlockIndices([(0, 1)])
    two = BlockIndices([(1, 1)])
    solver.add(SymbolicFunction("half", x, 0.5 * x), one, two, one, two)
    with pytest.raises(ValueError):
        solver.jacobian(np.zeros((2, 2), dtype=int), np.zeros(2))
    J = np.zeros((2, 2))
    solver.jacobian(J, np.zeros(2))
    assert J[1, 0] == 0.5


def test_zero_threshold_accepted():
    solver = ExplicitSolver(1, 1, squared_error_threshold=0.0)
    assert solver.squared_error_threshold == 0.0
    with pytest.raises(ValueError, match="non-negative"):
        solver.squared_error_threshold = -1e-3


def test_long_chain():
    # entry i reads index i and writes index i + 1
    n = 1000
    solver = ExplicitSolver(n + 1, n + 1)
    x = ca.SX.sym("x", 1)
    f = SymbolicFunction("copy", x, x)
    for i in range(n):
        in_blocks = BlockIndices([(i, 1)])
        out_blocks = BlockIndices([(i + 1, 1)])
        assert solver.add(f, in_blocks, out_blocks, in_blocks, out_blocks)
    assert solver.evaluation_order == list(range(n))

    state = np.zeros(n + 1)
    state[0] = 0.25
    assert solver.solve(state)
    np.testing.assert_array_equal(state, 0.25)

    J = np.zeros((n + 1, n + 1))
    solver.jacobian(J, state)
    assert J[n, 0] == 1
    assert solver.view_jacobian(J).shape == (n, 1)

    # closing the loop is still a cycle
    last = BlockIndices([(n, 1)])
    first = BlockIndices([(0, 1)])
    with pytest.raises(DependencyCycleError):
        solver.add(f, last, first, last, first)
    assert len(solver) == n
