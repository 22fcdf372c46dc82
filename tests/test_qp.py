import numpy as np
import pytest

from quadctrl.qp import HoQp, QpError, Task, solve_qp


def test_unconstrained_solution_zeroes_gradient():
    h = np.array([[2.0, 0.0], [0.0, 4.0]])
    g = np.array([-2.0, -8.0])
    x = solve_qp(h, g)
    assert np.allclose(h @ x + g, 0.0, atol=1e-8)


def test_active_inequality_bound():
    x = solve_qp(np.eye(2), [-2.0, -2.0], a_ieq=[[1.0, 0.0]], b_ieq=[0.5])
    assert x[0] == pytest.approx(0.5, abs=1e-6)
    assert x[1] == pytest.approx(2.0, abs=1e-6)


@pytest.mark.parametrize("target", [[0.3, -0.2], [2.0, 0.5], [-3.0, -4.0], [1.5, -1.5]])
def test_box_constraints_project_onto_box(target):
    a_ieq = np.vstack([np.eye(2), -np.eye(2)])
    x = solve_qp(np.eye(2), -np.asarray(target), a_ieq, np.ones(4))
    assert np.allclose(x, np.clip(target, -1.0, 1.0), atol=1e-6)


def test_equality_constraint_is_met_symmetrically():
    x = solve_qp(np.eye(2), np.zeros(2), a_eq=[[1.0, 1.0]], b_eq=[1.0])
    assert x.sum() == pytest.approx(1.0, abs=1e-8)
    assert x[0] == pytest.approx(x[1], abs=1e-8)


def test_infeasible_inequalities_raise():
    with pytest.raises(QpError):
        solve_qp([[1.0]], [0.0], a_ieq=[[1.0], [-1.0]], b_ieq=[-1.0, -1.0])


def test_inconsistent_equalities_raise():
    with pytest.raises(QpError):
        solve_qp(np.eye(2), np.zeros(2), a_eq=[[1.0, 0.0], [1.0, 0.0]], b_eq=[0.0, 1.0])


def test_mismatched_hessian_raises():
    with pytest.raises(ValueError):
        solve_qp(np.eye(3), np.zeros(2))


def test_task_addition_stacks_rows_in_order():
    total = Task(a=[[1.0, 0.0]], b=[1.0]) + Task(a=[[0.0, 1.0]], b=[2.0])
    assert np.array_equal(total.a, [[1.0, 0.0], [0.0, 1.0]])
    assert np.array_equal(total.b, [1.0, 2.0])
    assert total.d.shape == (0, 2)


def test_empty_task_shapes():
    task = Task.empty(3)
    assert task.a.shape == (0, 3)
    assert task.d.shape == (0, 3)
    assert task.num_vars == 3


def test_task_rejects_wrong_bound_length():
    with pytest.raises(ValueError):
        Task(a=[[1.0, 0.0]], b=[1.0, 2.0])


def test_single_full_rank_task():
    a = np.array([[2.0, 1.0], [1.0, 3.0]])
    b = np.array([1.0, 2.0])
    problem = HoQp(Task(a=a, b=b))
    assert np.allclose(problem.solutions, np.linalg.solve(a, b), atol=1e-6)
    assert np.allclose(problem.stacked_z_matrix, 0.0)


def test_lower_priority_acts_in_null_space():
    high = HoQp(Task(a=[[1.0, 0.0]], b=[1.0]))
    low = HoQp(Task(a=np.eye(2), b=[5.0, 5.0]), high)
    assert low.solutions[0] == pytest.approx(1.0, abs=1e-6)
    assert low.solutions[1] == pytest.approx(5.0, abs=1e-6)


def test_higher_inequality_bounds_lower_task():
    high = HoQp(Task(d=[[1.0, 0.0]], f=[0.5]))
    low = HoQp(Task(a=np.eye(2), b=[2.0, 2.0]), high)
    assert low.solutions[0] == pytest.approx(0.5, abs=1e-5)
    assert low.solutions[1] == pytest.approx(2.0, abs=1e-5)
    assert low.slacked_num_vars == 1
    assert low.stacked_slack_solutions.size == 1
    assert abs(low.stacked_slack_solutions[0]) < 1e-5