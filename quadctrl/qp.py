"""Quadratic programming: a dense QP solver and hierarchical (prioritised) QPs."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.linalg import null_space
from scipy.optimize import nnls

_EIG_FLOOR = 1e-10
_FEAS_TOL = 1e-6
_REGULARIZATION = 1e-12


class QpError(ValueError):
    """Raised when a quadratic program is infeasible or cannot be solved."""


def _as_matrix(value, cols: int) -> np.ndarray:
    if value is None:
        return np.zeros((0, cols))
    arr = np.asarray(value, dtype=float)
    if arr.size == 0:
        return np.zeros((0, cols))
    arr = np.atleast_2d(arr)
    if arr.shape[1] != cols:
        raise ValueError(f"constraint matrix must have {cols} columns, got {arr.shape[1]}")
    return arr


def _as_vector(value, rows: int) -> np.ndarray:
    if value is None:
        arr = np.zeros(0)
    else:
        arr = np.asarray(value, dtype=float).ravel()
    if arr.size != rows:
        raise ValueError(f"bound vector must hold {rows} entries, got {arr.size}")
    return arr


def _solve_inequality_qp(h, g, c, d) -> np.ndarray:
    """Minimise 0.5 x'Hx + g'x subject to Cx <= d as a least-distance problem."""
    n = g.size
    h = 0.5 * (h + h.T)
    eigvals, eigvecs = np.linalg.eigh(h)
    floor = _EIG_FLOOR * max(1.0, float(eigvals.max()))
    inv_sqrt = 1.0 / np.sqrt(np.maximum(eigvals, floor))
    lt_inv = eigvecs * inv_sqrt
    l_inv_g = inv_sqrt * (eigvecs.T @ g)
    if c.shape[0] == 0:
        return -lt_inv @ l_inv_g

    c_lt_inv = c @ lt_inv
    g_mat = -c_lt_inv
    h_vec = -d - c_lt_inv @ l_inv_g
    e = np.vstack([g_mat.T, h_vec[np.newaxis, :]])
    f = np.zeros(n + 1)
    f[-1] = 1.0
    try:
        u, _ = nnls(e, f, maxiter=max(100, 50 * e.shape[1]))
    except RuntimeError as exc:
        raise QpError("quadratic program did not converge") from exc
    r = e @ u - f
    if abs(r[-1]) < 1e-12:
        raise QpError("inequality constraints are infeasible")
    z = -r[:n] / r[-1]
    return lt_inv @ (z - l_inv_g)


def solve_qp(h, g, a_ieq=None, b_ieq=None, a_eq=None, b_eq=None) -> np.ndarray:
    """Minimise ``0.5 x'Hx + g'x`` s.t. ``a_ieq x <= b_ieq`` and ``a_eq x == b_eq``.

    Raises QpError when the constraints cannot be met.
    """
    g = np.asarray(g, dtype=float).ravel()
    n = g.size
    h = np.asarray(h, dtype=float).reshape(n, n)
    c = _as_matrix(a_ieq, n)
    d = _as_vector(b_ieq, c.shape[0])
    e = _as_matrix(a_eq, n)
    f = _as_vector(b_eq, e.shape[0])
    if n == 0:
        return np.zeros(0)

    if e.shape[0]:
        x_p, *_ = np.linalg.lstsq(e, f, rcond=None)
        if np.any(np.abs(e @ x_p - f) > _FEAS_TOL * (1.0 + np.abs(f))):
            raise QpError("equality constraints are inconsistent")
        basis = null_space(e)
    else:
        x_p = np.zeros(n)
        basis = np.eye(n)

    if basis.shape[1] == 0:
        x = x_p
    else:
        h_y = basis.T @ h @ basis
        g_y = basis.T @ (h @ x_p + g)
        y = _solve_inequality_qp(h_y, g_y, c @ basis, d - c @ x_p)
        x = x_p + basis @ y

    if c.shape[0] and np.any(c @ x - d > _FEAS_TOL * (1.0 + np.abs(d))):
        raise QpError("inequality constraints are infeasible")
    return x


def _stack_rows(top: np.ndarray, bottom: np.ndarray) -> np.ndarray:
    if top.shape[0] == 0:
        return bottom.copy()
    if bottom.shape[0] == 0:
        return top.copy()
    if top.shape[1] != bottom.shape[1]:
        raise ValueError("tasks act on different numbers of variables")
    return np.vstack([top, bottom])


def _task_matrix(value) -> np.ndarray:
    if value is None:
        return np.zeros((0, 0))
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 1 and arr.size == 0:
        return np.zeros((0, 0))
    return np.atleast_2d(arr)


@dataclass(eq=False)
class Task:
    """Equality rows ``a x = b`` and inequality rows ``d x <= f`` of one priority level."""

    a: np.ndarray | None = None
    b: np.ndarray | None = None
    d: np.ndarray | None = None
    f: np.ndarray | None = None

    def __post_init__(self) -> None:
        a = _task_matrix(self.a)
        d = _task_matrix(self.d)
        cols = max(a.shape[1], d.shape[1])
        if a.shape[0] == 0:
            a = np.zeros((0, cols))
        if d.shape[0] == 0:
            d = np.zeros((0, cols))
        if a.shape[1] != d.shape[1]:
            raise ValueError("equality and inequality rows must have the same columns")
        self.a = a
        self.d = d
        self.b = _as_vector(self.b if self.b is not None else np.zeros(a.shape[0]), a.shape[0])
        self.f = _as_vector(self.f if self.f is not None else np.zeros(d.shape[0]), d.shape[0])

    @classmethod
    def empty(cls, num_vars: int) -> "Task":
        """A task without rows acting on ``num_vars`` variables."""
        return cls(np.zeros((0, num_vars)), None, np.zeros((0, num_vars)), None)

    @property
    def num_vars(self) -> int:
        return self.a.shape[1]

    def __add__(self, other: "Task") -> "Task":
        return Task(
            _stack_rows(self.a, other.a),
            np.concatenate([self.b, other.b]),
            _stack_rows(self.d, other.d),
            np.concatenate([self.f, other.f]),
        )

    @staticmethod
    def concatenate_vectors(first, second) -> np.ndarray:
        return np.concatenate([np.asarray(first, dtype=float).ravel(),
                               np.asarray(second, dtype=float).ravel()])


def _kernel(m: np.ndarray) -> np.ndarray:
    basis = null_space(m)
    if basis.shape[1] == 0:
        return np.zeros((m.shape[1], 1))
    return basis


class HoQp:
    """One level of a hierarchical QP, solved in the null space of the levels above."""

    def __init__(self, task: Task, higher_problem: "HoQp | None" = None) -> None:
        self.task = task
        self.higher_problem = higher_problem
        self._init_vars()
        self._formulate()
        self._solve()
        self._build_z()
        self._stack_slack()

    def _init_vars(self) -> None:
        task = self.task
        self._num_slack = task.d.shape[0]
        self._has_eq = task.a.shape[0] > 0
        self._has_ineq = self._num_slack > 0
        higher = self.higher_problem
        if higher is not None:
            self._z_prev = higher.stacked_z_matrix
            self._tasks_prev = higher.stacked_tasks
            self._slack_prev = higher.stacked_slack_solutions
            self._x_prev = higher.solutions
            self._num_prev_slack = higher.slacked_num_vars
            self._num_decision = self._z_prev.shape[1]
        else:
            n = max(task.a.shape[1], task.d.shape[1])
            self._num_decision = n
            self._tasks_prev = Task.empty(n)
            self._z_prev = np.eye(n)
            self._slack_prev = np.zeros(0)
            self._x_prev = np.zeros(n)
            self._num_prev_slack = 0
        self._stacked_tasks = task + self._tasks_prev

    def _formulate(self) -> None:
        n, ns, nps = self._num_decision, self._num_slack, self._num_prev_slack
        task, z_prev, x_prev = self.task, self._z_prev, self._x_prev
        eye_s = np.eye(ns)

        if self._has_eq:
            a_z = task.a @ z_prev
            zt_at_a_z = a_z.T @ a_z + _REGULARIZATION * np.eye(n)
            linear = a_z.T @ (task.a @ x_prev - task.b)
        else:
            zt_at_a_z = np.zeros((n, n))
            linear = np.zeros(n)
        self._h = np.block([[zt_at_a_z, np.zeros((n, ns))], [np.zeros((ns, n)), eye_s]])
        self._c = np.concatenate([linear, np.zeros(ns)])

        prev = self._tasks_prev
        if nps:
            prev_d_z = prev.d @ z_prev
            prev_f = prev.f - prev.d @ x_prev + self._slack_prev
        else:
            prev_d_z = np.zeros((0, n))
            prev_f = np.zeros(0)
        if self._has_ineq:
            d_curr_z = task.d @ z_prev
            f_curr = task.f - task.d @ x_prev
        else:
            d_curr_z = np.zeros((0, n))
            f_curr = np.zeros(0)
        self._d = np.vstack(
            [
                np.hstack([np.zeros((ns, n)), -eye_s]),
                np.hstack([prev_d_z, np.zeros((nps, ns))]),
                np.hstack([d_curr_z, -eye_s]),
            ]
        )
        self._f = np.concatenate([np.zeros(ns), prev_f, f_curr])

    def _solve(self) -> None:
        solution = solve_qp(self._h, self._c, self._d, self._f)
        self.decision_vars_solutions = solution[: self._num_decision]
        self.slack_vars_solutions = solution[self._num_decision:]

    def _build_z(self) -> None:
        if self._has_eq:
            self._stacked_z = self._z_prev @ _kernel(self.task.a @ self._z_prev)
        else:
            self._stacked_z = self._z_prev

    def _stack_slack(self) -> None:
        if self.higher_problem is not None:
            self._stacked_slack = Task.concatenate_vectors(
                self.higher_problem.stacked_slack_solutions, self.slack_vars_solutions
            )
        else:
            self._stacked_slack = self.slack_vars_solutions.copy()

    @property
    def stacked_z_matrix(self) -> np.ndarray:
        return self._stacked_z

    @property
    def stacked_tasks(self) -> Task:
        return self._stacked_tasks

    @property
    def stacked_slack_solutions(self) -> np.ndarray:
        return self._stacked_slack

    @property
    def solutions(self) -> np.ndarray:
        """Solution in the full decision variables, honouring all levels so far."""
        return self._x_prev + self._z_prev @ self.decision_vars_solutions

    @property
    def slacked_num_vars(self) -> int:
        return self._stacked_tasks.d.shape[0]