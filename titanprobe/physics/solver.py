# titanprobe/physics/solver.py
"""
Fixed-step ODE solvers.

Every solver integrates ``dy/dt = f(t, y)`` for a flat numpy state ``y``
and shares one contract:

    solve(f, t0, y0, step_size, steps, stop_condition=None, t_end=None) -> ndarray (n, 1 + dim)
    solve_step(f, t, y, h) -> ndarray (dim,)

Row 0 of the ``solve`` result is ``[t0, *y0]``. When ``stop_condition(t, y)``
returns True before a step is committed, or ``t_end`` is reached early, the
rows accumulated so far are returned, so callers must treat ``n <= steps + 1``.
"""
import logging

import numpy as np

log = logging.getLogger(__name__)


def init_storage(steps, t0, y0):
    values = np.empty((int(steps) + 1, len(y0) + 1), dtype=float)
    values[0, 0] = t0
    values[0, 1:] = y0
    return values


def as_state(y0):
    y = np.array(y0, dtype=float)
    if y.ndim != 1 or y.size == 0:
        raise ValueError(f"Initial state must be a non-empty 1-D array, got shape {y.shape}")
    return y


class ODESolver:
    """
    Base class for the fixed-step solvers. Subclasses implement solve_step.
    """
    name = "base"

    def solve_step(self, f, t, y, h):
        raise NotImplementedError

    def solve(self, f, t0, y0, step_size, steps, stop_condition=None, t_end=None):
        """
        With ``t_end`` the last step is shortened to land exactly on t_end
        and no step goes past it.
        """
        if step_size <= 0:
            raise ValueError(f"step_size must be > 0, got {step_size}")
        if steps < 0:
            raise ValueError(f"steps must be >= 0, got {steps}")

        y = as_state(y0)
        t = float(t0)
        values = init_storage(steps, t, y)

        for i in range(int(steps)):
            if stop_condition is not None and stop_condition(t, y):
                return values[:i + 1]
            h = step_size
            if t_end is not None:
                remaining = float(t_end) - t
                if remaining <= 1e-12 * max(1.0, abs(float(t_end))):
                    return values[:i + 1]
                h = min(h, remaining)
            y = self.solve_step(f, t, y, h)
            if h < step_size:
                t = float(t_end)
            else:
                # t0 + n*h instead of repeated += keeps the time grid exact
                t = float(t0) + (i + 1) * step_size
            values[i + 1, 0] = t
            values[i + 1, 1:] = y
        return values

    def __repr__(self):
        return f"{type(self).__name__}()"


class EulerSolver(ODESolver):
    """
    Explicit Euler: y_next = y + h * f(t, y). First order, no error control.
    """
    name = "euler"

    def solve_step(self, f, t, y, h):
        return y + h * np.asarray(f(t, y), dtype=float)


class RK4Solver(ODESolver):
    """
    Runge-Kutta 4th order solver for state integration.
    """
    name = "rk4"

    def solve_step(self, f, t, y, h):
        """
        Perform a single RK4 step.
        """
        k1 = np.asarray(f(t, y), dtype=float)
        k2 = np.asarray(f(t + 0.5 * h, y + 0.5 * h * k1), dtype=float)
        k3 = np.asarray(f(t + 0.5 * h, y + 0.5 * h * k2), dtype=float)
        k4 = np.asarray(f(t + h, y + h * k3), dtype=float)

        return y + (h / 6.0) * (k1 + 2 * k2 + 2 * k3 + k4)


def get_solver(name, **kwargs):
    """
    Solver factory: "euler", "rk4" or "rkf45".
    Keyword arguments are forwarded to the RKF45 constructor.
    """
    key = str(name).lower()
    if key == "euler":
        return EulerSolver()
    if key == "rk4":
        return RK4Solver()
    if key == "rkf45":
        # deferred import, solver_rkf45 builds on this module
        from titanprobe.physics.solver_rkf45 import RKF45Solver
        return RKF45Solver(**kwargs)
    raise ValueError(f"Unknown solver: {name}")
