# titanprobe/physics/solver_rkf45.py
import logging
import math

import numpy as np

from titanprobe.config import settings
from titanprobe.errors import SimulationError
from titanprobe.physics.solver import ODESolver, as_state

log = logging.getLogger(__name__)

# Runge-Kutta-Fehlberg 4(5) coefficients
_C = np.array([0.0, 1/4, 3/8, 12/13, 1.0, 1/2], dtype=float)
_A = [
    [],
    [1/4],
    [3/32, 9/32],
    [1932/2197, -7200/2197, 7296/2197],
    [439/216, -8.0, 3680/513, -845/4104],
    [-8/27, 2.0, -3544/2565, 1859/4104, -11/40],
]
_B_LOW = np.array([25/216, 0.0, 1408/2565, 2197/4104, -1/5, 0.0], dtype=float)
_B_HIGH = np.array([16/135, 0.0, 6656/12825, 28561/56430, -9/50, 2/55], dtype=float)


class RKF45Solver(ODESolver):
    """
    Embedded Runge-Kutta-Fehlberg 4(5) solver with adaptive step size.

    Each attempt builds the 4th and 5th order solutions from the same six
    stages. The local error is the RMS of their difference, each component
    weighted by

        tolerance + rtol * max(|y|, |y5|)

    so with rtol = 0 a step is accepted iff RMS error <= tolerance. Only an
    accepted step moves t and y. The next step size is

        h * clamp(safety * (1 / err) ** 0.25, min_scale, max_scale)

    kept within [min_step, max_step]. A rejection that would need a step below
    min_step, or more than max_rejections rejections in a row, raises
    SimulationError.
    """
    name = "rkf45"

    def __init__(self, tolerance: float = settings.TOLERANCE, rtol: float = settings.RELATIVE_TOLERANCE,
                 min_step: float = settings.MIN_STEP,
                 max_step: float = settings.MAX_STEP, safety_factor: float = settings.SAFETY_FACTOR,
                 min_scale: float = settings.MIN_SCALE, max_scale: float = settings.MAX_SCALE,
                 max_rejections: int = settings.MAX_REJECTIONS):
        if tolerance <= 0:
            raise ValueError(f"tolerance must be > 0, got {tolerance}")
        if rtol < 0:
            raise ValueError(f"rtol must be >= 0, got {rtol}")
        if not (0 < min_step <= max_step):
            raise ValueError(f"need 0 < min_step <= max_step, got {min_step}, {max_step}")
        if not (0 < min_scale <= 1.0 <= max_scale):
            raise ValueError(f"need 0 < min_scale <= 1 <= max_scale, got {min_scale}, {max_scale}")
        if max_rejections <= 0:
            raise ValueError(f"max_rejections must be > 0, got {max_rejections}")
        self.tolerance = float(tolerance)
        self.rtol = float(rtol)
        self.min_step = float(min_step)
        self.max_step = float(max_step)
        self.safety_factor = float(safety_factor)
        self.min_scale = float(min_scale)
        self.max_scale = float(max_scale)
        self.max_rejections = int(max_rejections)
        self.rejected = 0
        self.accepted = 0

    def attempt_step(self, f, t, y, h):
        """
        One embedded step of size h. Returns (y5, err) without adapting h,
        err being the weighted RMS error (accept iff err <= 1).
        """
        ks = []
        for i in range(len(_C)):
            yi = y.copy()
            for j, aij in enumerate(_A[i]):
                yi += h * aij * ks[j]
            ks.append(np.asarray(f(t + _C[i] * h, yi), dtype=float))

        y_low = y.copy()
        y_high = y.copy()
        for i, k in enumerate(ks):
            y_low += h * _B_LOW[i] * k
            y_high += h * _B_HIGH[i] * k

        weight = self.tolerance + self.rtol * np.maximum(np.abs(y), np.abs(y_high))
        err = float(np.sqrt(np.mean(((y_high - y_low) / weight) ** 2)))
        return y_high, err

    def solve_step(self, f, t, y, h):
        """Fifth-order estimate of a single fixed step (no adaptation)."""
        y_next, _ = self.attempt_step(f, t, as_state(y), h)
        return y_next

    def step_scale(self, err):
        if err == 0.0:
            return self.max_scale
        if not math.isfinite(err):
            return self.min_scale
        s = self.safety_factor * (1.0 / err) ** 0.25
        return max(self.min_scale, min(self.max_scale, s))

    def solve(self, f, t0, y0, step_size, steps, stop_condition=None, t_end=None):
        """
        Take up to ``steps`` accepted steps starting with ``step_size``.
        With ``t_end`` the last step is shortened to land on t_end and the
        run ends there, so fewer than steps + 1 rows may come back.
        """
        if step_size <= 0:
            raise ValueError(f"step_size must be > 0, got {step_size}")
        if steps < 0:
            raise ValueError(f"steps must be >= 0, got {steps}")

        y = as_state(y0)
        t = float(t0)
        rows = [np.concatenate(([t], y))]
        h = min(float(step_size), self.max_step)
        rejections = 0
        i = 0

        while i < steps:
            if stop_condition is not None and stop_condition(t, y):
                return np.array(rows)
            if t_end is not None:
                remaining = float(t_end) - t
                if remaining <= 1e-12 * max(1.0, abs(float(t_end))):
                    return np.array(rows)
                h_try = min(h, remaining)
            else:
                h_try = h

            y_next, err = self.attempt_step(f, t, y, h_try)
            scale = self.step_scale(err)

            if math.isfinite(err) and err <= 1.0:
                t += h_try
                y = y_next
                i += 1
                rows.append(np.concatenate(([t], y)))
                rejections = 0
                self.accepted += 1
                h = max(self.min_step, min(h_try * scale, self.max_step))
            else:
                rejections += 1
                self.rejected += 1
                h = h_try * scale
                if rejections > self.max_rejections or h < self.min_step:
                    raise SimulationError(
                        f"RKF45 could not meet tolerance {self.tolerance:g} (rtol {self.rtol:g}) at t={t:.6g} "
                        f"(weighted err={err:.3g}, h={h:.3g}, rejections={rejections})"
                    )
                log.debug("RKF45 rejected step at t=%.6g: err=%.3g, retry h=%.3g", t, err, h)
        return np.array(rows)
