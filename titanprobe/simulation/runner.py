# titanprobe/simulation/runner.py
import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from titanprobe.config import settings
from titanprobe.data.solar_system import BodyRecord, make_bodies, validate_table
from titanprobe.errors import BodyNotFoundError, SimulationError
from titanprobe.physics.forces import NBodyGravity
from titanprobe.physics.solver import get_solver
from titanprobe.physics.solver_rkf45 import RKF45Solver
from titanprobe.physics.state import STRIDE, StateVector
from titanprobe.physics.utils import is_finite_state
from titanprobe.physics.vector import Vector3D

log = logging.getLogger(__name__)


@dataclass
class Trajectory:
    """
    Sampled run: ``values[k] = [t_k, *y_k]``. ``stopped`` is True when a
    stop condition ended the run before its planned duration.
    """
    values: np.ndarray
    state: StateVector
    stopped: bool = False

    @property
    def times(self) -> np.ndarray:
        return self.values[:, 0]

    @property
    def states(self) -> np.ndarray:
        return self.values[:, 1:]

    def __len__(self):
        return self.values.shape[0]

    def positions(self, name: str) -> np.ndarray:
        start = 1 + STRIDE * self.state.index_of(name)
        return self.values[:, start:start + 3]

    def distances(self, a: str, b: str) -> np.ndarray:
        return np.linalg.norm(self.positions(a) - self.positions(b), axis=1)

    def closest_approach(self, a: str, b: str):
        """(time, distance) of the smallest sampled separation between a and b."""
        d = self.distances(a, b)
        idx = int(np.argmin(d))
        return float(self.times[idx]), float(d[idx])


class SimulationSet:
    """
    The bodies of one integration run together with their force model and
    solver. Owns its bodies exclusively; build one per evaluation.
    """
    def __init__(self, bodies, solver=None, G: float = settings.G,
                 softening: float = settings.SOFTENING_LENGTH, pinned: Optional[str] = settings.PINNED_BODY,
                 t0: float = 0.0):
        self.bodies = list(bodies)
        self.state = StateVector(self.bodies)
        self.solver = solver if solver is not None else get_solver(settings.DEFAULT_SOLVER)
        self.model = NBodyGravity.from_bodies(self.bodies, G=G, softening=softening, pinned_name=pinned)
        self.t = float(t0)
        self._sync_accelerations()

    @classmethod
    def from_table(cls, table: Sequence[BodyRecord], extra_bodies=(), **kwargs) -> "SimulationSet":
        """Clone the table, append e.g. a probe, and wrap it all in a fresh set."""
        validate_table(table)
        bodies = make_bodies(table) + [b.copy() for b in extra_bodies]
        return cls(bodies, **kwargs)

    def __len__(self):
        return len(self.bodies)

    def body(self, name: str):
        for b in self.bodies:
            if b.name == name:
                return b
        raise BodyNotFoundError(name)

    @property
    def y(self) -> np.ndarray:
        return self.state.pack(self.bodies)

    def _commit(self, t, y):
        if not is_finite_state(y):
            raise SimulationError(f"Non-finite state at t={t:.6g}")
        self.t = float(t)
        accelerations = self.model.accelerations(StateVector.positions(y))
        self.state.unpack(y, self.bodies, accelerations)

    def _sync_accelerations(self):
        accelerations = self.model.accelerations(StateVector.positions(self.y))
        for b, a in zip(self.bodies, accelerations):
            b.acceleration = Vector3D(*a.tolist())

    def step(self, dt: float):
        """Advance every body by one solver step."""
        y_next = self.solver.solve_step(self.model, self.t, self.y, dt)
        self._commit(self.t + dt, y_next)

    def apply_delta_v(self, name: str, dv_kms: Vector3D):
        """Impulsive velocity change (km/s) on one body."""
        b = self.body(name)
        b.velocity = b.velocity + dv_kms

    def run(self, duration: float, dt: float = settings.DT, stop_condition=None,
            max_steps: Optional[int] = None) -> Trajectory:
        """
        Integrate for ``duration`` seconds starting at the current time.

        Fixed-step solvers take ceil(duration / dt) steps, the last one
        shortened so the run lands on the end time. RKF45 starts at dt and
        adapts within settings.MAX_ADAPTIVE_STEPS accepted steps. A run that
        ends early without the stop condition firing raises SimulationError.
        """
        if duration < 0:
            raise ValueError(f"duration must be >= 0, got {duration}")
        if dt <= 0:
            raise ValueError(f"dt must be > 0, got {dt}")

        fired = []

        def stop(t, y):
            if stop_condition is not None and stop_condition(t, y):
                fired.append(t)
                return True
            return False

        t_start = self.t
        t_end = t_start + duration
        if isinstance(self.solver, RKF45Solver):
            steps = max_steps if max_steps is not None else settings.MAX_ADAPTIVE_STEPS
            values = self.solver.solve(self.model, t_start, self.y, dt, steps, stop, t_end=t_end)
        else:
            steps = math.ceil(duration / dt - 1e-9)
            if max_steps is not None:
                steps = min(steps, max_steps)
            values = self.solver.solve(self.model, t_start, self.y, dt, steps, stop, t_end=t_end)

        if values.shape[0] == 0:
            raise SimulationError("Solver returned an empty trajectory")
        traj = Trajectory(values=values, state=self.state, stopped=bool(fired))
        t_last = float(values[-1, 0])
        if not traj.stopped and t_last < t_end - 1e-6 * max(1.0, dt):
            raise SimulationError(
                f"Run ended at t={t_last:.6g} s, expected {t_end:.6g} s ({values.shape[0]} samples)"
            )
        self._commit(t_last, values[-1, 1:])
        log.debug("Simulated %d bodies for %.0f s in %d samples", len(self), t_last - t_start, len(traj))
        return traj


def run_simulation(table: Sequence[BodyRecord], duration: float = settings.SIM_LEN, dt: float = settings.DT,
                   solver_name: str = settings.DEFAULT_SOLVER, extra_bodies=(), **kwargs):
    """
    Convenience wrapper: clone ``table``, add ``extra_bodies`` and run.
    Returns (SimulationSet, Trajectory).
    """
    sim = SimulationSet.from_table(table, extra_bodies=extra_bodies, solver=get_solver(solver_name), **kwargs)
    traj = sim.run(duration, dt)
    return sim, traj
