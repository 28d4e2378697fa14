# titanprobe/engine/evaluator.py
"""
Trajectory evaluator: the fitness function shared by both searches.

Given a launch gene it clones the canonical body table, adds the probe,
simulates for a fixed duration and reports the closest sampled approach
to the target body. The result depends only on (gene, table, config).
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from titanprobe.config import settings
from titanprobe.data.solar_system import BodyRecord, validate_table
from titanprobe.errors import ConfigurationError, GeneError, SimulationError
from titanprobe.physics.entity import Body
from titanprobe.physics.solver import get_solver
from titanprobe.physics.vector import Vector3D
from titanprobe.simulation.runner import SimulationSet

log = logging.getLogger(__name__)

PROBE_NAME = "Probe"
GENE_LENGTH = 7


@dataclass(frozen=True)
class LaunchGene:
    """
    Absolute launch state of the probe: position (km), velocity (km/s), mass (kg).
    Flat layout: [x, y, z, vx, vy, vz, m].
    """
    position: Vector3D
    velocity: Vector3D
    mass: float = settings.PROBE_MASS

    def __post_init__(self):
        values = list(self.position) + list(self.velocity) + [self.mass]
        if not all(math.isfinite(v) for v in values):
            raise GeneError(f"Gene has non-finite entries: {values}")
        if self.mass <= 0:
            raise GeneError(f"Probe mass must be > 0, got {self.mass}")

    @classmethod
    def from_array(cls, values) -> "LaunchGene":
        arr = np.asarray(values, dtype=float)
        if arr.shape != (GENE_LENGTH,):
            raise GeneError(f"Gene must have {GENE_LENGTH} entries, got shape {arr.shape}")
        return cls(
            position=Vector3D(*arr[0:3].tolist()),
            velocity=Vector3D(*arr[3:6].tolist()),
            mass=float(arr[6]),
        )

    def to_array(self) -> np.ndarray:
        return np.array(list(self.position) + list(self.velocity) + [self.mass], dtype=float)

    def to_body(self, name: str = PROBE_NAME) -> Body:
        return Body(name, self.mass, self.position, self.velocity)


@dataclass(frozen=True)
class EvaluatorConfig:
    source: str = settings.SOURCE_BODY
    target: str = settings.TARGET_BODY
    duration: float = settings.SIM_LEN
    dt: float = settings.DT
    solver: str = settings.DEFAULT_SOLVER
    tolerance: float = settings.TOLERANCE
    rtol: float = settings.RELATIVE_TOLERANCE
    max_step: float = settings.MAX_STEP
    G: float = settings.G
    softening: float = settings.SOFTENING_LENGTH
    pinned: Optional[str] = settings.PINNED_BODY
    fitness_scale: float = settings.FITNESS_SCALE
    fitness_offset: float = settings.FITNESS_OFFSET

    def __post_init__(self):
        if self.duration <= 0:
            raise ConfigurationError(f"duration must be > 0, got {self.duration}")
        if self.dt <= 0:
            raise ConfigurationError(f"dt must be > 0, got {self.dt}")
        if self.solver.lower() not in ("euler", "rk4", "rkf45"):
            raise ConfigurationError(f"Unknown solver: {self.solver}")
        if self.tolerance <= 0 or self.rtol < 0:
            raise ConfigurationError(f"need tolerance > 0 and rtol >= 0, got {self.tolerance}, {self.rtol}")
        if self.max_step <= settings.MIN_STEP:
            raise ConfigurationError(f"max_step must be > {settings.MIN_STEP} s, got {self.max_step}")
        if self.fitness_scale <= 0 or self.fitness_offset <= 0:
            raise ConfigurationError("fitness_scale and fitness_offset must be > 0")
        if self.source == self.target:
            raise ConfigurationError("source and target must be different bodies")


@dataclass(frozen=True)
class EvaluationResult:
    min_distance: float          # km
    closest_time: float          # s since launch
    fitness: float               # higher is better
    samples: int
    ok: bool = True
    error: Optional[str] = field(default=None, compare=False)

    @classmethod
    def failed(cls, message: str) -> "EvaluationResult":
        return cls(min_distance=math.inf, closest_time=math.nan, fitness=0.0, samples=0,
                   ok=False, error=message)


class TrajectoryEvaluator:
    """
    Scores launch genes against a read-only body table.
    Holds no mutable state between calls, so one instance can be shipped to
    worker processes and called concurrently.
    """
    def __init__(self, table: Sequence[BodyRecord], config: EvaluatorConfig = EvaluatorConfig()):
        self.table = tuple(table)
        self.config = config
        validate_table(self.table, required=(config.source, config.target))
        if any(r.name == PROBE_NAME for r in self.table):
            raise ConfigurationError(f"Body table already holds a body named {PROBE_NAME!r}")

    def fitness(self, min_distance: float) -> float:
        return self.config.fitness_scale / (min_distance + self.config.fitness_offset)

    def _solver(self):
        if self.config.solver.lower() == "rkf45":
            return get_solver("rkf45", tolerance=self.config.tolerance, rtol=self.config.rtol,
                              max_step=self.config.max_step)
        return get_solver(self.config.solver)

    def build_simulation(self, gene: LaunchGene) -> SimulationSet:
        cfg = self.config
        return SimulationSet.from_table(
            self.table,
            extra_bodies=[gene.to_body()],
            solver=self._solver(),
            G=cfg.G,
            softening=cfg.softening,
            pinned=cfg.pinned,
        )

    def evaluate(self, gene) -> EvaluationResult:
        """
        Simulate one candidate. Raises SimulationError on numerical failure
        and GeneError for malformed genes.
        """
        if not isinstance(gene, LaunchGene):
            gene = LaunchGene.from_array(gene)
        sim = self.build_simulation(gene)
        traj = sim.run(self.config.duration, self.config.dt)
        if len(traj) < 2:
            # a single row is the launch state itself, nothing was simulated
            raise SimulationError(f"Trajectory has {len(traj)} sample(s), cannot score it")
        t_min, d_min = traj.closest_approach(PROBE_NAME, self.config.target)
        return EvaluationResult(
            min_distance=d_min,
            closest_time=t_min,
            fitness=self.fitness(d_min),
            samples=len(traj),
        )

    __call__ = evaluate
