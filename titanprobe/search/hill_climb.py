# titanprobe/search/hill_climb.py
"""
Stochastic hill climbing over insertion burn schedules.

The cost of a schedule is its total delta-V (m/s) plus penalties for the
orbit it leaves the probe in around Titan: radius deviation from the target
orbit and eccentricity. Lower is better. Only strict improvements are taken;
a fresh random schedule is tried every ``restart_every`` iterations.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from titanprobe.config import settings
from titanprobe.errors import ConfigurationError, InsufficientFuelError, SimulationError
from titanprobe.models.spacecraft import Propulsion, Spacecraft
from titanprobe.physics.entity import Body
from titanprobe.physics.geometry import random_box_vector
from titanprobe.physics.solver import get_solver
from titanprobe.physics.utils import circular_speed, eccentricity, orbital_period
from titanprobe.physics.vector import ZERO, Vector3D
from titanprobe.search.burn_schedule import BurnSchedule
from titanprobe.simulation.runner import SimulationSet

log = logging.getLogger(__name__)

CENTRAL_NAME = "Titan"
PROBE_NAME = "Probe"


@dataclass(frozen=True)
class HillClimbConfig:
    n_slots: int = settings.N_SLOTS
    slot_duration: float = settings.SLOT_DURATION
    iterations: int = settings.HC_ITERATIONS
    restart_every: int = settings.RESTART_EVERY
    step_size: float = settings.MUTATION_STEP_SIZE
    initial_spread: float = settings.INITIAL_DV_SPREAD
    restart_spread: float = settings.RESTART_DV_SPREAD
    max_thrust: float = settings.F_T_MAX
    probe_mass: float = settings.PROBE_MASS
    exhaust_velocity: float = settings.EXHAUST_VELOCITY
    fuel_capacity: Optional[float] = None
    target_radius: float = settings.TARGET_ORBIT_RADIUS_KM
    deviation_factor: float = settings.DEVIATION_FACTOR
    eccentricity_weight: float = settings.ECCENTRICITY_WEIGHT
    coast_step: float = settings.COAST_STEP
    coast_periods: float = 1.0
    central_mass: float = settings.TITAN_MASS_KG
    G: float = settings.G
    softening: float = 0.0
    seed: Optional[int] = settings.DEFAULT_RANDOM_SEED

    def __post_init__(self):
        if self.n_slots <= 0:
            raise ConfigurationError(f"n_slots must be > 0, got {self.n_slots}")
        if self.slot_duration <= 0 or self.coast_step <= 0:
            raise ConfigurationError("slot_duration and coast_step must be > 0")
        if self.iterations < 0:
            raise ConfigurationError(f"iterations must be >= 0, got {self.iterations}")
        if self.restart_every <= 0:
            raise ConfigurationError(f"restart_every must be > 0, got {self.restart_every}")
        if self.step_size < 0 or self.initial_spread < 0 or self.restart_spread < 0:
            raise ConfigurationError("step_size and spreads must be >= 0")
        if self.max_thrust <= 0 or self.probe_mass <= 0 or self.exhaust_velocity <= 0:
            raise ConfigurationError("max_thrust, probe_mass and exhaust_velocity must be > 0")
        if self.fuel_capacity is not None and self.fuel_capacity < 0:
            raise ConfigurationError(f"fuel_capacity must be >= 0, got {self.fuel_capacity}")
        if self.target_radius <= 0 or self.central_mass <= 0:
            raise ConfigurationError("target_radius and central_mass must be > 0")
        if self.coast_periods < 0:
            raise ConfigurationError(f"coast_periods must be >= 0, got {self.coast_periods}")

    @property
    def mu(self) -> float:
        return self.G * self.central_mass

    def propulsion(self) -> Propulsion:
        fuel = self.fuel_capacity if self.fuel_capacity is not None else math.inf
        return Propulsion(max_thrust=self.max_thrust, fuel_mass=fuel, exhaust_velocity=self.exhaust_velocity)


@dataclass(frozen=True)
class InsertionOutcome:
    position: Vector3D       # km, Titan-centred
    velocity: Vector3D       # km/s
    radius: float
    eccentricity: float
    fuel_burned: float       # kg


class InsertionCost:
    """
    Titan-centred insertion model. The probe starts at twice the target
    radius with the local circular speed. Each slot applies its burn and
    coasts for one slot under the pinned-Titan N-body model (RK4), then the
    probe coasts ``coast_periods`` target-orbit periods before the orbit is
    measured.
    """
    def __init__(self, config: HillClimbConfig = HillClimbConfig()):
        self.config = config
        self.period = orbital_period(config.mu, config.target_radius)
        self.evaluations = 0

    def start_state(self):
        r0 = 2.0 * self.config.target_radius
        return Vector3D(r0, 0.0, 0.0), Vector3D(0.0, circular_speed(self.config.mu, r0), 0.0)

    def simulate(self, schedule: BurnSchedule) -> InsertionOutcome:
        """
        Fly the schedule. Raises InsufficientFuelError when a burn exceeds the
        tank and SimulationError on numerical failure.
        """
        cfg = self.config
        position, velocity = self.start_state()
        titan = Body(CENTRAL_NAME, cfg.central_mass, ZERO, ZERO)
        craft = Spacecraft(Body(PROBE_NAME, cfg.probe_mass, position, velocity), cfg.propulsion())
        sim = SimulationSet([titan, craft.body], solver=get_solver("rk4"), G=cfg.G,
                            softening=cfg.softening, pinned=CENTRAL_NAME)

        fuel = 0.0
        for i in range(schedule.n_slots):
            fuel += craft.apply_delta_v(schedule.get_delta_v_at(i))
            sim.run(schedule.slot_duration, cfg.coast_step)
        if cfg.coast_periods > 0:
            sim.run(cfg.coast_periods * self.period, cfg.coast_step)

        r = craft.body.position - titan.position
        v = craft.body.velocity - titan.velocity
        return InsertionOutcome(
            position=r,
            velocity=v,
            radius=r.magnitude(),
            eccentricity=eccentricity(r, v, cfg.mu),
            fuel_burned=fuel,
        )

    def cost_of(self, schedule: BurnSchedule, outcome: InsertionOutcome) -> float:
        cfg = self.config
        deviation = abs(outcome.radius - cfg.target_radius)
        return (schedule.total_delta_v()
                + cfg.deviation_factor * deviation
                + cfg.eccentricity_weight * cfg.deviation_factor * outcome.eccentricity)

    def __call__(self, schedule: BurnSchedule) -> float:
        """Cost of a schedule; infeasible or failed schedules cost inf."""
        self.evaluations += 1
        try:
            outcome = self.simulate(schedule)
        except InsufficientFuelError as exc:
            log.debug("Schedule rejected: %s", exc)
            return math.inf
        except SimulationError as exc:
            log.debug("Schedule simulation failed: %s", exc)
            return math.inf
        cost = self.cost_of(schedule, outcome)
        return cost if math.isfinite(cost) else math.inf


@dataclass
class HillClimbResult:
    schedule: BurnSchedule
    cost: float
    history: List[float] = field(default_factory=list)
    iterations: int = 0
    improvements: int = 0
    restarts: int = 0
    outcome: Optional[InsertionOutcome] = None

    def to_dict(self) -> dict:
        data = {"cost": self.cost, "iterations": self.iterations,
                "improvements": self.improvements, "restarts": self.restarts}
        data.update(self.schedule.to_dict())
        if self.outcome is not None:
            data["final_position"] = list(self.outcome.position)
            data["final_velocity"] = list(self.outcome.velocity)
            data["final_radius"] = self.outcome.radius
            data["final_eccentricity"] = self.outcome.eccentricity
        return data


class HillClimber:
    def __init__(self, config: HillClimbConfig = HillClimbConfig(), cost=None):
        self.config = config
        self.cost = cost if cost is not None else InsertionCost(config)
        self.rng = np.random.default_rng(config.seed)
        self._propulsion = config.propulsion()

    def new_schedule(self) -> BurnSchedule:
        cfg = self.config
        return BurnSchedule(cfg.n_slots, cfg.slot_duration, cfg.probe_mass, self._propulsion)

    def random_schedule(self, spread: float) -> BurnSchedule:
        """Every slot drawn uniformly from a box of full width ``spread`` (m/s)."""
        schedule = self.new_schedule()
        for i in range(schedule.n_slots):
            schedule.set_delta_v_at(i, random_box_vector(self.rng, spread / 2.0))
        return schedule

    def neighbor(self, schedule: BurnSchedule) -> BurnSchedule:
        """Copy with one random slot nudged by up to step_size/2 per axis."""
        candidate = schedule.clone()
        i = int(self.rng.integers(candidate.n_slots))
        nudge = random_box_vector(self.rng, self.config.step_size / 2.0)
        candidate.set_delta_v_at(i, candidate.get_delta_v_at(i) + nudge)
        return candidate

    def run(self) -> HillClimbResult:
        cfg = self.config
        best = self.random_schedule(cfg.initial_spread)
        best_cost = self.cost(best)
        history = [best_cost]
        improvements = 0
        restarts = 0
        log.info("Initial schedule cost %.6f", best_cost)

        for it in range(cfg.iterations):
            candidate = self.neighbor(best)
            candidate_cost = self.cost(candidate)
            if candidate_cost < best_cost:
                best, best_cost = candidate, candidate_cost
                improvements += 1
                log.debug("Iter %5d: better cost %.6f", it, best_cost)

            if it % cfg.restart_every == cfg.restart_every - 1:
                fresh = self.random_schedule(cfg.restart_spread)
                fresh_cost = self.cost(fresh)
                if fresh_cost < best_cost:
                    best, best_cost = fresh, fresh_cost
                    restarts += 1
                    log.info("Iter %5d: random restart taken, cost %.6f", it, best_cost)

            history.append(best_cost)

        outcome = None
        if isinstance(self.cost, InsertionCost) and math.isfinite(best_cost):
            outcome = self.cost.simulate(best)
        log.info("Hill climb done: cost %.6f, total dV %.3f m/s", best_cost, best.total_delta_v())
        return HillClimbResult(
            schedule=best,
            cost=best_cost,
            history=history,
            iterations=cfg.iterations,
            improvements=improvements,
            restarts=restarts,
            outcome=outcome,
        )


def run_hill_climb(config: HillClimbConfig = HillClimbConfig()) -> HillClimbResult:
    return HillClimber(config).run()
