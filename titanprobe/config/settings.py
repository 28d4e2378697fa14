"""
Project settings (constants + small helpers).
Units: kilometres (km), seconds (s), kilograms (kg), km/s for body velocities.
Burn-schedule delta-V is expressed in m/s.

These are DEFAULTS. Searches and simulations take their parameters explicitly;
nothing in the package reads these values behind a caller's back.
"""
from __future__ import annotations

import math
from typing import Optional

# Run
DEFAULT_RANDOM_SEED: Optional[int] = 69
VALIDATE_ON_IMPORT = False

# Physics
G = 6.6743e-20               # km^3 kg^-1 s^-2
SOFTENING_LENGTH = 100.0     # km
SECONDS_PER_DAY = 86400.0

# Integrator
TOLERANCE = 1e-12            # absolute part of the per-component error weight
RELATIVE_TOLERANCE = 1e-9
MIN_STEP = 1e-6              # s
MAX_STEP = 86400.0           # s
MAX_REJECTIONS = 60
MAX_ADAPTIVE_STEPS = 50000   # accepted RKF45 steps per run
SAFETY_FACTOR = 0.84
MIN_SCALE = 0.1
MAX_SCALE = 5.0

# Simulation
SIM_LEN = 365 * SECONDS_PER_DAY
DT = 3600.0
DEFAULT_SOLVER = "rk4"
PINNED_BODY: Optional[str] = None   # e.g. "Sun" to fix the coordinate origin

# Bodies
SOURCE_BODY = "Earth"
TARGET_BODY = "Titan"
EARTH_RADIUS_KM = 6371.0
TITAN_MASS_KG = 1.3452e23
TITAN_RADIUS_KM = 2575.0
MU_TITAN = G * TITAN_MASS_KG          # km^3/s^2

# Probe / propulsion
PROBE_MASS = 50000.0          # kg
MAX_DV = 60.0                 # km/s, launch speed relative to the source body
F_T_MAX = 3e7                 # N
EXHAUST_VELOCITY = 300.0 * 9.80665   # m/s (Isp 300 s)
PROBE_FUEL_MASS = 40000.0     # kg

# Fitness transform: score = FITNESS_SCALE / (min_distance + FITNESS_OFFSET)
FITNESS_SCALE = 1e6
FITNESS_OFFSET = 1000.0

# Genetic search
POPULATION_SIZE = 800
GENERATIONS = 600
ELITE_COUNT = 18
MUTATION_RATE = 0.70
TOURNAMENT_SIZE = 5
GOOD_ENOUGH_KM = TITAN_RADIUS_KM
MUTATION_ANGLE_DEG = 0.05
MUTATION_DV = 0.5             # km/s per component

# Hill climbing (insertion burns)
N_SLOTS = 5
SLOT_DURATION = SECONDS_PER_DAY
HC_ITERATIONS = 10000
RESTART_EVERY = 1000
MUTATION_STEP_SIZE = 1000.0   # m/s, full width of the per-axis perturbation
INITIAL_DV_SPREAD = 50.0      # m/s
RESTART_DV_SPREAD = 100.0     # m/s
TARGET_ALTITUDE_KM = 300.0
TARGET_ORBIT_RADIUS_KM = TITAN_RADIUS_KM + TARGET_ALTITUDE_KM
DEVIATION_FACTOR = 1000.0
ECCENTRICITY_WEIGHT = 10.0
COAST_STEP = 60.0             # s


def titan_orbital_period(radius_km: float = TARGET_ORBIT_RADIUS_KM, mu: float = MU_TITAN) -> float:
    return 2.0 * math.pi * math.sqrt(radius_km ** 3 / mu)


def max_slot_dv(max_thrust: float = F_T_MAX, slot_duration: float = SLOT_DURATION,
                probe_mass: float = PROBE_MASS) -> float:
    """Largest delta-V (m/s) a single slot can deliver at full thrust."""
    return max_thrust * slot_duration / probe_mass


def validate_settings() -> None:
    if G <= 0:
        raise ValueError("G must be > 0")
    if SOFTENING_LENGTH < 0:
        raise ValueError("SOFTENING_LENGTH must be >= 0")
    if TOLERANCE <= 0:
        raise ValueError("TOLERANCE must be > 0")
    if RELATIVE_TOLERANCE < 0:
        raise ValueError("RELATIVE_TOLERANCE must be >= 0")
    if MAX_ADAPTIVE_STEPS <= 0:
        raise ValueError("MAX_ADAPTIVE_STEPS must be > 0")
    if not (0 < MIN_STEP < MAX_STEP):
        raise ValueError("MIN_STEP must be > 0 and < MAX_STEP")
    if not (0 < MIN_SCALE <= 1.0 <= MAX_SCALE):
        raise ValueError("MIN_SCALE must be in (0, 1] and MAX_SCALE >= 1")
    if DT <= 0:
        raise ValueError("DT must be > 0")
    if SIM_LEN <= 0:
        raise ValueError("SIM_LEN must be > 0")
    if PROBE_MASS <= 0:
        raise ValueError("PROBE_MASS must be > 0")
    if MAX_DV <= 0:
        raise ValueError("MAX_DV must be > 0")
    if F_T_MAX <= 0:
        raise ValueError("F_T_MAX must be > 0")

    if POPULATION_SIZE <= 0:
        raise ValueError("POPULATION_SIZE must be > 0")
    if not (0 <= ELITE_COUNT <= POPULATION_SIZE):
        raise ValueError("ELITE_COUNT must be within [0, POPULATION_SIZE]")
    if not (0.0 <= MUTATION_RATE <= 1.0):
        raise ValueError("MUTATION_RATE must be within [0, 1]")
    if TOURNAMENT_SIZE <= 0:
        raise ValueError("TOURNAMENT_SIZE must be > 0")

    if N_SLOTS <= 0:
        raise ValueError("N_SLOTS must be > 0")
    if SLOT_DURATION <= 0:
        raise ValueError("SLOT_DURATION must be > 0")
    if RESTART_EVERY <= 0:
        raise ValueError("RESTART_EVERY must be > 0")
    if COAST_STEP <= 0:
        raise ValueError("COAST_STEP must be > 0")


if VALIDATE_ON_IMPORT:
    validate_settings()
