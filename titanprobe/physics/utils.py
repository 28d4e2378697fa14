# titanprobe/physics/utils.py
import math

import numpy as np

from titanprobe.config import settings
from titanprobe.errors import SimulationError
from titanprobe.physics.vector import Vector3D


def total_energy(bodies, G=settings.G):
    """
    Kinetic + pairwise potential energy of a body set (kg km^2/s^2).
    Used as a numerical stability diagnostic, softening is ignored.
    """
    kinetic = 0.0
    potential = 0.0
    for i, bi in enumerate(bodies):
        kinetic += 0.5 * bi.mass * bi.velocity.magnitude_squared()
        for bj in bodies[i + 1:]:
            d = bi.distance_to(bj)
            if d == 0.0:
                raise SimulationError(f"Bodies {bi.name!r} and {bj.name!r} overlap")
            potential -= G * bi.mass * bj.mass / d
    return kinetic + potential


def relative_energy_drift(initial, current):
    if initial == 0.0:
        return 0.0
    return (current - initial) / abs(initial)


class EnergyMonitor:
    """
    Records total energy over a run so energy drift can be checked.
    """
    def __init__(self, G=settings.G):
        self.G = G
        self.times = []
        self.energies = []

    def record(self, t, bodies):
        self.times.append(float(t))
        self.energies.append(total_energy(bodies, self.G))

    @property
    def drift(self):
        if len(self.energies) < 2:
            return 0.0
        return relative_energy_drift(self.energies[0], self.energies[-1])


# -------------------------
# Two-body quantities
# -------------------------
def specific_energy(r: Vector3D, v: Vector3D, mu: float) -> float:
    rn = r.magnitude()
    if rn == 0.0:
        raise SimulationError("Specific energy undefined at r = 0")
    return 0.5 * v.magnitude_squared() - mu / rn


def eccentricity_vector(r: Vector3D, v: Vector3D, mu: float) -> Vector3D:
    """
    e = (v x h) / mu - r_hat, with h = r x v.
    """
    r_hat = r.normalize()
    if r_hat.is_zero():
        raise SimulationError("Eccentricity undefined at r = 0")
    h = r.cross(v)
    return v.cross(h).scale(1.0 / mu) - r_hat


def eccentricity(r: Vector3D, v: Vector3D, mu: float) -> float:
    return eccentricity_vector(r, v, mu).magnitude()


def circular_speed(mu: float, radius: float) -> float:
    return math.sqrt(mu / radius)


def orbital_period(mu: float, radius: float) -> float:
    return 2.0 * math.pi * math.sqrt(radius ** 3 / mu)


def is_finite_state(y) -> bool:
    return bool(np.all(np.isfinite(y)))
