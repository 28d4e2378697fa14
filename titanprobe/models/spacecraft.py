# titanprobe/models/spacecraft.py
import math

from titanprobe.config import settings
from titanprobe.errors import ConfigurationError, InsufficientFuelError
from titanprobe.physics.entity import Body
from titanprobe.physics.vector import Vector3D


class Propulsion:
    """
    Thrust and fuel bookkeeping for a spacecraft, kept apart from Body so
    planets and moons carry none of it.

    max_thrust in N, fuel_mass in kg, exhaust_velocity in m/s.
    Burn delta-V is in m/s.
    """
    def __init__(self, max_thrust=settings.F_T_MAX, fuel_mass=settings.PROBE_FUEL_MASS,
                 exhaust_velocity=settings.EXHAUST_VELOCITY, orientation=Vector3D(1.0, 0.0, 0.0)):
        if max_thrust <= 0:
            raise ConfigurationError(f"max_thrust must be > 0, got {max_thrust}")
        if fuel_mass < 0:
            raise ConfigurationError(f"fuel_mass must be >= 0, got {fuel_mass}")
        if exhaust_velocity <= 0:
            raise ConfigurationError(f"exhaust_velocity must be > 0, got {exhaust_velocity}")
        self.max_thrust = float(max_thrust)
        self.fuel_mass = float(fuel_mass)
        self.exhaust_velocity = float(exhaust_velocity)
        self.fuel_used = 0.0
        self.orientation = Vector3D(1.0, 0.0, 0.0)
        self.point(orientation)

    def point(self, direction: Vector3D):
        unit = direction.normalize()
        if unit.is_zero():
            raise ConfigurationError("Orientation needs a non-zero direction")
        self.orientation = unit

    @property
    def fuel_remaining(self):
        return self.fuel_mass - self.fuel_used

    def fuel_for_dv(self, dv_mps: float, wet_mass: float) -> float:
        """Propellant (kg) for a delta-V of dv_mps at wet_mass, by the rocket equation."""
        return wet_mass * (1.0 - math.exp(-abs(dv_mps) / self.exhaust_velocity))

    def max_dv(self, duration: float, mass: float) -> float:
        """Delta-V (m/s) full thrust gives over ``duration`` seconds."""
        return self.max_thrust * duration / mass

    def burn(self, dv: Vector3D, wet_mass: float) -> float:
        """
        Book the fuel for an impulsive burn and return it (kg).
        Raises InsufficientFuelError and books nothing when the tank is short.
        """
        needed = self.fuel_for_dv(dv.magnitude(), wet_mass)
        if needed > self.fuel_remaining + 1e-9:
            raise InsufficientFuelError(
                f"Burn of {dv.magnitude():.3f} m/s needs {needed:.3f} kg, "
                f"only {self.fuel_remaining:.3f} kg left"
            )
        self.fuel_used += needed
        if not dv.is_zero():
            self.orientation = dv.normalize()
        return needed


class Spacecraft:
    """
    A Body plus a Propulsion capability.
    """
    def __init__(self, body: Body, propulsion: Propulsion = None):
        self.body = body
        self.propulsion = propulsion if propulsion is not None else Propulsion()

    @property
    def name(self):
        return self.body.name

    @property
    def mass(self):
        return self.body.mass

    def apply_delta_v(self, dv_mps: Vector3D) -> float:
        """
        Instantaneous velocity change. dv in m/s, body velocity in km/s.
        Returns fuel used (kg); the body mass drops by that amount.
        """
        used = self.propulsion.burn(dv_mps, self.body.mass)
        self.body.velocity = self.body.velocity + dv_mps.scale(1e-3)
        self.body.mass -= used
        return used
