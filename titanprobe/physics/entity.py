# titanprobe/physics/entity.py
import math

from titanprobe.physics.vector import Vector3D, ZERO


class Body:
    """
    Point mass taking part in a simulation: mass (kg), position (km),
    velocity (km/s) and the acceleration (km/s^2) computed on the last step.
    Acceleration is derived data and only meaningful right after a step.
    """
    def __init__(self, name, mass, position, velocity, acceleration=ZERO):
        if not name:
            raise ValueError("Body name must be a non-empty string")
        if not (mass > 0 and math.isfinite(mass)):
            raise ValueError(f"Body mass must be positive and finite, got {mass!r} for {name!r}")
        self.name = str(name)
        self.mass = float(mass)
        self.position = _as_vector(position)
        self.velocity = _as_vector(velocity)
        self.acceleration = _as_vector(acceleration)

    def copy(self):
        # Vector3D is immutable, sharing the instances is safe
        return Body(self.name, self.mass, self.position, self.velocity, self.acceleration)

    def distance_to(self, other):
        return self.position.distance_to(other.position)

    def __repr__(self):
        return f"Body({self.name!r}, mass={self.mass:.4g}, pos={self.position}, vel={self.velocity})"


def _as_vector(v):
    if isinstance(v, Vector3D):
        return v
    return Vector3D.from_iterable(v)
