# titanprobe/physics/vector.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

import numpy as np

# below this magnitude a vector has no usable direction
NORMALIZE_EPS = 1e-12


@dataclass(frozen=True)
class Vector3D:
    """
    Immutable 3D vector used for positions (km), velocities (km/s)
    and burn delta-V (m/s).
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def from_iterable(cls, values: Iterable[float]) -> "Vector3D":
        arr = np.asarray(list(values), dtype=float)
        if arr.shape != (3,):
            raise ValueError(f"Cannot build Vector3D from {arr.shape[0] if arr.ndim else 0} components")
        return cls(float(arr[0]), float(arr[1]), float(arr[2]))

    @classmethod
    def from_spherical(cls, r: float, theta: float, phi: float) -> "Vector3D":
        """theta = azimuth in the x-y plane, phi = polar angle from +z."""
        return cls(
            r * math.sin(phi) * math.cos(theta),
            r * math.sin(phi) * math.sin(theta),
            r * math.cos(phi),
        )

    def __add__(self, other: "Vector3D") -> "Vector3D":
        return Vector3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector3D") -> "Vector3D":
        return Vector3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> "Vector3D":
        return self.scale(scalar)

    __rmul__ = __mul__

    def __neg__(self) -> "Vector3D":
        return Vector3D(-self.x, -self.y, -self.z)

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z

    def add(self, other: "Vector3D") -> "Vector3D":
        return self + other

    def subtract(self, other: "Vector3D") -> "Vector3D":
        return self - other

    def scale(self, scalar: float) -> "Vector3D":
        return Vector3D(self.x * scalar, self.y * scalar, self.z * scalar)

    def dot(self, other: "Vector3D") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: "Vector3D") -> "Vector3D":
        return Vector3D(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def magnitude_squared(self) -> float:
        return self.x * self.x + self.y * self.y + self.z * self.z

    def magnitude(self) -> float:
        return math.sqrt(self.magnitude_squared())

    def normalize(self) -> "Vector3D":
        """
        Unit vector in the same direction.
        Returns the ZERO sentinel when the magnitude is below NORMALIZE_EPS;
        callers needing a direction must check ``is_zero()`` on the result.
        """
        mag = self.magnitude()
        if mag < NORMALIZE_EPS:
            return ZERO
        return self.scale(1.0 / mag)

    def is_zero(self) -> bool:
        return self.magnitude() < NORMALIZE_EPS

    def distance_to(self, other: "Vector3D") -> float:
        return (self - other).magnitude()

    def clamp_magnitude(self, max_magnitude: float) -> "Vector3D":
        """Same direction, magnitude capped at max_magnitude."""
        mag = self.magnitude()
        if mag <= max_magnitude or mag == 0.0:
            return self
        return self.scale(max_magnitude / mag)

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=float)

    def __repr__(self) -> str:
        return f"Vector3D({self.x:.6g}, {self.y:.6g}, {self.z:.6g})"


ZERO = Vector3D(0.0, 0.0, 0.0)
