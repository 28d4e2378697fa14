# titanprobe/physics/geometry.py
import math

from titanprobe.errors import ConfigurationError
from titanprobe.physics.vector import Vector3D


def surface_point_toward(center: Vector3D, toward: Vector3D, radius: float) -> Vector3D:
    """
    Point on the sphere (center, radius) on the line from center to ``toward``.
    Raises ConfigurationError when the two points coincide (no direction).
    """
    direction = (toward - center).normalize()
    if direction.is_zero():
        raise ConfigurationError("Cannot pick a launch point: source and target positions coincide")
    return center + direction.scale(radius)


def project_to_sphere(point: Vector3D, center: Vector3D, radius: float, fallback: Vector3D = None) -> Vector3D:
    """
    Radially project ``point`` onto the sphere (center, radius).
    A point sitting on the center has no direction; ``fallback`` (a point
    already on the sphere) is returned then, otherwise ConfigurationError.
    """
    direction = (point - center).normalize()
    if direction.is_zero():
        if fallback is None:
            raise ConfigurationError("Cannot project the sphere center onto its surface")
        return fallback
    return center + direction.scale(radius)


def random_unit_vector(rng) -> Vector3D:
    """Direction drawn uniformly over the unit sphere."""
    theta = 2.0 * math.pi * rng.random()
    phi = math.acos(2.0 * rng.random() - 1.0)
    return Vector3D.from_spherical(1.0, theta, phi)


def random_vector_within(rng, max_magnitude: float) -> Vector3D:
    """
    Uniform random direction, magnitude uniform in [0, max_magnitude).
    """
    return random_unit_vector(rng).scale(max_magnitude * rng.random())


def random_box_vector(rng, half_width: float) -> Vector3D:
    """Each component uniform in [-half_width, half_width)."""
    return Vector3D(
        (rng.random() * 2.0 - 1.0) * half_width,
        (rng.random() * 2.0 - 1.0) * half_width,
        (rng.random() * 2.0 - 1.0) * half_width,
    )


def wiggle_on_sphere(point: Vector3D, center: Vector3D, radius: float, max_angle: float, rng) -> Vector3D:
    """
    Move a surface point by a small random angular offset (radians) in both
    spherical angles, keeping it on the sphere.
    """
    rel = point - center
    r = rel.magnitude()
    if r == 0.0:
        raise ConfigurationError("Launch point sits on the body center")
    theta = math.atan2(rel.y, rel.x) + (rng.random() * 2.0 - 1.0) * max_angle
    cos_phi = max(-1.0, min(1.0, rel.z / r))
    phi = math.acos(cos_phi) + (rng.random() * 2.0 - 1.0) * max_angle
    return center + Vector3D.from_spherical(radius, theta, phi)
