# titanprobe/data/solar_system.py
"""
Canonical solar-system snapshot.
Units: position km, velocity km/s, mass kg (heliocentric frame).

The table is read-only input: simulations always build fresh Body objects
from it with ``make_bodies``.
"""
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from titanprobe.errors import BodyNotFoundError, ConfigurationError
from titanprobe.physics.entity import Body


@dataclass(frozen=True)
class BodyRecord:
    name: str
    mass: float
    position: Tuple[float, float, float]
    velocity: Tuple[float, float, float]

    def __post_init__(self):
        if self.mass <= 0:
            raise ConfigurationError(f"Mass must be positive, got {self.mass} for {self.name!r}")
        if len(self.position) != 3 or len(self.velocity) != 3:
            raise ConfigurationError(f"Position and velocity of {self.name!r} must be 3D")

    def to_body(self) -> Body:
        return Body(self.name, self.mass, self.position, self.velocity)


_DEFAULT_TABLE = (
    BodyRecord("Sun", 1.99e30, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)),
    BodyRecord("Mercury", 3.30e23, (-5.67e7, -3.23e7, 2.58e6), (1.39e1, -4.03e1, -4.57e0)),
    BodyRecord("Venus", 4.87e24, (-1.04e8, -3.19e7, 5.55e6), (9.89e0, -3.37e1, -1.03e0)),
    BodyRecord("Earth", 5.97e24, (-1.47e8, -2.97e7, 2.75e4), (5.31e0, -2.93e1, 6.69e-4)),
    BodyRecord("Moon", 7.35e22, (-1.47e8, -2.95e7, 5.29e4), (4.53e0, -2.86e1, 6.73e-2)),
    BodyRecord("Mars", 6.42e23, (-2.15e8, 1.27e8, 7.94e6), (-1.15e1, -1.87e1, -1.11e-1)),
    BodyRecord("Jupiter", 1.90e27, (5.54e7, 7.62e8, -4.40e6), (-1.32e1, 1.29e1, 5.22e-2)),
    BodyRecord("Saturn", 5.68e26, (1.42e9, -1.91e8, -5.33e7), (7.48e-1, 9.55e0, -1.96e-1)),
    BodyRecord("Titan", 1.35e23, (1.42e9, -1.92e8, -5.28e7), (5.95e0, 7.68e0, 2.54e-1)),
    BodyRecord("Uranus", 8.68e25, (1.62e9, 2.43e9, -1.19e7), (-5.72e0, 3.45e0, 8.70e-2)),
    BodyRecord("Neptune", 1.02e26, (4.47e9, -5.31e7, -1.02e8), (2.87e-2, 5.47e0, -1.13e-1)),
)


def load_table() -> Tuple[BodyRecord, ...]:
    """The built-in snapshot. Tuples all the way down, nothing to mutate."""
    return _DEFAULT_TABLE


def validate_table(table: Sequence[BodyRecord], required: Iterable[str] = ()) -> None:
    names = [r.name for r in table]
    if not names:
        raise ConfigurationError("Body table is empty")
    if len(set(names)) != len(names):
        raise ConfigurationError(f"Body names must be unique, got {names}")
    for name in required:
        if name not in names:
            raise BodyNotFoundError(name)


def find_record(table: Sequence[BodyRecord], name: str) -> BodyRecord:
    for record in table:
        if record.name == name:
            return record
    raise BodyNotFoundError(name)


def make_bodies(table: Sequence[BodyRecord]) -> List[Body]:
    """Fresh, independent Body objects for one simulation run."""
    return [record.to_body() for record in table]
