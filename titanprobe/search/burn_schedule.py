# titanprobe/search/burn_schedule.py
"""
Discrete insertion burn plan: one impulsive delta-V per equal-length slot.
Delta-V is in m/s, fuel in kg, thrust in N.
"""
from typing import List, Optional, Sequence

from titanprobe.config import settings
from titanprobe.errors import ConfigurationError, GeneError
from titanprobe.models.spacecraft import Propulsion
from titanprobe.physics.vector import ZERO, Vector3D


class BurnSchedule:
    """
    Ordered delta-V vectors, one per slot, with the fuel each one costs.

    Every stored vector is clamped to what full thrust can deliver over one
    slot, ``max_thrust * slot_duration / probe_mass``.
    """
    def __init__(self, n_slots: int = settings.N_SLOTS, slot_duration: float = settings.SLOT_DURATION,
                 probe_mass: float = settings.PROBE_MASS, propulsion: Optional[Propulsion] = None):
        if n_slots <= 0:
            raise ConfigurationError(f"n_slots must be > 0, got {n_slots}")
        if slot_duration <= 0:
            raise ConfigurationError(f"slot_duration must be > 0, got {slot_duration}")
        if probe_mass <= 0:
            raise ConfigurationError(f"probe_mass must be > 0, got {probe_mass}")
        self.slot_duration = float(slot_duration)
        self.probe_mass = float(probe_mass)
        self.propulsion = propulsion if propulsion is not None else Propulsion()
        self._dv: List[Vector3D] = [ZERO] * n_slots
        self._fuel: List[float] = [0.0] * n_slots

    @property
    def n_slots(self) -> int:
        return len(self._dv)

    def __len__(self):
        return len(self._dv)

    @property
    def max_slot_dv(self) -> float:
        return self.propulsion.max_dv(self.slot_duration, self.probe_mass)

    @property
    def duration(self) -> float:
        return self.n_slots * self.slot_duration

    def _check_index(self, i: int):
        if not (0 <= i < self.n_slots):
            raise IndexError(f"Slot {i} out of range for {self.n_slots} slots")

    def set_delta_v_at(self, i: int, dv: Vector3D) -> Vector3D:
        """Store dv for slot i (clamped to the slot maximum) and return what was stored."""
        self._check_index(i)
        stored = dv.clamp_magnitude(self.max_slot_dv)
        self._dv[i] = stored
        self._fuel[i] = self.propulsion.fuel_for_dv(stored.magnitude(), self.probe_mass)
        return stored

    def get_delta_v_at(self, i: int) -> Vector3D:
        self._check_index(i)
        return self._dv[i]

    def fuel_used_at(self, i: int) -> float:
        self._check_index(i)
        return self._fuel[i]

    def thrust_vector_at(self, i: int) -> Vector3D:
        """Constant thrust (N) that spreads slot i's delta-V over the whole slot."""
        return self.get_delta_v_at(i).scale(self.probe_mass / self.slot_duration)

    def total_delta_v(self) -> float:
        return sum(dv.magnitude() for dv in self._dv)

    def total_fuel_used(self) -> float:
        return sum(self._fuel)

    def burn_times(self) -> List[float]:
        """Start time of every slot, seconds from the first burn."""
        return [i * self.slot_duration for i in range(self.n_slots)]

    @property
    def deltas(self) -> List[Vector3D]:
        return list(self._dv)

    def clone(self) -> "BurnSchedule":
        copy = BurnSchedule(self.n_slots, self.slot_duration, self.probe_mass, self.propulsion)
        copy._dv = list(self._dv)
        copy._fuel = list(self._fuel)
        return copy

    @classmethod
    def from_genome(cls, values: Sequence[float], slot_duration: float = settings.SLOT_DURATION,
                    probe_mass: float = settings.PROBE_MASS,
                    propulsion: Optional[Propulsion] = None) -> "BurnSchedule":
        """Flat [x0, y0, z0, x1, ...] list, three entries per slot."""
        values = [float(v) for v in values]
        if not values or len(values) % 3 != 0:
            raise GeneError(f"Burn genome needs a non-zero multiple of 3 entries, got {len(values)}")
        schedule = cls(len(values) // 3, slot_duration, probe_mass, propulsion)
        for i in range(schedule.n_slots):
            schedule.set_delta_v_at(i, Vector3D(*values[3 * i:3 * i + 3]))
        return schedule

    def to_genome(self) -> List[float]:
        return [c for dv in self._dv for c in dv]

    def to_dict(self) -> dict:
        return {
            "slot_duration": self.slot_duration,
            "total_delta_v": self.total_delta_v(),
            "total_fuel_used": self.total_fuel_used(),
            "burns": [
                {"time": t, "delta_v": [dv.x, dv.y, dv.z], "fuel_used": fuel}
                for t, dv, fuel in zip(self.burn_times(), self._dv, self._fuel)
            ],
        }

    def __repr__(self):
        return f"BurnSchedule(n_slots={self.n_slots}, total_dv={self.total_delta_v():.3f} m/s)"
