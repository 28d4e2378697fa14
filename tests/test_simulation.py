"""
Tests for the body state packing, SimulationSet runs and energy diagnostics.
"""
import math

import numpy as np
import pytest

from titanprobe.data.solar_system import find_record, load_table, make_bodies, validate_table
from titanprobe.errors import BodyNotFoundError, ConfigurationError, SimulationError
from titanprobe.physics.entity import Body
from titanprobe.physics.solver import get_solver
from titanprobe.physics.state import StateVector
from titanprobe.physics.utils import (
    EnergyMonitor,
    circular_speed,
    eccentricity,
    orbital_period,
    specific_energy,
    total_energy,
)
from titanprobe.physics.vector import Vector3D
from titanprobe.simulation.runner import SimulationSet, run_simulation

DAY = 86400.0


class TestStateVector:

    def test_pack_unpack(self, sun_earth_bodies):
        state = StateVector(sun_earth_bodies)
        y = state.pack(sun_earth_bodies)
        assert y.shape == (12,)
        y[6] += 1.0
        state.unpack(y, sun_earth_bodies)
        assert sun_earth_bodies[1].position.x == pytest.approx(1.496e8 + 1.0)
        np.testing.assert_array_equal(state.position_of(y, "Earth"), y[6:9])

    def test_duplicate_names(self):
        b = Body("A", 1.0, (0, 0, 0), (0, 0, 0))
        with pytest.raises(ValueError):
            StateVector([b, b.copy()])

    def test_order_is_checked(self, sun_earth_bodies):
        state = StateVector(sun_earth_bodies)
        with pytest.raises(ValueError):
            state.pack(list(reversed(sun_earth_bodies)))


class TestBodyTable:

    def test_default_table_is_valid(self):
        table = load_table()
        validate_table(table, required=("Earth", "Titan"))
        assert len(table) == 11

    def test_missing_body(self, tiny_table):
        with pytest.raises(BodyNotFoundError):
            validate_table(tiny_table, required=("Neptune",))
        with pytest.raises(BodyNotFoundError):
            find_record(tiny_table, "Pluto")

    def test_lookup_is_exact(self, tiny_table):
        """Names match exactly, as in validate_table and SimulationSet.body."""
        assert find_record(tiny_table, "Titan").name == "Titan"
        with pytest.raises(BodyNotFoundError):
            find_record(tiny_table, "titan")
        with pytest.raises(BodyNotFoundError):
            validate_table(tiny_table, required=("titan",))

    def test_make_bodies_are_independent(self, tiny_table):
        a = make_bodies(tiny_table)
        b = make_bodies(tiny_table)
        a[1].velocity = Vector3D(0.0, 0.0, 0.0)
        assert b[1].velocity != a[1].velocity

    def test_empty_table(self):
        with pytest.raises(ConfigurationError):
            validate_table(())


class TestSimulationSet:

    def test_circular_orbit_holds(self, sun_earth_bodies):
        sim = SimulationSet(sun_earth_bodies, solver=get_solver("rk4"), pinned="Sun")
        traj = sim.run(30 * DAY, 3600.0)
        assert len(traj) == 30 * 24 + 1
        r = traj.distances("Sun", "Earth")
        np.testing.assert_allclose(r, 1.496e8, rtol=1e-6)
        assert sim.t == pytest.approx(30 * DAY)
        assert sim.body("Sun").position == Vector3D(0.0, 0.0, 0.0)

    def test_energy_is_conserved(self, sun_earth_bodies):
        sim = SimulationSet(sun_earth_bodies, solver=get_solver("rk4"), pinned="Sun")
        monitor = EnergyMonitor()
        monitor.record(sim.t, sim.bodies)
        for _ in range(5):
            sim.run(2 * DAY, 3600.0)
            monitor.record(sim.t, sim.bodies)
        assert len(monitor.energies) == 6
        assert abs(monitor.drift) < 1e-8

    def test_rkf45_reaches_end(self, sun_earth_bodies):
        solver = get_solver("rkf45", tolerance=1e-3)
        sim = SimulationSet(sun_earth_bodies, solver=solver, pinned="Sun")
        traj = sim.run(DAY, 3600.0)
        assert len(traj) >= 2
        assert traj.times[-1] == pytest.approx(DAY)

    def test_rkf45_default_tolerance_reaches_end(self, sun_earth_bodies):
        sim = SimulationSet(sun_earth_bodies, solver=get_solver("rkf45"), pinned="Sun")
        traj = sim.run(2 * DAY, 3600.0)
        assert traj.times[-1] == pytest.approx(2 * DAY)
        assert sim.t == pytest.approx(2 * DAY)

    @pytest.mark.parametrize("solver_name", ["euler", "rk4"])
    def test_fixed_step_lands_on_duration(self, sun_earth_bodies, solver_name):
        """A duration that is not a multiple of dt ends on the duration, not past it."""
        sim = SimulationSet(sun_earth_bodies, solver=get_solver(solver_name), pinned="Sun")
        traj = sim.run(5000.0, 3600.0)
        np.testing.assert_allclose(traj.times, [0.0, 3600.0, 5000.0])
        assert sim.t == pytest.approx(5000.0)

    def test_fixed_step_matches_two_runs(self, sun_earth_bodies):
        """5000 s in one run equals 3600 s then 1400 s."""
        one = SimulationSet([b.copy() for b in sun_earth_bodies], pinned="Sun")
        one.run(5000.0, 3600.0)
        two = SimulationSet([b.copy() for b in sun_earth_bodies], pinned="Sun")
        two.run(3600.0, 3600.0)
        two.run(1400.0, 1400.0)
        np.testing.assert_allclose(one.y, two.y, rtol=1e-12)

    def test_stop_condition_marks_trajectory(self, sun_earth_bodies):
        sim = SimulationSet(sun_earth_bodies, pinned="Sun")
        traj = sim.run(DAY, 3600.0, stop_condition=lambda t, y: t >= 6 * 3600.0)
        assert traj.stopped
        assert len(traj) == 7
        assert sim.t == pytest.approx(6 * 3600.0)

    def test_truncated_run_raises(self, sun_earth_bodies):
        sim = SimulationSet(sun_earth_bodies, pinned="Sun")
        with pytest.raises(SimulationError):
            sim.run(DAY, 3600.0, max_steps=5)

    def test_negative_duration(self, sun_earth_bodies):
        sim = SimulationSet(sun_earth_bodies)
        with pytest.raises(ValueError):
            sim.run(-1.0, 3600.0)

    def test_apply_delta_v(self, sun_earth_bodies):
        sim = SimulationSet(sun_earth_bodies)
        v0 = sim.body("Earth").velocity
        sim.apply_delta_v("Earth", Vector3D(1.0, 0.0, 0.0))
        assert sim.body("Earth").velocity.x == pytest.approx(v0.x + 1.0)
        with pytest.raises(BodyNotFoundError):
            sim.apply_delta_v("Mars", Vector3D(1.0, 0.0, 0.0))

    def test_table_is_not_mutated(self, tiny_table):
        before = tuple(tiny_table)
        _, traj = run_simulation(tiny_table, duration=DAY, dt=3600.0)
        assert tuple(tiny_table) == before
        t, d = traj.closest_approach("Earth", "Titan")
        assert 0.0 <= t <= DAY
        assert d > 0.0

    def test_accelerations_follow_state(self, sun_earth_bodies):
        sim = SimulationSet(sun_earth_bodies, pinned="Sun")
        sim.step(3600.0)
        earth = sim.body("Earth")
        # points back at the Sun
        assert earth.acceleration.dot(earth.position) < 0.0


class TestTwoBodyQuantities:

    MU = 8978.0

    def test_circular_orbit(self):
        r = Vector3D(5750.0, 0.0, 0.0)
        v = Vector3D(0.0, circular_speed(self.MU, 5750.0), 0.0)
        assert eccentricity(r, v, self.MU) == pytest.approx(0.0, abs=1e-12)
        assert specific_energy(r, v, self.MU) == pytest.approx(-self.MU / (2 * 5750.0))

    def test_zero_radius_is_degenerate(self):
        with pytest.raises(SimulationError):
            eccentricity(Vector3D(0.0, 0.0, 0.0), Vector3D(1.0, 0.0, 0.0), self.MU)

    def test_period(self):
        assert orbital_period(self.MU, 2875.0) == pytest.approx(
            2 * math.pi * math.sqrt(2875.0 ** 3 / self.MU))

    def test_total_energy_overlap(self):
        a = Body("A", 1.0, (0, 0, 0), (0, 0, 0))
        b = Body("B", 1.0, (0, 0, 0), (0, 0, 0))
        with pytest.raises(SimulationError):
            total_energy([a, b])
