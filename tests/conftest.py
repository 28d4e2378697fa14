import numpy as np
import pytest

from titanprobe.data.solar_system import BodyRecord, load_table
from titanprobe.engine.evaluator import EvaluatorConfig
from titanprobe.physics.entity import Body
from titanprobe.physics.vector import Vector3D

DAY = 86400.0


@pytest.fixture
def table():
    return load_table()


@pytest.fixture
def short_eval_config():
    """Two simulated days at one-hour steps."""
    return EvaluatorConfig(duration=2 * DAY, dt=3600.0, solver="rk4")


@pytest.fixture
def sun_earth_bodies():
    """Sun at the origin and Earth on a circular orbit in the x-y plane."""
    G = 6.6743e-20
    m_sun = 1.99e30
    r = 1.496e8
    v = np.sqrt(G * m_sun / r)
    return [
        Body("Sun", m_sun, Vector3D(0.0, 0.0, 0.0), Vector3D(0.0, 0.0, 0.0)),
        Body("Earth", 5.97e24, Vector3D(r, 0.0, 0.0), Vector3D(0.0, v, 0.0)),
    ]


@pytest.fixture
def tiny_table():
    return (
        BodyRecord("Sun", 1.99e30, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0)),
        BodyRecord("Earth", 5.97e24, (-1.47e8, -2.97e7, 2.75e4), (5.31e0, -2.93e1, 6.69e-4)),
        BodyRecord("Titan", 1.35e23, (1.42e9, -1.92e8, -5.28e7), (5.95e0, 7.68e0, 2.54e-1)),
    )
