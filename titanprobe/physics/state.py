# titanprobe/physics/state.py
import numpy as np

from titanprobe.physics.vector import Vector3D

# position (3) + velocity (3)
STRIDE = 6


class StateVector:
    """
    Flattened state of a fixed, ordered list of bodies.
    [x0, y0, z0, vx0, vy0, vz0, x1, ...]
    The body order is captured at construction and never changes.
    """
    def __init__(self, bodies):
        self.names = tuple(b.name for b in bodies)
        if len(set(self.names)) != len(self.names):
            raise ValueError(f"Body names must be unique, got {self.names}")
        self._index = {name: i for i, name in enumerate(self.names)}

    def __len__(self):
        return len(self.names)

    @property
    def dim(self):
        return STRIDE * len(self.names)

    def index_of(self, name):
        return self._index[name]

    def pack(self, bodies):
        if tuple(b.name for b in bodies) != self.names:
            raise ValueError("Body order differs from the order the state was built with")
        y = np.empty(self.dim, dtype=float)
        for i, b in enumerate(bodies):
            y[STRIDE * i:STRIDE * i + 3] = (b.position.x, b.position.y, b.position.z)
            y[STRIDE * i + 3:STRIDE * i + 6] = (b.velocity.x, b.velocity.y, b.velocity.z)
        return y

    def unpack(self, y, bodies, accelerations=None):
        """Write positions/velocities (and optionally accelerations) back onto bodies."""
        y = np.asarray(y, dtype=float)
        if y.shape != (self.dim,):
            raise ValueError(f"State has shape {y.shape}, expected ({self.dim},)")
        for i, b in enumerate(bodies):
            b.position = Vector3D(*y[STRIDE * i:STRIDE * i + 3].tolist())
            b.velocity = Vector3D(*y[STRIDE * i + 3:STRIDE * i + 6].tolist())
            if accelerations is not None:
                b.acceleration = Vector3D(*accelerations[i].tolist())

    @staticmethod
    def positions(y):
        """(n, 3) view of the positions inside a flat state."""
        return np.asarray(y).reshape(-1, STRIDE)[:, :3]

    def position_of(self, y, name):
        i = self._index[name]
        return np.asarray(y[STRIDE * i:STRIDE * i + 3], dtype=float)
