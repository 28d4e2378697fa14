# titanprobe/physics/forces.py
import numpy as np

from titanprobe.config import settings
from titanprobe.errors import BodyNotFoundError
from titanprobe.physics.state import STRIDE


class ForceModel:
    """
    Base force model. ``derivative(t, y)`` maps a flat state to its time
    derivative and is what the solvers call.
    """
    def derivative(self, t: float, y: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def __call__(self, t: float, y: np.ndarray) -> np.ndarray:
        return self.derivative(t, y)


class NBodyGravity(ForceModel):
    """
    Softened Newtonian gravity between every pair of bodies:

        d(pos_i)/dt = vel_i
        d(vel_i)/dt = sum_{j != i} G m_j (pos_j - pos_i) / (|pos_j - pos_i|^2 + eps^2)^1.5

    O(n^2) per evaluation, vectorised over the pairwise displacement tensor.
    ``pinned`` is the index of a body whose derivative is forced to zero,
    which fixes it as the coordinate origin.
    """
    def __init__(self, masses, G: float = settings.G, softening: float = settings.SOFTENING_LENGTH,
                 pinned=None):
        masses = np.asarray(masses, dtype=float)
        if masses.ndim != 1 or masses.size == 0:
            raise ValueError("masses must be a non-empty 1-D sequence")
        if np.any(masses <= 0) or not np.all(np.isfinite(masses)):
            raise ValueError("masses must be positive and finite")
        if G <= 0:
            raise ValueError(f"G must be > 0, got {G}")
        if softening < 0:
            raise ValueError(f"softening must be >= 0, got {softening}")
        if pinned is not None and not (0 <= pinned < masses.size):
            raise ValueError(f"pinned index {pinned} out of range for {masses.size} bodies")
        self.masses = masses
        self.G = float(G)
        self.softening = float(softening)
        self.pinned = pinned
        self._gm = self.G * masses
        self.evaluations = 0

    @classmethod
    def from_bodies(cls, bodies, G: float = settings.G, softening: float = settings.SOFTENING_LENGTH,
                    pinned_name=None):
        pinned = None
        if pinned_name is not None:
            names = [b.name for b in bodies]
            if pinned_name not in names:
                raise BodyNotFoundError(pinned_name)
            pinned = names.index(pinned_name)
        return cls([b.mass for b in bodies], G=G, softening=softening, pinned=pinned)

    @property
    def n_bodies(self) -> int:
        return self.masses.size

    def accelerations(self, positions: np.ndarray) -> np.ndarray:
        """(n, 3) accelerations for (n, 3) positions."""
        positions = np.asarray(positions, dtype=float)
        # diff[i, j] = pos_j - pos_i
        diff = positions[np.newaxis, :, :] - positions[:, np.newaxis, :]
        r2 = np.einsum("ijk,ijk->ij", diff, diff) + self.softening ** 2
        with np.errstate(divide="ignore", invalid="ignore"):
            inv_r3 = r2 ** -1.5
            # no self-interaction, also covers eps = 0 on the diagonal
            np.fill_diagonal(inv_r3, 0.0)
            acc = np.einsum("ij,ijk->ik", inv_r3 * self._gm[np.newaxis, :], diff)
        if self.pinned is not None:
            acc[self.pinned] = 0.0
        return acc

    def derivative(self, t: float, y: np.ndarray) -> np.ndarray:
        self.evaluations += 1
        state = np.asarray(y, dtype=float).reshape(-1, STRIDE)
        if state.shape[0] != self.n_bodies:
            raise ValueError(f"State holds {state.shape[0]} bodies, model has {self.n_bodies}")
        dy = np.empty_like(state)
        dy[:, :3] = state[:, 3:]
        dy[:, 3:] = self.accelerations(state[:, :3])
        if self.pinned is not None:
            dy[self.pinned] = 0.0
        return dy.reshape(-1)
