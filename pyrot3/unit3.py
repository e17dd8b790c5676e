"""
A unit direction in 3D, the 2 dof manifold S^2.

Only the surface needed by the rotation group action is provided: the unit
vector, a 2D tangent basis at the direction, and a retract / local pair on
that basis.
"""
import numpy as np


def skew(v):
    """
    The cross product matrix, skew(a) @ b = a x b
    """
    return np.array([[0, -v[2], v[1]], [v[2], 0, -v[0]], [-v[1], v[0], 0]])


class Unit3:

    __slots__ = ("_p", "_basis")

    def __init__(self, p=(1.0, 0.0, 0.0)):
        p = np.asarray(p, dtype=float).reshape(-1)
        assert p.shape == (3,)
        self._p = p / np.linalg.norm(p)
        self._basis = None

    @classmethod
    def Random(cls, rng=None):
        """
        Uniformly distributed direction, rng is a numpy Generator owned by the caller
        """
        rng = np.random.default_rng() if rng is None else rng
        return cls(rng.standard_normal(3))

    def point3(self):
        return self._p.copy()

    def unit_vector(self):
        return self._p.copy()

    def basis(self):
        """
        3x2 orthonormal basis of the tangent plane. The first vector is
        built from the coordinate axis on which the direction has the
        smallest projection, which keeps the cross product well conditioned.
        """
        if self._basis is None:
            n = self._p
            axis = np.zeros(3)
            axis[np.argmin(np.abs(n))] = 1.0
            b1 = np.cross(n, axis)
            b1 /= np.linalg.norm(b1)
            b2 = np.cross(n, b1)
            self._basis = np.column_stack((b1, b2))
        return self._basis.copy()

    def skew(self):
        return skew(self._p)

    def dot(self, other):
        return float(self._p @ other._p)

    def cross(self, other):
        """
        Cross product of the two unit vectors, not normalized
        """
        return np.cross(self._p, other._p)

    def retract(self, v):
        """
        Move along the great circle in the tangent direction basis() @ v
        """
        v = np.asarray(v, dtype=float).reshape(-1)
        assert v.shape == (2,)
        xi = self.basis() @ v
        theta = np.linalg.norm(xi)
        if theta < np.finfo(float).eps:
            return Unit3(self._p + xi)
        return Unit3(np.cos(theta) * self._p + np.sin(theta) / theta * xi)

    def local_coordinates(self, other):
        """
        Inverse of retract, for directions that are not antipodal
        """
        y = self.basis().T @ other._p
        s = np.linalg.norm(y)
        theta = np.arctan2(s, self._p @ other._p)
        if s < 1e-10:
            return y
        return theta / s * y

    def equals(self, other, tol=1e-9):
        return bool(np.max(np.abs(self._p - other._p)) <= tol)

    def __repr__(self):
        return "Unit3({:.9g}, {:.9g}, {:.9g})".format(*self._p)
