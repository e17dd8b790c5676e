"""
The Rot3 value type: a rotation in SO(3) with the Lie group and chart
machinery used by nonlinear least-squares solvers.

A Rot3 type is built once per configuration by rot3_type(): either a
rotation matrix or a unit quaternion is stored, never both, and the default
chart is fixed. Values are immutable, every operation returns a new value.
All numerical work is done by casadi functions compiled from the symbolic
groups in pyrot3.lie.so3, public results are numpy arrays.

Jacobians are computed only when requested with the H, H1, H2 flags. They
are taken with respect to right (body) perturbations, R * Expmap(d). When a
Jacobian is requested the result is returned as a tuple, (result, H) for one
operand, (result, H1, H2) for two, with None for the ones not requested.
"""
import functools
import logging

import casadi as ca
import numpy as np

from . import config
from . import euler
from .lie.so3 import Dcm, Quat
from .unit3 import Unit3, skew

logger = logging.getLogger(__name__)

SERIAL_VERSION = 1
MATRIX_FIELDS = (
    "rot11", "rot12", "rot13",
    "rot21", "rot22", "rot23",
    "rot31", "rot32", "rot33",
)
QUATERNION_FIELDS = ("w", "x", "y", "z")

_v = ca.SX.sym("v", 3)
_R = ca.SX.sym("R", 3, 3)

expmap_derivative = ca.Function("expmap_derivative", [_v], [Dcm.right_jacobian(_v)])
logmap_derivative = ca.Function("logmap_derivative", [_v], [Dcm.right_jacobian_inv(_v)])
cayley = ca.Function("cayley", [_v], [Dcm.cayley(_v)])
cayley_local = ca.Function("cayley_local", [_R], [Dcm.cayley_inv(_R)])
cayley_derivative = ca.Function("cayley_derivative", [_v], [Dcm.cayley_derivative(_v)])
cayley_local_derivative = ca.Function(
    "cayley_local_derivative", [_v], [Dcm.cayley_inv_derivative(_v)]
)

# delete temp variables used to create functions
del _v, _R


def _vec3(v):
    v = np.asarray(v, dtype=float).reshape(-1)
    assert v.shape == (3,)
    return v


def _np(x):
    return np.array(x.full())


def _normalize_dcm(data):
    """
    Closest rotation matrix in the Frobenius norm
    """
    U, _, Vt = np.linalg.svd(_np(data))
    D = np.diag([1.0, 1.0, np.linalg.det(U @ Vt)])
    return ca.DM(U @ D @ Vt)


def _normalize_quat(data):
    q = _np(data)
    return ca.DM(q / np.linalg.norm(q))


@functools.lru_cache(maxsize=None)
def _compile(representation):
    G = {"matrix": Dcm, "quaternion": Quat}[representation]
    a = ca.SX.sym("a", *G.group_shape)
    b = ca.SX.sym("b", *G.group_shape)
    v = ca.SX.sym("v", 3)
    R = ca.SX.sym("R", 3, 3)
    q = ca.SX.sym("q", 4)
    return {
        "identity": ca.evalf(G.identity()),
        "product": ca.Function("product", [a, b], [G.product(a, b)]),
        "inv": ca.Function("inv", [a], [G.inv(a)]),
        "exp": ca.Function("exp", [v], [G.exp(v)]),
        "log": ca.Function("log", [a], [G.log(a)]),
        "to_dcm": ca.Function("to_dcm", [a], [G.to_dcm(a)]),
        "to_quat": ca.Function("to_quat", [a], [G.to_quat(a)]),
        "from_dcm": ca.Function("from_dcm", [R], [G.from_dcm(R)]),
        "from_quat": ca.Function("from_quat", [q], [G.from_quat(q)]),
        "normalize": {"matrix": _normalize_dcm, "quaternion": _normalize_quat}[representation],
        "fields": {"matrix": MATRIX_FIELDS, "quaternion": QUATERNION_FIELDS}[representation],
    }


# noinspection PyPep8Naming
class _Rot3Base:
    """
    Rotation in SO(3).

    Rot3() is the identity, Rot3(M) takes a 3x3 rotation matrix, Rot3(q) a
    quaternion as (w, x, y, z) and Rot3(w, x, y, z) its coefficients.
    """

    __slots__ = ("_data", "_chain")

    representation = None
    chart = None
    renormalize_every = 0
    _ops = None

    def __init__(self, *args):
        if len(args) == 0:
            data = self._ops["identity"]
        elif len(args) == 4:
            data = self._ops["from_quat"](np.array(args, dtype=float))
        else:
            assert len(args) == 1
            a = np.asarray(args[0], dtype=float)
            if a.shape == (3, 3):
                data = self._ops["from_dcm"](a)
            else:
                assert a.shape == (4,)
                data = self._ops["from_quat"](a)
        self._data = data
        # number of compositions since the last normalization
        self._chain = 0

    @classmethod
    def _make(cls, data, chain=0):
        if cls.renormalize_every and chain >= cls.renormalize_every:
            logger.debug("%s: renormalizing after %d compositions", cls.representation, chain)
            data = cls._ops["normalize"](data)
            chain = 0
        R = object.__new__(cls)
        R._data = data
        R._chain = chain
        return R

    @classmethod
    def _cast(cls, R):
        if type(R) is cls:
            return R
        assert isinstance(R, _Rot3Base)
        return cls(R.matrix())

    # Named constructors

    @classmethod
    def identity(cls):
        return cls()

    @classmethod
    def from_matrix(cls, M):
        return cls(M)

    @classmethod
    def from_columns(cls, col1, col2, col3):
        """
        Rotation with the given columns, the axes of the rotated frame
        """
        return cls(np.column_stack((_vec3(col1), _vec3(col2), _vec3(col3))))

    @classmethod
    def Quaternion(cls, w, x, y, z):
        return cls(w, x, y, z)

    @classmethod
    def Rx(cls, t):
        """
        Rotation about X, counterclockwise looking down the axis
        """
        return cls._make(cls._ops["from_dcm"](euler.Rx(t)))

    @classmethod
    def Ry(cls, t):
        return cls._make(cls._ops["from_dcm"](euler.Ry(t)))

    @classmethod
    def Rz(cls, t):
        return cls._make(cls._ops["from_dcm"](euler.Rz(t)))

    @classmethod
    def RzRyRx(cls, x, y=None, z=None):
        """
        Rz(z) Ry(y) Rx(x), also accepts a single vector [x, y, z]
        """
        if y is None:
            x, y, z = _vec3(x)
        return cls._make(cls._ops["from_dcm"](euler.RzRyRx(np.array([x, y, z], dtype=float))))

    @classmethod
    def Ypr(cls, y, p, r):
        """
        Rotation nRb from body to nav frame. For a body frame with X
        forward, Y right, Z down, positive yaw is to the right, positive
        pitch is up and positive roll is right wing down.
        """
        return cls.RzRyRx(r, p, y)

    @classmethod
    def Yaw(cls, t):
        return cls.Rz(t)

    @classmethod
    def Pitch(cls, t):
        return cls.Ry(t)

    @classmethod
    def Roll(cls, t):
        return cls.Rx(t)

    @classmethod
    def AxisAngle(cls, axis, angle):
        """
        :param axis: rotation axis, array like or Unit3, must have unit length
        :param angle: rotation angle in radians
        """
        if isinstance(axis, Unit3):
            axis = axis.unit_vector()
        return cls.Expmap(angle * _vec3(axis))

    @classmethod
    def Rodrigues(cls, wx, wy=None, wz=None):
        """
        Incremental rotation from a vector w or its components, same as Expmap
        """
        if wy is None:
            return cls.Expmap(wx)
        return cls.Expmap([wx, wy, wz])

    @classmethod
    def Random(cls, rng=None):
        """
        Random axis and an angle uniform in [-pi, pi]. The numpy Generator is
        owned by the caller, it is not synchronized here.
        """
        rng = np.random.default_rng() if rng is None else rng
        axis = Unit3.Random(rng)
        return cls.AxisAngle(axis, rng.uniform(-np.pi, np.pi))

    @classmethod
    def AlignPair(cls, axis, a_p, b_p):
        """
        Rotation bRa about axis that aligns direction a_p with b_p, as far as a
        rotation about axis can: the projections of bRa a_p and b_p on the
        plane orthogonal to axis point the same way.

        :param axis: rotation axis, Unit3 or array like
        :param a_p: direction measured in frame a, Unit3
        :param b_p: the same direction measured in frame b, Unit3
        """
        a = a_p.unit_vector()
        b = b_p.unit_vector()
        if a @ b > 1 - 1e-9:
            return cls.identity()

        z = axis.unit_vector() if isinstance(axis, Unit3) else _vec3(axis)
        n = np.linalg.norm(z)
        if not n > 1e-12:
            raise ValueError("AlignPair: degenerate rotation axis")
        z = z / n

        P = np.eye(3) - np.outer(z, z)
        a_po = P @ a
        b_po = P @ b
        if np.linalg.norm(a_po) < 1e-12 or np.linalg.norm(b_po) < 1e-12:
            raise ValueError("AlignPair: direction is parallel to the rotation axis")
        x = a_po / np.linalg.norm(a_po)
        y = np.cross(z, x)
        angle = np.arctan2(y @ b_po, x @ b_po)
        return cls.AxisAngle(z, angle)

    @classmethod
    def AlignTwoPairs(cls, a_p, b_p, a_q, b_q):
        """
        Rotation bRa from two directions p, q measured in both frames a and b,
        using two successive AlignPair rotations through an intermediate
        frame i: the first aligns p, the second turns about p to align q.
        When p is reversed between the frames any axis orthogonal to it
        aligns p, the second rotation then fixes the result.
        """
        axis = a_p.cross(b_p)
        if np.linalg.norm(axis) < 1e-8 and a_p.dot(b_p) < 0:
            axis = a_p.basis()[:, 0]
        iRa = cls.AlignPair(axis, a_p, b_p)
        i_q = iRa.rotate(a_q)
        bRi = cls.AlignPair(b_p, i_q, b_q)
        return bRi.compose(iRa)

    # Standard interface

    def matrix(self):
        return _np(self._ops["to_dcm"](self._data))

    def transpose(self):
        return self.matrix().T

    def column(self, index):
        """
        Column index, 1 based
        """
        assert 1 <= index <= 3
        return self.matrix()[:, index - 1]

    def r1(self):
        return self.matrix()[:, 0]

    def r2(self):
        return self.matrix()[:, 1]

    def r3(self):
        return self.matrix()[:, 2]

    def quaternion(self):
        """
        :return: the unit quaternion (w, x, y, z) with w >= 0
        """
        q = _np(self._ops["to_quat"](self._data)).ravel()
        return -q if q[0] < 0 else q

    def to_quaternion(self):
        return self.quaternion()

    def normalized(self):
        """
        Project back onto SO(3), removing the drift of repeated compositions
        """
        return self._make(self._ops["normalize"](self._data))

    # Testable

    def equals(self, other, tol=1e-9):
        """
        Compares the rotation matrices, so q and -q are equal. Never raises.
        """
        if not isinstance(other, _Rot3Base):
            return False
        return bool(np.max(np.abs(self.matrix() - other.matrix())) <= tol)

    def __repr__(self):
        return "{}({})".format(
            type(self).__name__,
            np.array2string(_np(self._data).squeeze(), precision=9, separator=", "),
        )

    def __str__(self):
        return "R: [\n{}\n]".format(np.array2string(self.matrix(), precision=9))

    # Group

    def compose(self, other, H1=False, H2=False):
        other = self._cast(other)
        result = self._make(
            self._ops["product"](self._data, other._data),
            max(self._chain, other._chain) + 1,
        )
        if not (H1 or H2):
            return result
        return result, (other.transpose() if H1 else None), (np.eye(3) if H2 else None)

    def __mul__(self, other):
        if isinstance(other, _Rot3Base):
            return self.compose(other)
        return self.rotate(other)

    def inverse(self, H=False):
        result = self._make(self._ops["inv"](self._data), self._chain)
        if H:
            return result, -self.matrix()
        return result

    def between(self, other, H1=False, H2=False):
        """
        self^-1 * other
        """
        result = self.inverse().compose(other)
        if not (H1 or H2):
            return result
        return result, (-result.transpose() if H1 else None), (np.eye(3) if H2 else None)

    def conjugate(self, cRb):
        """
        Given this rotation b1Rb2 acting in frame B, the same rotation acting
        in frame C, c1Rc2 = cRb * b1Rb2 * cRb^-1.

        :param cRb: rotation from frame B to frame C
        """
        cRb = self._cast(cRb)
        return cRb.compose(self).compose(cRb.inverse())

    def adjoint_map(self):
        return self.matrix()

    # Lie group

    @classmethod
    def Expmap(cls, v, H=False):
        """
        Exponential map at identity, Rodrigues' formula for matrices.

        :param v: tangent vector [wx, wy, wz]
        :param H: also return the derivative, ExpmapDerivative(v)
        """
        v = _vec3(v)
        R = cls._make(cls._ops["exp"](v))
        if H:
            return R, cls.ExpmapDerivative(v)
        return R

    @classmethod
    def Logmap(cls, R, H=False):
        """
        Log map at identity, the tangent vector with norm in [0, pi] whose
        Expmap is R. At an angle of exactly pi the sign of the axis is
        arbitrary, close to it the result is computed from the quaternion
        vector part and stays accurate.

        :param H: also return the derivative, LogmapDerivative(result)
        """
        R = cls._cast(R)
        v = _np(cls._ops["log"](R._data)).ravel()
        if H:
            return v, cls.LogmapDerivative(v)
        return v

    @staticmethod
    def ExpmapDerivative(v):
        """
        Right Jacobian of SO(3): Expmap(v + d) ~ Expmap(v) Expmap(J d)
        """
        return _np(expmap_derivative(_vec3(v)))

    @staticmethod
    def LogmapDerivative(v):
        """
        Inverse of the right Jacobian: Logmap(Expmap(v) Expmap(d)) ~ v + J d
        """
        return _np(logmap_derivative(_vec3(v)))

    def expmap(self, v):
        return self.compose(self.Expmap(v))

    def logmap(self, other):
        return self.Logmap(self.between(other))

    def slerp(self, t, other):
        """
        Interpolate along the geodesic, t = 0 is self and t = 1 is other
        """
        return self.compose(self.Expmap(t * self.logmap(other)))

    # Manifold

    @classmethod
    def retract_at_origin(cls, v, H=False):
        """
        Chart at the origin of the configured chart
        """
        return cls.Expmap(v, H)

    @classmethod
    def local_at_origin(cls, R, H=False):
        return cls.Logmap(R, H)

    def retract(self, v, H1=False, H2=False):
        """
        self * retract_at_origin(v)
        """
        if H2:
            g, D = self.retract_at_origin(v, H=True)
        else:
            g = self.retract_at_origin(v)
        result = self.compose(g)
        if not (H1 or H2):
            return result
        return result, (g.transpose() if H1 else None), (D if H2 else None)

    def local_coordinates(self, other, H1=False, H2=False):
        """
        local_at_origin(self^-1 * other), the inverse of retract
        """
        h = self.between(other)
        if not (H1 or H2):
            return self.local_at_origin(h)
        v, D = self.local_at_origin(h, H=True)
        return v, (-D @ h.transpose() if H1 else None), (D if H2 else None)

    # Group action

    def rotate(self, p, H1=False, H2=False):
        """
        Rotate a point from the rotated frame to the world frame, p^w = R p^c.
        Unit3 directions are rotated on S^2, their Jacobians are 2x3 and 2x2.

        :param p: point, array like of size 3, or Unit3
        :param H1: derivative with respect to the rotation
        :param H2: derivative with respect to the point
        """
        if isinstance(p, Unit3):
            return self._rotate_unit3(p, H1, H2)
        p = _vec3(p)
        R = self.matrix()
        q = R @ p
        if not (H1 or H2):
            return q
        return q, (-R @ skew(p) if H1 else None), (R if H2 else None)

    def unrotate(self, p, H1=False, H2=False):
        """
        Rotate a point from the world frame to the rotated frame, p^c = R' p^w
        """
        if isinstance(p, Unit3):
            return self._unrotate_unit3(p, H1, H2)
        p = _vec3(p)
        Rt = self.transpose()
        q = Rt @ p
        if not (H1 or H2):
            return q
        return q, (skew(q) if H1 else None), (Rt if H2 else None)

    def _rotate_unit3(self, p, H1, H2):
        R = self.matrix()
        q = Unit3(R @ p.point3())
        if not (H1 or H2):
            return q
        Bq = q.basis()
        return (
            q,
            (-Bq.T @ R @ p.skew() if H1 else None),
            (Bq.T @ R @ p.basis() if H2 else None),
        )

    def _unrotate_unit3(self, p, H1, H2):
        Rt = self.transpose()
        q = Unit3(Rt @ p.point3())
        if not (H1 or H2):
            return q
        Bq = q.basis()
        return (
            q,
            (Bq.T @ q.skew() if H1 else None),
            (Bq.T @ Rt @ p.basis() if H2 else None),
        )

    # Euler angles

    def xyz(self):
        """
        Angles [x, y, z] such that R = RzRyRx(x, y, z), from RQ
        """
        return euler.RQ(self.matrix())[1]

    def ypr(self):
        """
        Angles [yaw, pitch, roll] such that R = Ypr(yaw, pitch, roll)
        """
        return self.xyz()[::-1]

    def rpy(self):
        return self.xyz()

    def roll(self):
        return self.ypr()[2]

    def pitch(self):
        return self.ypr()[1]

    def yaw(self):
        return self.ypr()[0]

    # Persistence

    def serialize(self):
        """
        Versioned record with the nine matrix entries rot11 ... rot33 (row
        major) or the quaternion w, x, y, z.
        """
        record = {"version": SERIAL_VERSION}
        record.update(zip(self._ops["fields"], _np(self._data).ravel().tolist()))
        return record

    @classmethod
    def deserialize(cls, record):
        """
        Inverse of serialize, also converts between the two representations.
        The values are not renormalized.
        """
        if record.get("version") != SERIAL_VERSION:
            raise ValueError("unsupported Rot3 record version: {}".format(record.get("version")))
        if "rot11" in record:
            M = np.array([record[k] for k in MATRIX_FIELDS], dtype=float).reshape(3, 3)
            data = cls._ops["from_dcm"](M)
        else:
            q = np.array([record[k] for k in QUATERNION_FIELDS], dtype=float)
            data = cls._ops["from_quat"](q)
        return cls._make(data)

    def __reduce__(self):
        return _restore, (self.representation, self.chart, self.renormalize_every, self.serialize())


# noinspection PyPep8Naming
class _CayleyChart:
    """
    The Cayley transform chart, a cheap alternative to Expmap / Logmap
    without trigonometric functions. Only available for rotation matrices.
    """

    __slots__ = ()

    @classmethod
    def CayleyRetract(cls, v, H=False):
        v = _vec3(v)
        R = cls._make(cayley(v))
        if H:
            return R, _np(cayley_derivative(v))
        return R

    @classmethod
    def CayleyLocal(cls, R, H=False):
        """
        Inverse of CayleyRetract, singular for rotation angles of pi
        """
        R = cls._cast(R)
        v = _np(cayley_local(R._data)).ravel()
        if H:
            return v, _np(cayley_local_derivative(v))
        return v

    def retract_cayley(self, v):
        return self.compose(self.CayleyRetract(v))

    def local_cayley(self, other):
        return self.CayleyLocal(self.between(other))


class _CayleyChartAtOrigin:
    """
    Makes the Cayley chart the default chart
    """

    __slots__ = ()

    @classmethod
    def retract_at_origin(cls, v, H=False):
        return cls.CayleyRetract(v, H)

    @classmethod
    def local_at_origin(cls, R, H=False):
        return cls.CayleyLocal(R, H)


def rot3_type(representation="matrix", chart=None, renormalize_every=64):
    """
    The Rot3 type for a configuration, see pyrot3.config. Types are cached,
    the same configuration always gives the same class.
    """
    p = config.init_params(
        {
            "representation": representation,
            "chart": chart,
            "renormalize_every": renormalize_every,
        }
    )
    return _build_type(p["representation"], p["chart"], p["renormalize_every"])


@functools.lru_cache(maxsize=None)
def _build_type(representation, chart, renormalize_every):
    if representation == "matrix":
        bases = (_CayleyChart, _Rot3Base)
        if chart == "cayley":
            bases = (_CayleyChartAtOrigin,) + bases
    else:
        bases = (_Rot3Base,)
    logger.debug(
        "building Rot3: representation=%s chart=%s renormalize_every=%d",
        representation,
        chart,
        renormalize_every,
    )
    return type(
        "Rot3",
        bases,
        {
            "__slots__": (),
            "__module__": __name__,
            "representation": representation,
            "chart": chart,
            "renormalize_every": renormalize_every,
            "_ops": _compile(representation),
        },
    )


def _restore(representation, chart, renormalize_every, record):
    return rot3_type(representation, chart, renormalize_every).deserialize(record)
