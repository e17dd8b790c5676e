"""
Euler angles through an RQ decomposition.

The decomposition uses Givens rotations, as in Hartley & Zisserman,
Multiple View Geometry, appendix A4.1.1. Each step zeroes one sub-diagonal
entry with an atan2, so the angles stay well defined everywhere, but at a
pitch of +/- pi/2 (gimbal lock) roll and yaw are no longer separable: the
decomposition still reproduces the matrix, while the split between roll and
yaw is arbitrary and very sensitive to rounding.
"""
import logging

import casadi as ca
import numpy as np

from .lie.so3 import Dcm

logger = logging.getLogger(__name__)

# |cos(pitch)| below which the decomposition is reported as gimbal locked
GIMBAL_LOCK_TOL = 1e-6


def rx(t):
    """
    Rotation about the x axis, counterclockwise looking down the axis
    """
    R = ca.SX(3, 3)
    R[0, 0] = 1
    R[1, 1] = ca.cos(t)
    R[1, 2] = -ca.sin(t)
    R[2, 1] = ca.sin(t)
    R[2, 2] = ca.cos(t)
    return R


def ry(t):
    R = ca.SX(3, 3)
    R[0, 0] = ca.cos(t)
    R[0, 2] = ca.sin(t)
    R[1, 1] = 1
    R[2, 0] = -ca.sin(t)
    R[2, 2] = ca.cos(t)
    return R


def rz(t):
    R = ca.SX(3, 3)
    R[0, 0] = ca.cos(t)
    R[0, 1] = -ca.sin(t)
    R[1, 0] = ca.sin(t)
    R[1, 1] = ca.cos(t)
    R[2, 2] = 1
    return R


def rq(A):
    """
    RQ decomposition A = R Qz' Qy' Qx' with Qx = Rx(-x), Qy = Ry(-y),
    Qz = Rz(-z), i.e. A = R Rz(z) Ry(y) Rx(x).

    :param A: a 3x3 matrix
    :return: the upper triangular R and the angles [x, y, z]
    """
    assert A.shape == (3, 3)
    x = -ca.atan2(-A[2, 1], A[2, 2])
    B = A @ rx(-x)

    y = -ca.atan2(B[2, 0], B[2, 2])
    C = B @ ry(-y)

    z = -ca.atan2(-C[1, 0], C[1, 1])
    R = C @ rz(-z)
    return R, ca.vertcat(x, y, z)


_t = ca.SX.sym("t")
_e = ca.SX.sym("e", 3)
_A = ca.SX.sym("A", 3, 3)

Rx = ca.Function("Rx", [_t], [rx(_t)])
Ry = ca.Function("Ry", [_t], [ry(_t)])
Rz = ca.Function("Rz", [_t], [rz(_t)])
RzRyRx = ca.Function("RzRyRx", [_e], [Dcm.from_euler(_e)])
_rq = ca.Function("rq", [_A], list(rq(_A)))

# delete temp variables used to create functions
del _t, _e, _A


def RQ(A):
    """
    Numerical RQ decomposition of a 3x3 matrix.

    When A is a rotation matrix, R is the identity and the angles are the
    xyz euler angles of A, A = RzRyRx(x, y, z). Near a pitch of +/- pi/2
    only the product is meaningful, a warning is logged.

    :param A: 3x3 array like
    :return: (R, [x, y, z]) as numpy arrays
    """
    A = np.asarray(A, dtype=float)
    assert A.shape == (3, 3)
    R, xyz = _rq(A)
    xyz = np.array(xyz.full()).ravel()
    if abs(np.cos(xyz[1])) < GIMBAL_LOCK_TOL:
        logger.warning(
            "RQ: pitch %.6f is at gimbal lock, roll and yaw are not separable", xyz[1]
        )
    return np.array(R.full()), xyz
