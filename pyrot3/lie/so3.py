import casadi as ca

from .lie_group import LieGroup
from .util import series_dict


# see: https://ethaneade.com/lie.pdf
# Jacobians follow the right (body) perturbation convention: R * exp(d)


# switch the DCM log to the quaternion branch when trace(R) + 1 is below
# this, i.e. for rotation angles above ~2.4 rad
EPS_PI = 0.5

EPS = 1e-3


class _SO3Base(LieGroup):
    def vee(self, X):
        v = ca.SX(3, 1)
        v[0, 0] = X[2, 1]
        v[1, 0] = X[0, 2]
        v[2, 0] = X[1, 0]
        return v

    def wedge(self, v):
        X = ca.SX(3, 3)
        theta0 = v[0]
        theta1 = v[1]
        theta2 = v[2]
        X[0, 1] = -theta2
        X[0, 2] = theta1
        X[1, 0] = theta2
        X[1, 2] = -theta0
        X[2, 0] = -theta1
        X[2, 1] = theta0
        return X

    def right_jacobian(self, v):
        """
        Derivative of exp at v, maps a tangent increment at v to the
        body-frame increment of exp(v).
        """
        self.check_algebra_shape(v)
        theta = ca.norm_2(v)
        X = self.wedge(v)
        B = series_dict["(1 - cos(x))/x^2"]
        C = series_dict["(1 - sin(x)/x)/x^2"]
        return ca.SX.eye(3) - B(theta) * X + C(theta) * X @ X

    def right_jacobian_inv(self, v):
        """
        Inverse of the right Jacobian, the derivative of log. Finite for
        all |v| < 2 pi.
        """
        self.check_algebra_shape(v)
        theta = ca.norm_2(v)
        X = self.wedge(v)
        D = series_dict["1/x^2 - cot(x/2)/(2 x)"]
        return ca.SX.eye(3) + 0.5 * X + D(theta) * X @ X


class _Dcm(_SO3Base):
    def __init__(self):
        super().__init__(group_params=9, algebra_params=3, group_shape=(3, 3))

    def identity(self) -> ca.SX:
        return ca.SX.eye(3)

    def product(self, a, b):
        self.check_group_shape(a)
        self.check_group_shape(b)
        return a @ b

    def inv(self, a):
        self.check_group_shape(a)
        return ca.transpose(a)

    def exp(self, v):
        """
        Rodrigues' formula
        """
        self.check_algebra_shape(v)
        theta = ca.norm_2(v)
        X = self.wedge(v)
        A = series_dict["sin(x)/x"]
        B = series_dict["(1 - cos(x))/x^2"]
        return ca.SX.eye(3) + A(theta) * X + B(theta) * X @ X

    def log(self, R):
        """
        Near an angle of pi, sin(theta) vanishes and the skew part of R no
        longer determines the axis, there the axis is taken from the vector
        part of the equivalent quaternion.
        """
        self.check_group_shape(R)
        tr = ca.trace(R)
        theta = ca.acos(ca.fmax(ca.fmin((tr - 1) / 2, 1), -1))
        C = series_dict["x/(2 sin(x))"]
        v = self.vee(C(theta) * (R - R.T))
        return ca.if_else(tr + 1 < EPS_PI, Quat.log(Quat.from_dcm(R)), v)

    def cayley(self, v):
        """
        Cayley transform (I - X/2)^-1 (I + X/2) of the skew matrix X of v,
        a rational approximation of exp, only a chart for |v| well below
        the angle pi
        """
        self.check_algebra_shape(v)
        X = self.wedge(v)
        k = 4 / (4 + ca.dot(v, v))
        return ca.SX.eye(3) + k * (X + 0.5 * X @ X)

    def cayley_inv(self, R):
        self.check_group_shape(R)
        return 2 * self.vee(R - R.T) / (1 + ca.trace(R))

    def cayley_derivative(self, v):
        self.check_algebra_shape(v)
        X = self.wedge(v)
        return 4 / (4 + ca.dot(v, v)) * (ca.SX.eye(3) - 0.5 * X)

    def cayley_inv_derivative(self, v):
        """
        Derivative of cayley_inv, evaluated at v = cayley_inv(R)
        """
        self.check_algebra_shape(v)
        X = self.wedge(v)
        return ca.SX.eye(3) + 0.5 * X + 0.25 * v @ v.T

    def to_dcm(self, R):
        self.check_group_shape(R)
        return R

    def from_dcm(self, R):
        self.check_group_shape(R)
        return R

    def to_quat(self, R):
        return Quat.from_dcm(R)

    def from_quat(self, q):
        assert q.shape == (4, 1) or q.shape == (4,)
        R = ca.SX(3, 3)
        a = q[0]
        b = q[1]
        c = q[2]
        d = q[3]
        aa = a * a
        ab = a * b
        ac = a * c
        ad = a * d
        bb = b * b
        bc = b * c
        bd = b * d
        cc = c * c
        cd = c * d
        dd = d * d
        R[0, 0] = aa + bb - cc - dd
        R[0, 1] = 2 * (bc - ad)
        R[0, 2] = 2 * (bd + ac)
        R[1, 0] = 2 * (bc + ad)
        R[1, 1] = aa + cc - bb - dd
        R[1, 2] = 2 * (cd - ab)
        R[2, 0] = 2 * (bd - ac)
        R[2, 1] = 2 * (cd + ab)
        R[2, 2] = aa + dd - bb - cc
        return R

    def from_euler(self, e):
        """
        Body 321 euler angles (phi, theta, psi), R = Rz(psi) Ry(theta) Rx(phi)
        """
        return self.from_quat(Quat.from_euler(e))


Dcm = _Dcm()


class _Quat(_SO3Base):
    def __init__(self):
        super().__init__(group_params=4, algebra_params=3, group_shape=(4, 1))

    def identity(self) -> ca.SX:
        return ca.SX([1, 0, 0, 0])

    def product(self, a, b):
        """
        Hamilton product, so that Dcm(a*b) = Dcm(a) Dcm(b)
        """
        self.check_group_shape(a)
        self.check_group_shape(b)
        r1 = a[0]
        v1 = a[1:]
        r2 = b[0]
        v2 = b[1:]
        res = ca.SX(4, 1)
        res[0] = r1 * r2 - ca.dot(v1, v2)
        res[1:] = r1 * v2 + r2 * v1 + ca.cross(v1, v2)
        return res

    def inv(self, q):
        """
        The conjugate, only the inverse for unit quaternions
        """
        self.check_group_shape(q)
        return ca.vertcat(q[0], -q[1], -q[2], -q[3])

    def exp(self, v):
        self.check_algebra_shape(v)
        theta = ca.norm_2(v)
        A = series_dict["sin(x)/x"]
        # sin(theta/2)/theta = A(theta/2)/2
        return ca.vertcat(ca.cos(theta / 2), 0.5 * A(theta / 2) * v)

    def log(self, q):
        """
        Uses 2 atan2(|v|, w) for the angle, which stays accurate at an angle
        of pi where w vanishes. The sign of q is picked so that w >= 0,
        which gives the log with angle in [0, pi].
        """
        self.check_group_shape(q)
        q = ca.if_else(q[0] < 0, -q, q)
        w = q[0]
        v = q[1:]
        s = ca.norm_2(v)
        # 2 atan(s/w)/s, series in s/w for small s
        r = s / w
        k = ca.if_else(
            s < EPS,
            2 / w * (1 - r**2 / 3 + r**4 / 5),
            2 * ca.atan2(s, w) / s,
        )
        return k * v

    def to_dcm(self, q):
        return Dcm.from_quat(q)

    def from_dcm(self, R):
        assert R.shape == (3, 3)
        b1 = 0.5 * ca.sqrt(1 + R[0, 0] + R[1, 1] + R[2, 2])
        b2 = 0.5 * ca.sqrt(1 + R[0, 0] - R[1, 1] - R[2, 2])
        b3 = 0.5 * ca.sqrt(1 - R[0, 0] + R[1, 1] - R[2, 2])
        b4 = 0.5 * ca.sqrt(1 - R[0, 0] - R[1, 1] + R[2, 2])

        q1 = ca.SX(4, 1)
        q1[0] = b1
        q1[1] = (R[2, 1] - R[1, 2]) / (4 * b1)
        q1[2] = (R[0, 2] - R[2, 0]) / (4 * b1)
        q1[3] = (R[1, 0] - R[0, 1]) / (4 * b1)

        q2 = ca.SX(4, 1)
        q2[0] = (R[2, 1] - R[1, 2]) / (4 * b2)
        q2[1] = b2
        q2[2] = (R[0, 1] + R[1, 0]) / (4 * b2)
        q2[3] = (R[0, 2] + R[2, 0]) / (4 * b2)

        q3 = ca.SX(4, 1)
        q3[0] = (R[0, 2] - R[2, 0]) / (4 * b3)
        q3[1] = (R[0, 1] + R[1, 0]) / (4 * b3)
        q3[2] = b3
        q3[3] = (R[1, 2] + R[2, 1]) / (4 * b3)

        q4 = ca.SX(4, 1)
        q4[0] = (R[1, 0] - R[0, 1]) / (4 * b4)
        q4[1] = (R[0, 2] + R[2, 0]) / (4 * b4)
        q4[2] = (R[1, 2] + R[2, 1]) / (4 * b4)
        q4[3] = b4

        q = ca.if_else(
            ca.trace(R) > 0,
            q1,
            ca.if_else(
                ca.logic_and(R[0, 0] > R[1, 1], R[0, 0] > R[2, 2]),
                q2,
                ca.if_else(R[1, 1] > R[2, 2], q3, q4),
            ),
        )
        return q

    def to_quat(self, q):
        self.check_group_shape(q)
        return q

    def from_quat(self, q):
        self.check_group_shape(q)
        return q

    def from_euler(self, e):
        assert e.shape == (3, 1) or e.shape == (3,)
        q = ca.SX(4, 1)
        cosPhi_2 = ca.cos(e[0] / 2)
        cosTheta_2 = ca.cos(e[1] / 2)
        cosPsi_2 = ca.cos(e[2] / 2)
        sinPhi_2 = ca.sin(e[0] / 2)
        sinTheta_2 = ca.sin(e[1] / 2)
        sinPsi_2 = ca.sin(e[2] / 2)
        q[0] = cosPhi_2 * cosTheta_2 * cosPsi_2 + sinPhi_2 * sinTheta_2 * sinPsi_2
        q[1] = sinPhi_2 * cosTheta_2 * cosPsi_2 - cosPhi_2 * sinTheta_2 * sinPsi_2
        q[2] = cosPhi_2 * sinTheta_2 * cosPsi_2 + sinPhi_2 * cosTheta_2 * sinPsi_2
        q[3] = cosPhi_2 * cosTheta_2 * sinPsi_2 - sinPhi_2 * sinTheta_2 * cosPsi_2
        return q


Quat = _Quat()
