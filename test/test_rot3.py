import numpy as np
import pytest

from pyrot3 import Unit3, rot3_type
from numerical import numerical_derivative, perturb, rotation_derivative

eps = 1e-9
# tolerance of the finite difference checks
fd_tol = 1e-7

VARIANTS = [
    rot3_type("matrix", "cayley"),
    rot3_type("matrix", "expmap"),
    rot3_type("quaternion", "expmap"),
]
IDS = ["matrix-cayley", "matrix-expmap", "quaternion"]

variants = pytest.mark.parametrize("Rot3", VARIANTS, ids=IDS)


def samples(Rot3):
    return [
        Rot3(),
        Rot3.RzRyRx(0.1, 0.2, 0.3),
        Rot3.Ypr(-2.0, 0.9, 1.5),
        Rot3.AxisAngle([0.0, 0.6, 0.8], 2.5),
    ]


@variants
def test_identity(Rot3):
    assert np.allclose(Rot3().matrix(), np.eye(3))
    assert np.allclose(Rot3.identity().quaternion(), [1, 0, 0, 0])
    R = Rot3.RzRyRx(0.1, 0.2, 0.3)
    assert R.compose(Rot3()).equals(R)
    assert Rot3().compose(R).equals(R)


@variants
def test_constructors_agree(Rot3):
    R = Rot3.RzRyRx(0.1, -0.4, 2.0)
    M = R.matrix()
    q = R.quaternion()
    assert Rot3(M).equals(R)
    assert Rot3(q).equals(R)
    assert Rot3(*q).equals(R)
    assert Rot3.Quaternion(*q).equals(R)
    assert Rot3.from_columns(M[:, 0], M[:, 1], M[:, 2]).equals(R)
    assert Rot3.Rz(2.0).compose(Rot3.Ry(-0.4)).compose(Rot3.Rx(0.1)).equals(R)
    assert Rot3.RzRyRx([0.1, -0.4, 2.0]).equals(R)
    assert Rot3.Ypr(2.0, -0.4, 0.1).equals(R)
    assert Rot3.Yaw(0.3).equals(Rot3.Rz(0.3))
    assert Rot3.Pitch(0.3).equals(Rot3.Ry(0.3))
    assert Rot3.Roll(0.3).equals(Rot3.Rx(0.3))


@variants
def test_quarter_turn(Rot3):
    R = Rot3.Rz(np.pi / 2)
    assert np.linalg.norm(R.rotate([1, 0, 0]) - [0, 1, 0]) < eps
    assert np.linalg.norm(R * np.array([1.0, 0, 0]) - [0, 1, 0]) < eps
    assert np.linalg.norm(R.unrotate([0, 1, 0]) - [1, 0, 0]) < eps
    assert np.linalg.norm(Rot3.Rx(np.pi / 2).rotate([0, 1, 0]) - [0, 0, 1]) < eps
    assert np.linalg.norm(Rot3.Ry(np.pi / 2).rotate([0, 0, 1]) - [1, 0, 0]) < eps


@variants
def test_half_turn(Rot3):
    R = Rot3.AxisAngle([0, 0, 1], np.pi)
    assert R.compose(R).equals(Rot3())
    assert np.linalg.norm(R.matrix() - np.diag([-1, -1, 1])) < eps
    assert R.equals(Rot3.AxisAngle(Unit3([0, 0, 1]), np.pi))


@variants
def test_accessors(Rot3):
    R = Rot3.Ypr(0.3, -0.2, 1.1)
    M = R.matrix()
    assert np.allclose(R.transpose(), M.T)
    assert np.allclose(R.r1(), M[:, 0])
    assert np.allclose(R.r2(), M[:, 1])
    assert np.allclose(R.r3(), M[:, 2])
    assert np.allclose(R.column(2), M[:, 1])
    assert np.allclose(R.adjoint_map(), M)
    q = R.quaternion()
    assert q[0] >= 0
    assert abs(np.linalg.norm(q) - 1) < eps
    assert np.allclose(R.to_quaternion(), q)
    assert "R: [" in str(R)
    assert repr(R).startswith("Rot3(")


@variants
def test_group(Rot3):
    for a in samples(Rot3):
        assert a.compose(a.inverse()).equals(Rot3())
        assert a.inverse().compose(a).equals(Rot3())
        for b in samples(Rot3):
            assert a.between(b).equals(a.inverse().compose(b))
            assert a.compose(b).inverse().equals(b.inverse().compose(a.inverse()))
            assert (a * b).equals(a.compose(b))
            assert np.allclose((a * b).matrix(), a.matrix() @ b.matrix(), atol=eps)
            for c in samples(Rot3):
                assert a.compose(b).compose(c).equals(a.compose(b.compose(c)))


@variants
def test_conjugate(Rot3):
    bRb = Rot3.Rx(0.4)
    cRb = Rot3.Ypr(0.1, 0.2, 0.3)
    cRc = bRb.conjugate(cRb)
    assert cRc.equals(cRb.compose(bRb).compose(cRb.inverse()))
    # same rotation angle, axis seen from frame c
    assert np.allclose(Rot3.Logmap(cRc), cRb.rotate([0.4, 0, 0]))


@variants
def test_expmap_first_order(Rot3):
    w = np.array([1e-7, 2e-7, -1e-7])
    R = Rot3.Expmap(w)
    W = np.array([[0, -w[2], w[1]], [w[2], 0, -w[0]], [-w[1], w[0], 0]])
    assert np.linalg.norm(R.matrix() - (np.eye(3) + W)) < 1e-12
    assert np.linalg.norm(Rot3.Logmap(R) - w) < 1e-15


@variants
@pytest.mark.parametrize("angle", [0.0, 1e-9, 1e-4, 0.5, 2.0, 3.0, np.pi - 1e-6, np.pi - 1e-9])
def test_log_exp(Rot3, angle):
    w = angle * np.array([0.48, -0.6, 0.64])
    R = Rot3.Expmap(w)
    assert np.linalg.norm(Rot3.Logmap(R) - w) < eps
    assert Rot3.Expmap(Rot3.Logmap(R)).equals(R)
    assert Rot3.Rodrigues(w).equals(R)
    assert Rot3.Rodrigues(*w).equals(R)


@variants
def test_logmap_at_pi(Rot3):
    for axis in [[1, 0, 0], [0, 1, 0], [0, 0, 1], [0.48, -0.6, 0.64]]:
        R = Rot3.AxisAngle(axis, np.pi)
        w = Rot3.Logmap(R)
        assert abs(np.linalg.norm(w) - np.pi) < eps
        # the sign of the axis is arbitrary at pi
        assert abs(abs(w @ np.array(axis)) - np.pi) < 1e-8
        assert Rot3.Expmap(w).equals(R)


@variants
def test_expmap_derivative(Rot3):
    for w in [[0.0, 0.0, 0.0], [1e-5, -2e-5, 3e-5], [0.1, -0.2, 0.3], [1.0, 2.0, -0.5]]:
        w = np.array(w)
        R, H = Rot3.Expmap(w, H=True)
        assert R.equals(Rot3.Expmap(w))
        J = rotation_derivative(lambda d: Rot3.Expmap(w + d), 3)
        assert np.linalg.norm(J - H) < fd_tol
        assert np.allclose(Rot3.ExpmapDerivative(w), H)


@variants
def test_logmap_derivative(Rot3):
    for R in samples(Rot3) + [Rot3.AxisAngle([0.48, -0.6, 0.64], np.pi - 1e-3)]:
        w, H = Rot3.Logmap(R, H=True)
        J = numerical_derivative(lambda d: Rot3.Logmap(perturb(R, d)), np.zeros(3))
        assert np.linalg.norm(J - H) < 1e-6
        assert np.linalg.norm(H @ Rot3.ExpmapDerivative(w) - np.eye(3)) < eps


@variants
def test_compose_derivatives(Rot3):
    a = Rot3.Ypr(0.3, -0.2, 1.1)
    b = Rot3.AxisAngle([0.0, 0.6, 0.8], 2.5)
    result, H1, H2 = a.compose(b, H1=True, H2=True)
    assert result.equals(a.compose(b))
    J1 = rotation_derivative(lambda d: perturb(a, d).compose(b), 3)
    J2 = rotation_derivative(lambda d: a.compose(perturb(b, d)), 3)
    assert np.linalg.norm(J1 - H1) < fd_tol
    assert np.linalg.norm(J2 - H2) < fd_tol
    _, H1, H2 = a.compose(b, H1=True)
    assert H2 is None


@variants
def test_between_derivatives(Rot3):
    a = Rot3.Ypr(0.3, -0.2, 1.1)
    b = Rot3.AxisAngle([0.0, 0.6, 0.8], 2.5)
    result, H1, H2 = a.between(b, H1=True, H2=True)
    assert result.equals(a.inverse().compose(b))
    J1 = rotation_derivative(lambda d: perturb(a, d).between(b), 3)
    J2 = rotation_derivative(lambda d: a.between(perturb(b, d)), 3)
    assert np.linalg.norm(J1 - H1) < fd_tol
    assert np.linalg.norm(J2 - H2) < fd_tol


@variants
def test_inverse_derivative(Rot3):
    R = Rot3.Ypr(0.3, -0.2, 1.1)
    result, H = R.inverse(H=True)
    assert np.allclose(result.matrix(), R.matrix().T)
    J = rotation_derivative(lambda d: perturb(R, d).inverse(), 3)
    assert np.linalg.norm(J - H) < fd_tol


@variants
def test_rotate_derivatives(Rot3):
    R = Rot3.Ypr(0.3, -0.2, 1.1)
    p = np.array([1.0, -2.0, 0.5])
    q, H1, H2 = R.rotate(p, H1=True, H2=True)
    assert np.allclose(q, R.matrix() @ p)
    J1 = numerical_derivative(lambda d: perturb(R, d).rotate(p), np.zeros(3))
    J2 = numerical_derivative(lambda x: R.rotate(x), p)
    assert np.linalg.norm(J1 - H1) < fd_tol
    assert np.linalg.norm(J2 - H2) < fd_tol

    q, H1, H2 = R.unrotate(p, H1=True, H2=True)
    assert np.allclose(q, R.matrix().T @ p)
    assert np.allclose(R.rotate(q), p)
    J1 = numerical_derivative(lambda d: perturb(R, d).unrotate(p), np.zeros(3))
    J2 = numerical_derivative(lambda x: R.unrotate(x), p)
    assert np.linalg.norm(J1 - H1) < fd_tol
    assert np.linalg.norm(J2 - H2) < fd_tol


@variants
def test_rotate_unit3(Rot3):
    R = Rot3.Ypr(0.3, -0.2, 1.1)
    p = Unit3([0.2, -0.5, 0.8])
    q, H1, H2 = R.rotate(p, H1=True, H2=True)
    assert isinstance(q, Unit3)
    assert np.allclose(q.unit_vector(), R.rotate(p.unit_vector()))
    assert H1.shape == (2, 3)
    assert H2.shape == (2, 2)
    J1 = numerical_derivative(lambda d: q.local_coordinates(perturb(R, d).rotate(p)), np.zeros(3))
    J2 = numerical_derivative(lambda v: q.local_coordinates(R.rotate(p.retract(v))), np.zeros(2))
    assert np.linalg.norm(J1 - H1) < fd_tol
    assert np.linalg.norm(J2 - H2) < fd_tol

    q, H1, H2 = R.unrotate(p, H1=True, H2=True)
    assert R.rotate(q).equals(p)
    J1 = numerical_derivative(lambda d: q.local_coordinates(perturb(R, d).unrotate(p)), np.zeros(3))
    J2 = numerical_derivative(lambda v: q.local_coordinates(R.unrotate(p.retract(v))), np.zeros(2))
    assert np.linalg.norm(J1 - H1) < fd_tol
    assert np.linalg.norm(J2 - H2) < fd_tol


@variants
def test_retract_local(Rot3):
    R = Rot3.Ypr(0.3, -0.2, 1.1)
    for v in [[0.0, 0.0, 0.0], [1e-6, 0.0, -1e-6], [0.1, -0.2, 0.3], [0.5, 1.0, -0.7]]:
        v = np.array(v)
        S = R.retract(v)
        assert np.linalg.norm(R.local_coordinates(S) - v) < eps
    S = R.compose(Rot3.Expmap([0.3, -0.5, 0.4]))
    assert R.retract(R.local_coordinates(S)).equals(S)
    assert np.allclose(Rot3.local_at_origin(Rot3.retract_at_origin([0.1, 0.2, 0.3])), [0.1, 0.2, 0.3])


@variants
def test_retract_derivatives(Rot3):
    R = Rot3.Ypr(0.3, -0.2, 1.1)
    v = np.array([0.2, -0.4, 0.3])
    result, H1, H2 = R.retract(v, H1=True, H2=True)
    assert result.equals(R.retract(v))
    J1 = rotation_derivative(lambda d: perturb(R, d).retract(v), 3)
    J2 = rotation_derivative(lambda d: R.retract(v + d), 3)
    assert np.linalg.norm(J1 - H1) < fd_tol
    assert np.linalg.norm(J2 - H2) < fd_tol


@variants
def test_local_coordinates_derivatives(Rot3):
    R = Rot3.Ypr(0.3, -0.2, 1.1)
    S = R.compose(Rot3.Expmap([0.3, -0.5, 0.4]))
    v, H1, H2 = R.local_coordinates(S, H1=True, H2=True)
    assert np.allclose(v, R.local_coordinates(S))
    J1 = numerical_derivative(lambda d: perturb(R, d).local_coordinates(S), np.zeros(3))
    J2 = numerical_derivative(lambda d: R.local_coordinates(perturb(S, d)), np.zeros(3))
    assert np.linalg.norm(J1 - H1) < fd_tol
    assert np.linalg.norm(J2 - H2) < fd_tol


def test_default_chart():
    assert rot3_type("matrix").chart == "cayley"
    assert rot3_type("quaternion").chart == "expmap"
    Rot3 = rot3_type("matrix", "cayley")
    v = np.array([0.1, -0.2, 0.3])
    assert Rot3.retract_at_origin(v).equals(Rot3.CayleyRetract(v))
    assert not Rot3.retract_at_origin(v).equals(Rot3.Expmap(v), tol=1e-6)
    Rot3 = rot3_type("matrix", "expmap")
    assert Rot3.retract_at_origin(v).equals(Rot3.Expmap(v))


def test_cayley_chart():
    Rot3 = rot3_type("matrix", "expmap")
    R = Rot3.Ypr(0.3, -0.2, 1.1)
    for v in [[0.0, 0.0, 0.0], [0.1, -0.2, 0.3], [1.0, 2.0, -1.5]]:
        v = np.array(v)
        C = Rot3.CayleyRetract(v)
        assert np.linalg.norm(C.matrix().T @ C.matrix() - np.eye(3)) < eps
        assert np.linalg.norm(Rot3.CayleyLocal(C) - v) < eps
        assert np.linalg.norm(R.local_cayley(R.retract_cayley(v)) - v) < eps

    # agrees with the exponential map to second order
    v = np.array([1e-4, -2e-4, 3e-4])
    assert np.linalg.norm(Rot3.CayleyRetract(v).matrix() - Rot3.Expmap(v).matrix()) < 1e-10

    v = np.array([0.2, -0.4, 0.3])
    C, H = Rot3.CayleyRetract(v, H=True)
    J = rotation_derivative(lambda d: Rot3.CayleyRetract(v + d), 3)
    assert np.linalg.norm(J - H) < fd_tol

    w, H = Rot3.CayleyLocal(R, H=True)
    J = numerical_derivative(lambda d: Rot3.CayleyLocal(perturb(R, d)), np.zeros(3))
    assert np.linalg.norm(J - H) < fd_tol


def test_no_cayley_for_quaternions():
    Rot3 = rot3_type("quaternion")
    assert not hasattr(Rot3, "CayleyRetract")
    assert not hasattr(Rot3, "retract_cayley")


@variants
def test_expmap_logmap_members(Rot3):
    R = Rot3.Ypr(0.3, -0.2, 1.1)
    v = np.array([0.1, 0.2, -0.3])
    S = R.expmap(v)
    assert S.equals(R.compose(Rot3.Expmap(v)))
    assert np.allclose(R.logmap(S), v)


@variants
def test_slerp(Rot3):
    R = Rot3.Ypr(0.3, -0.2, 1.1)
    S = Rot3.AxisAngle([0.0, 0.6, 0.8], 1.5)
    assert R.slerp(0, S).equals(R)
    assert R.slerp(1, S).equals(S)
    assert Rot3().slerp(0.5, Rot3.Rz(1.0)).equals(Rot3.Rz(0.5))
    M = R.slerp(0.5, S)
    assert np.allclose(R.logmap(M), M.logmap(S))


@variants
def test_align_pair(Rot3):
    a = Unit3([1, 0.2, -0.3])
    b = Unit3(Rot3.Rz(0.7).rotate(a.unit_vector()))
    R = Rot3.AlignPair(Unit3([0, 0, 1]), a, b)
    assert R.equals(Rot3.Rz(0.7))
    assert R.rotate(a).equals(b)

    # aligned targets need no rotation
    assert Rot3.AlignPair(Unit3([0, 0, 1]), a, a).equals(Rot3())

    # b is not reachable, the projections on the plane orthogonal to the axis align
    b = Unit3([-0.3, 1, 0.9])
    R = Rot3.AlignPair([0, 0, 1], a, b)
    Ra = R.rotate(a.unit_vector())
    assert abs(Ra[2] - a.unit_vector()[2]) < eps
    bu = b.unit_vector()
    assert abs(Ra[0] * bu[1] - Ra[1] * bu[0]) < eps
    assert Ra[:2] @ bu[:2] > 0

    with pytest.raises(ValueError):
        Rot3.AlignPair([0, 0, 0], a, b)
    with pytest.raises(ValueError):
        Rot3.AlignPair([0, 0, 1], Unit3([0, 0, 1]), b)


@variants
def test_align_two_pairs(Rot3):
    rng = np.random.default_rng(7)
    for _ in range(5):
        bRa = Rot3.Random(rng)
        a_p = Unit3.Random(rng)
        a_q = Unit3.Random(rng)
        b_p = bRa.rotate(a_p)
        b_q = bRa.rotate(a_q)
        assert Rot3.AlignTwoPairs(a_p, b_p, a_q, b_q).equals(bRa, tol=1e-8)


@variants
def test_align_two_pairs_reversed(Rot3):
    # p points the opposite way in b, the cross product gives no axis
    a_q = Unit3([0.3, 0.4, 0.8])
    a_p = Unit3([1, 0, 0])
    bRa = Rot3.AxisAngle([0, 0, 1], np.pi)
    b_p = bRa.rotate(a_p)
    b_q = bRa.rotate(a_q)
    assert np.allclose(b_p.unit_vector(), [-1, 0, 0])
    assert Rot3.AlignTwoPairs(a_p, b_p, a_q, b_q).equals(bRa, tol=1e-8)

    # half turn about an axis other than the one picked for the first step
    a_p = Unit3([0.2, -0.5, 0.8])
    axis = np.cross(a_p.unit_vector(), [1, 0, 0])
    axis = axis / np.linalg.norm(axis)
    for angle in [np.pi, np.pi - 1e-10]:
        bRa = Rot3.AxisAngle(axis, angle)
        b_p = bRa.rotate(a_p)
        b_q = bRa.rotate(a_q)
        assert Rot3.AlignTwoPairs(a_p, b_p, a_q, b_q).equals(bRa, tol=1e-8)


@variants
def test_random(Rot3):
    rng = np.random.default_rng(42)
    R = Rot3.Random(rng)
    assert np.linalg.norm(R.matrix().T @ R.matrix() - np.eye(3)) < eps
    assert abs(np.linalg.det(R.matrix()) - 1) < eps
    # same seed, same rotation
    assert Rot3.Random(np.random.default_rng(42)).equals(R)


@variants
def test_equals(Rot3):
    R = Rot3.Rx(0.1)
    assert R.equals(Rot3.Rx(0.1 + 1e-12))
    assert not R.equals(Rot3.Rx(0.2))
    assert R.equals(Rot3.Rx(0.1 + 1e-6), tol=1e-5)
    assert not R.equals(np.eye(3))
    # q and -q are the same rotation
    q = R.quaternion()
    assert Rot3(-q).equals(R)


def test_mixed_types():
    M = rot3_type("matrix", "cayley")
    Q = rot3_type("quaternion")
    a = M.Ypr(0.3, -0.2, 1.1)
    b = Q.Ypr(-0.1, 0.5, 0.2)
    assert type(a.compose(b)) is M
    assert a.compose(b).equals(a.compose(M(b.matrix())))
    assert np.allclose(Q.Logmap(a), M.Logmap(a))
