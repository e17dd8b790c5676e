"""
Scalar coefficient functions of the SO(3) closed forms.

Each coefficient has a removable singularity at x = 0 (or loses precision to
cancellation near it), so below a threshold it switches to its Taylor series.
The thresholds are chosen per function so that the truncation error of the
series and the cancellation error of the closed form stay near 1e-15 once the
coefficient is multiplied by the power of the angle it carries in the closed
forms, e.g. C W^2 of order C x^2. The coefficient alone can be off by about
1e-12 just above the 1e-2 thresholds.
"""
import casadi as ca

x = ca.SX.sym("x")


def _series(name, eps, series, closed_form):
    return ca.Function(name, [x], [ca.if_else(ca.fabs(x) < eps, series, closed_form)])


series_dict = {
    "sin(x)/x": _series(
        "a", 1e-3, 1 - x**2 / 6 + x**4 / 120, ca.sin(x) / x
    ),
    "(1 - cos(x))/x^2": _series(
        "b", 1e-3, 0.5 - x**2 / 24 + x**4 / 720, (1 - ca.cos(x)) / x**2
    ),
    "x/(2 sin(x))": _series(
        "d", 1e-3, 0.5 + x**2 / 12 + 7 * x**4 / 720, x / (2 * ca.sin(x))
    ),
    # (x - sin(x))/x^3, written as (1 - sin(x)/x)/x^2
    "(1 - sin(x)/x)/x^2": _series(
        "f",
        1e-2,
        1 / 6 - x**2 / 120 + x**4 / 5040,
        (1 - ca.sin(x) / x) / x**2,
    ),
    # 1/x^2 - (1 + cos(x))/(2 x sin(x)), the cot form stays finite at x = pi
    "1/x^2 - cot(x/2)/(2 x)": _series(
        "g",
        1e-2,
        1 / 12 + x**2 / 720 + x**4 / 30240,
        1 / x**2 - 1 / (2 * x * ca.tan(x / 2)),
    ),
}

# delete temp variable used to create functions
del x
