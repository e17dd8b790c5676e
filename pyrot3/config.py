"""
Configuration of the Rot3 type.

Two orthogonal choices are made once, when a Rot3 type is built, never per
call: the internal representation (rotation matrix or unit quaternion) and
the default chart used by retract / local_coordinates (exponential map or
Cayley transform). The Cayley chart only exists for the matrix
representation.

The package level Rot3 is built from the environment at import:

PYROT3_USE_QUATERNIONS: truthy selects the quaternion representation
PYROT3_ROT3_EXPMAP: truthy selects the exponential map chart for matrices
PYROT3_RENORMALIZE_EVERY: composition chain length that triggers renormalization
"""
import logging
import os

logger = logging.getLogger(__name__)

REPRESENTATIONS = ("matrix", "quaternion")
CHARTS = ("expmap", "cayley")

default_params = {
    "representation": "matrix",
    # None picks the cheapest chart: cayley for matrices, expmap for quaternions
    "chart": None,
    # 0 disables renormalization after composition
    "renormalize_every": 64,
}


def init_params(params):
    """
    Merge params into the defaults and resolve them.

    :param params: dict with a subset of the keys of default_params
    :return: a complete, validated parameter dict
    """
    p = dict(default_params)
    for k, v in params.items():
        if k not in p.keys():
            raise KeyError(k)
        p[k] = v

    if p["representation"] not in REPRESENTATIONS:
        raise ValueError("unknown representation: {}".format(p["representation"]))
    if p["chart"] is None:
        p["chart"] = "cayley" if p["representation"] == "matrix" else "expmap"
    if p["chart"] not in CHARTS:
        raise ValueError("unknown chart: {}".format(p["chart"]))
    if p["chart"] == "cayley" and p["representation"] != "matrix":
        raise ValueError("the cayley chart requires the matrix representation")
    p["renormalize_every"] = int(p["renormalize_every"])
    if p["renormalize_every"] < 0:
        raise ValueError("renormalize_every must be >= 0")
    return p


def _truthy(value):
    return value is not None and value.strip().lower() in ("1", "true", "yes", "on")


def params_from_env(environ=None):
    """
    Build the parameters from the PYROT3_* environment variables.
    """
    environ = os.environ if environ is None else environ
    params = {}
    if _truthy(environ.get("PYROT3_USE_QUATERNIONS")):
        params["representation"] = "quaternion"
    if _truthy(environ.get("PYROT3_ROT3_EXPMAP")):
        params["chart"] = "expmap"
    if environ.get("PYROT3_RENORMALIZE_EVERY"):
        params["renormalize_every"] = environ["PYROT3_RENORMALIZE_EVERY"]
    p = init_params(params)
    logger.debug("rot3 configuration from environment: %s", p)
    return p
