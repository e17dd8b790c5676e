"""
SO(3) rotations for nonlinear least-squares optimization.

Rot3 is built once from the environment, see pyrot3.config, use rot3_type()
for an explicit configuration. The builders are also available as plain
functions returning the package level Rot3.
"""
from .config import init_params, params_from_env
from .euler import RQ
from .rot3 import rot3_type
from .unit3 import Unit3

params = params_from_env()
Rot3 = rot3_type(**params)

# builders of the configured Rot3
identity = Rot3.identity
Rx = Rot3.Rx
Ry = Rot3.Ry
Rz = Rot3.Rz
RzRyRx = Rot3.RzRyRx
Ypr = Rot3.Ypr
Yaw = Rot3.Yaw
Pitch = Rot3.Pitch
Roll = Rot3.Roll
AxisAngle = Rot3.AxisAngle
Rodrigues = Rot3.Rodrigues
Quaternion = Rot3.Quaternion
AlignPair = Rot3.AlignPair
AlignTwoPairs = Rot3.AlignTwoPairs
Expmap = Rot3.Expmap
Logmap = Rot3.Logmap

__all__ = [
    "AlignPair",
    "AlignTwoPairs",
    "AxisAngle",
    "Expmap",
    "Logmap",
    "Pitch",
    "Quaternion",
    "RQ",
    "Rodrigues",
    "Roll",
    "Rot3",
    "Rx",
    "Ry",
    "Rz",
    "RzRyRx",
    "Unit3",
    "Yaw",
    "Ypr",
    "identity",
    "init_params",
    "params",
    "params_from_env",
    "rot3_type",
]
