import casadi as ca
import abc
from typing import Tuple


class LieGroup(abc.ABC):
    """
    A rotation group written as casadi expressions, independent of how the
    element is stored. A rotation matrix uses 9 parameters, a quaternion 4,
    and both share the 3 parameter Lie algebra, so products, exp and log are
    implemented directly on the stored parameters rather than through a
    matrix Lie group.

    Every method builds an SX expression; pyrot3.rot3 compiles them once
    into casadi functions and evaluates those on numbers.
    """

    def __init__(self, group_params: int, algebra_params: int, group_shape: Tuple[int, int]):
        """
        @param group_params: number of stored parameters (9 for a matrix, 4 for a quaternion)
        @param algebra_params: number of Lie algebra parameters, 3 for SO3
        @param group_shape: shape of a stored element
        """
        self.group_params = group_params
        self.algebra_params = algebra_params
        self.group_shape = group_shape

    def check_group_shape(self, a):
        # a flat vector is only accepted for column shaped elements
        assert a.shape == self.group_shape or (
            self.group_shape[1] == 1 and a.shape == (self.group_params,)
        )

    def check_algebra_shape(self, v):
        assert v.shape == (self.algebra_params, 1) or v.shape == (self.algebra_params,)

    @abc.abstractmethod
    def identity(self) -> ca.SX:
        ...

    @abc.abstractmethod
    def product(self, a, b) -> ca.SX:
        ...

    @abc.abstractmethod
    def inv(self, a) -> ca.SX:
        ...

    @abc.abstractmethod
    def exp(self, v) -> ca.SX:
        ...

    @abc.abstractmethod
    def log(self, a) -> ca.SX:
        ...

    @abc.abstractmethod
    def vee(self, X) -> ca.SX:
        ...

    @abc.abstractmethod
    def wedge(self, v) -> ca.SX:
        ...

    @abc.abstractmethod
    def right_jacobian(self, v) -> ca.SX:
        """
        exp(v + d) ~ exp(v) exp(J d)
        """

    @abc.abstractmethod
    def right_jacobian_inv(self, v) -> ca.SX:
        ...

    # conversions between the stored forms, used to move values between
    # differently configured groups

    @abc.abstractmethod
    def to_dcm(self, a) -> ca.SX:
        ...

    @abc.abstractmethod
    def from_dcm(self, R) -> ca.SX:
        ...

    @abc.abstractmethod
    def to_quat(self, a) -> ca.SX:
        ...

    @abc.abstractmethod
    def from_quat(self, q) -> ca.SX:
        ...
