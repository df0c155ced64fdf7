from typing import Optional, Tuple

from starkware.python.math_utils import ec_add, ec_double

from cairo_vm.vm.builtins.base import BuiltinRunner
from cairo_vm.vm.errors import (
    EcOpSameXCoordinateError,
    FoundNonIntError,
    PointNotOnCurveError,
)
from cairo_vm.vm.felt import PRIME, Felt
from cairo_vm.vm.memory import Memory
from cairo_vm.vm.relocatable import Relocatable

# STARK curve: y^2 = x^3 + ALPHA * x + BETA.
ALPHA = 1
BETA = 0x6F21413EFBE40DE150E596D72F7A8C5609AD26C15C915C1F4CDFCB99CEE9E89

Point = Tuple[int, int]


def point_on_curve(point: Point, alpha: int, beta: int, prime: int) -> bool:
    x, y = point
    return (y * y - (x * x * x + alpha * x + beta)) % prime == 0


def ec_op_impl(
    partial_sum: Point, doubled_point: Point, m: int, alpha: int, prime: int, height: int
) -> Point:
    """
    Returns partial_sum + m * doubled_point with a double-and-add loop over
    `height` bits of m.

    Raises EcOpSameXCoordinateError if the loop ever adds two points sharing an
    x coordinate, a case the AIR cannot prove.
    """
    for _ in range(height):
        if (doubled_point[0] - partial_sum[0]) % prime == 0:
            raise EcOpSameXCoordinateError(partial_sum, doubled_point, m)
        if m & 1:
            partial_sum = ec_add(partial_sum, doubled_point, prime)
        doubled_point = ec_double(doubled_point, alpha, prime)
        m >>= 1
    return partial_sum


class EcOpBuiltinRunner(BuiltinRunner):
    """Instances are (P.x, P.y, Q.x, Q.y, m, R.x, R.y) with R = P + m * Q."""

    name = "ec_op"
    cells_per_instance = 7
    n_input_cells = 5
    scalar_height = 256

    def __init__(self, ratio: Optional[int] = 256, included: bool = True):
        super().__init__(ratio=ratio, included=included)

    def _deduce(self, address: Relocatable, memory: Memory) -> Optional[Felt]:
        index = address.offset % self.cells_per_instance
        if index < self.n_input_cells:
            return None
        instance, inputs = self._instance_inputs(address, memory)
        if inputs is None:
            return None
        for i, value in enumerate(inputs):
            if not isinstance(value, Felt):
                raise FoundNonIntError(self.name, instance + i)

        p_x, p_y, q_x, q_y, m = (int(value) for value in inputs)
        for point in ((p_x, p_y), (q_x, q_y)):
            if not point_on_curve(point, ALPHA, BETA, PRIME):
                raise PointNotOnCurveError(point)

        result = ec_op_impl(
            partial_sum=(p_x, p_y),
            doubled_point=(q_x, q_y),
            m=m,
            alpha=ALPHA,
            prime=PRIME,
            height=self.scalar_height,
        )
        return Felt(result[index - self.n_input_cells])
