from typing import Optional, Tuple

from cairo_vm.vm.builtins.base import BuiltinRunner
from cairo_vm.vm.errors import FoundNonIntError, NumOutOfBoundsError
from cairo_vm.vm.felt import Felt
from cairo_vm.vm.memory import Memory
from cairo_vm.vm.relocatable import Relocatable

INNER_RC_BOUND_SHIFT = 16
INNER_RC_BOUND = 2**INNER_RC_BOUND_SHIFT
INNER_RC_BOUND_MASK = INNER_RC_BOUND - 1


class RangeCheckBuiltinRunner(BuiltinRunner):
    """
    Validation-only builtin: every cell must be an integer in [0, bound) with
    bound = 2**(16 * n_parts).
    """

    name = "range_check"
    cells_per_instance = 1
    n_input_cells = 1

    def __init__(self, ratio: Optional[int] = 8, n_parts: int = 8, included: bool = True):
        super().__init__(ratio=ratio, included=included)
        self.n_parts = n_parts
        self.bound = INNER_RC_BOUND**n_parts

    def add_validation_rule(self, memory: Memory) -> None:
        memory.add_validation_rule(self.base, self.validate)

    def validate(self, memory: Memory, address: Relocatable) -> None:
        value = memory[address]
        if not isinstance(value, Felt):
            raise FoundNonIntError(self.name, address)
        if value >= self.bound:
            raise NumOutOfBoundsError(address, value, self.bound)

    def get_range_check_usage(self, memory: Memory) -> Optional[Tuple[int, int]]:
        """Smallest and largest 16-bit part over all the checked values."""
        parts = [
            (int(value) >> (INNER_RC_BOUND_SHIFT * i)) & INNER_RC_BOUND_MASK
            for value in memory.get_segment(self.base)
            if isinstance(value, Felt)
            for i in range(self.n_parts)
        ]
        if not parts:
            return None
        return min(parts), max(parts)
