from typing import Optional

from cairo_vm.vm.builtins.base import BuiltinRunner
from cairo_vm.vm.errors import BitwiseInputOutOfRangeError, FoundNonIntError
from cairo_vm.vm.felt import Felt
from cairo_vm.vm.memory import Memory
from cairo_vm.vm.relocatable import Relocatable


class BitwiseBuiltinRunner(BuiltinRunner):
    """Instances are (x, y, x & y, x ^ y, x | y) with x, y < 2**total_n_bits."""

    name = "bitwise"
    cells_per_instance = 5
    n_input_cells = 2

    def __init__(
        self, ratio: Optional[int] = 256, total_n_bits: int = 251, included: bool = True
    ):
        super().__init__(ratio=ratio, included=included)
        self.total_n_bits = total_n_bits

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
            if value.bits() > self.total_n_bits:
                raise BitwiseInputOutOfRangeError(instance + i, value, self.total_n_bits)

        x, y = (int(value) for value in inputs)
        if index == 2:
            return Felt(x & y)
        if index == 3:
            return Felt(x ^ y)
        return Felt(x | y)
