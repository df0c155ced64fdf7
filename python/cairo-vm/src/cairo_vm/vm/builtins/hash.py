from typing import Optional

from starkware.crypto.signature.fast_pedersen_hash import pedersen_hash

from cairo_vm.vm.builtins.base import BuiltinRunner
from cairo_vm.vm.errors import FoundNonIntError
from cairo_vm.vm.felt import Felt
from cairo_vm.vm.memory import Memory
from cairo_vm.vm.relocatable import Relocatable


class HashBuiltinRunner(BuiltinRunner):
    """Pedersen hash: instances are (x, y, pedersen_hash(x, y))."""

    name = "pedersen"
    cells_per_instance = 3
    n_input_cells = 2

    def __init__(self, ratio: Optional[int] = 8, included: bool = True):
        super().__init__(ratio=ratio, included=included)

    def _deduce(self, address: Relocatable, memory: Memory) -> Optional[Felt]:
        if address.offset % self.cells_per_instance != 2:
            return None
        instance, inputs = self._instance_inputs(address, memory)
        if inputs is None:
            return None
        x, y = inputs
        for i, value in enumerate(inputs):
            if not isinstance(value, Felt):
                raise FoundNonIntError(self.name, instance + i)
        return Felt(pedersen_hash(int(x), int(y)))
