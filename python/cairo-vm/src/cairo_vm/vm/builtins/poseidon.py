from typing import Optional

from starkware.cairo.common.poseidon_hash import poseidon_perm

from cairo_vm.vm.builtins.base import BuiltinRunner
from cairo_vm.vm.errors import FoundNonIntError
from cairo_vm.vm.felt import Felt
from cairo_vm.vm.memory import Memory
from cairo_vm.vm.relocatable import Relocatable


class PoseidonBuiltinRunner(BuiltinRunner):
    """Instances are three inputs followed by their Hades permutation."""

    name = "poseidon"
    cells_per_instance = 6
    n_input_cells = 3

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

        outputs = poseidon_perm(*(int(value) for value in inputs))
        # One permutation yields the three outputs of the instance.
        for i, output in enumerate(outputs):
            self.deduction_cache[instance + self.n_input_cells + i] = Felt(output)
        return Felt(outputs[index - self.n_input_cells])
