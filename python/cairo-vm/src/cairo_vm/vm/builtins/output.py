from typing import TYPE_CHECKING, Tuple

from cairo_vm.vm.builtins.base import BuiltinRunner

if TYPE_CHECKING:
    from cairo_vm.vm.vm_core import VirtualMachine


class OutputBuiltinRunner(BuiltinRunner):
    """Write-through segment holding the program's public output."""

    name = "output"
    cells_per_instance = 1
    n_input_cells = 1

    def __init__(self, included: bool = True):
        super().__init__(ratio=None, included=included)

    def get_allocated_memory_units(self, vm: "VirtualMachine") -> int:
        return 0

    def get_used_cells_and_allocated_size(
        self, vm: "VirtualMachine"
    ) -> Tuple[int, int]:
        used = self.get_used_cells(vm.segments)
        return used, used
