"""
Builtin runners own a memory segment and the rules constraining its cells.

Deductions are memoized per address: a builtin computes an output cell at most
once, later calls hit the cache.
"""

import logging
from abc import ABC
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from cairo_vm.vm.errors import (
    InsufficientAllocatedCellsError,
    InvalidStopPointerError,
    MissingMemoryCellsError,
    RunnerNotInitializedError,
)
from cairo_vm.vm.felt import Felt
from cairo_vm.vm.memory import Memory
from cairo_vm.vm.relocatable import MaybeRelocatable, Relocatable

if TYPE_CHECKING:
    from cairo_vm.vm.memory_segments import MemorySegmentManager
    from cairo_vm.vm.vm_core import VirtualMachine

logger = logging.getLogger(__name__)


class BuiltinRunner(ABC):
    name: str = ""
    cells_per_instance: int = 1
    n_input_cells: int = 1

    def __init__(self, ratio: Optional[int], included: bool = True):
        self.ratio = ratio
        self.included = included
        self._base: Optional[int] = None
        self.stop_ptr: Optional[int] = None
        self.deduction_cache: Dict[Relocatable, Felt] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(ratio={self.ratio}, included={self.included})"

    @property
    def base(self) -> int:
        if self._base is None:
            raise RunnerNotInitializedError(f"{self.name} builtin segment")
        return self._base

    @property
    def base_address(self) -> Relocatable:
        return Relocatable(self.base, 0)

    def initialize_segments(self, segments: "MemorySegmentManager") -> None:
        self._base = segments.add().segment_index

    def initial_stack(self) -> List[MaybeRelocatable]:
        return [self.base_address] if self.included else []

    def add_validation_rule(self, memory: Memory) -> None:
        pass

    def deduce_memory_cell(
        self, address: Relocatable, memory: Memory
    ) -> Optional[Felt]:
        """
        Computes the value of an output cell from the instance's inputs.

        Returns None when the cell is an input or when inputs are missing.
        """
        cached = self.deduction_cache.get(address)
        if cached is not None:
            return cached
        value = self._deduce(address, memory)
        if value is not None:
            self.deduction_cache[address] = value
        return value

    def _deduce(self, address: Relocatable, memory: Memory) -> Optional[Felt]:
        return None

    def _instance_inputs(
        self, address: Relocatable, memory: Memory
    ) -> Tuple[Relocatable, Optional[List[MaybeRelocatable]]]:
        index = address.offset % self.cells_per_instance
        instance = Relocatable(address.segment_index, address.offset - index)
        inputs = memory.get_range(instance, self.n_input_cells)
        if any(value is None for value in inputs):
            return instance, None
        return instance, inputs

    # Resources

    def get_used_cells(self, segments: "MemorySegmentManager") -> int:
        return segments.get_segment_used_size(self.base)

    def get_used_instances(self, segments: "MemorySegmentManager") -> int:
        used_cells = self.get_used_cells(segments)
        return -(-used_cells // self.cells_per_instance)

    def get_allocated_memory_units(self, vm: "VirtualMachine") -> int:
        if self.ratio is None:
            return 0
        if vm.current_step < self.ratio:
            raise InsufficientAllocatedCellsError(self.name, 0, None)
        return self.cells_per_instance * (vm.current_step // self.ratio)

    def get_used_cells_and_allocated_size(
        self, vm: "VirtualMachine"
    ) -> Tuple[int, int]:
        used = self.get_used_cells(vm.segments)
        size = self.get_allocated_memory_units(vm)
        if used > size:
            raise InsufficientAllocatedCellsError(self.name, used, size)
        return used, size

    def get_memory_accesses(self, vm: "VirtualMachine") -> List[Relocatable]:
        segment_size = vm.segments.get_segment_size(self.base)
        return [Relocatable(self.base, offset) for offset in range(segment_size)]

    def get_memory_segment_addresses(self) -> Tuple[int, Optional[int]]:
        return self.base, self.stop_ptr

    def final_stack(
        self, segments: "MemorySegmentManager", pointer: Relocatable
    ) -> Relocatable:
        """
        Reads the builtin's stop pointer just below `pointer`, checks it and returns
        the address of the previous builtin's stop pointer.
        """
        if not self.included:
            self.stop_ptr = 0
            return pointer

        stop_pointer_addr = pointer - 1
        stop_pointer = segments.memory.get_relocatable(stop_pointer_addr)
        used = self.get_used_instances(segments) * self.cells_per_instance
        expected = Relocatable(self.base, used)
        if stop_pointer != expected:
            raise InvalidStopPointerError(self.name, stop_pointer, expected)
        self.stop_ptr = stop_pointer.offset
        return stop_pointer_addr

    def run_security_checks(self, vm: "VirtualMachine") -> None:
        """Every instance with a written cell must have all of its inputs written."""
        if self.cells_per_instance == self.n_input_cells:
            return
        memory = vm.segments.memory
        segment = memory.get_segment(self.base)
        instances = {
            offset // self.cells_per_instance
            for offset, value in enumerate(segment)
            if value is not None
        }
        missing = [
            Relocatable(self.base, instance * self.cells_per_instance + i)
            for instance in sorted(instances)
            for i in range(self.n_input_cells)
            if memory.get(
                Relocatable(self.base, instance * self.cells_per_instance + i)
            )
            is None
        ]
        if missing:
            raise MissingMemoryCellsError(self.name, missing)
