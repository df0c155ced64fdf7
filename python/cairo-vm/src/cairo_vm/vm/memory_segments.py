import logging
from typing import Dict, Iterable, List, Optional, Sequence

from cairo_vm.vm.errors import MissingSegmentUsedSizesError
from cairo_vm.vm.felt import Felt
from cairo_vm.vm.memory import Memory
from cairo_vm.vm.relocatable import MaybeRelocatable, Relocatable

logger = logging.getLogger(__name__)


class MemorySegmentManager:
    """
    Allocates memory segments and computes the final, linear memory layout.

    Sizes are only known once the run is over: `compute_effective_sizes` must be
    called before `relocate_segments`.
    """

    def __init__(self, memory: Optional[Memory] = None):
        self.memory = memory if memory is not None else Memory()
        self.segment_used_sizes: Optional[List[int]] = None
        self.segment_sizes: Dict[int, int] = {}
        self.public_memory_offsets: Dict[int, List[int]] = {}

    @property
    def num_segments(self) -> int:
        return self.memory.num_segments

    @property
    def num_temp_segments(self) -> int:
        return self.memory.num_temp_segments

    def add(self, size: Optional[int] = None) -> Relocatable:
        segment_index = self.memory.add_segment()
        if size is not None:
            self.finalize(segment_index, size=size)
        return Relocatable(segment_index, 0)

    def add_temporary_segment(self) -> Relocatable:
        return Relocatable(self.memory.add_temporary_segment(), 0)

    def load_data(self, ptr: Relocatable, data: Iterable) -> Relocatable:
        """Writes `data` from `ptr` on and returns the address after the last cell."""
        data = list(data)
        for i, value in enumerate(data):
            self.memory.insert(ptr + i, value)
        return ptr + len(data)

    def compute_effective_sizes(self) -> List[int]:
        """Size of each segment: one past its highest written offset."""
        if self.segment_used_sizes is not None:
            return self.segment_used_sizes
        self.segment_used_sizes = [len(segment) for segment in self.memory.data]
        return self.segment_used_sizes

    def get_segment_used_size(self, segment_index: int) -> Optional[int]:
        if self.segment_used_sizes is None:
            raise MissingSegmentUsedSizesError()
        if not 0 <= segment_index < len(self.segment_used_sizes):
            return None
        return self.segment_used_sizes[segment_index]

    def get_segment_size(self, segment_index: int) -> Optional[int]:
        if segment_index in self.segment_sizes:
            return self.segment_sizes[segment_index]
        return self.get_segment_used_size(segment_index)

    def finalize(
        self,
        segment_index: int,
        size: Optional[int] = None,
        public_memory: Optional[Sequence[int]] = None,
    ) -> None:
        if size is not None:
            self.segment_sizes[segment_index] = size
        self.public_memory_offsets[segment_index] = list(public_memory or [])

    def relocate_segments(self) -> List[int]:
        """
        Returns the relocation table: the linear address of each segment base.

        Address 0 is never used, so the first segment starts at 1.
        """
        if self.segment_used_sizes is None:
            raise MissingSegmentUsedSizesError()
        relocation_table = [1]
        for segment_index in range(self.num_segments):
            size = self.get_segment_size(segment_index)
            relocation_table.append(relocation_table[-1] + size)
        # The last entry is the end of memory, not a segment base.
        return relocation_table[:-1]

    def get_memory_holes(self, builtin_segment_indexes: Sequence[int] = ()) -> int:
        """
        Counts the cells of each segment that were never accessed.

        Builtin segments are skipped; their holes are accounted by the builtins.
        """
        if self.segment_used_sizes is None:
            raise MissingSegmentUsedSizesError()
        holes = 0
        for segment_index in range(self.num_segments):
            if segment_index in builtin_segment_indexes:
                continue
            accessed = self.memory.get_amount_of_accessed_addresses_for_segment(
                segment_index
            )
            if not accessed:
                continue
            segment_size = self.get_segment_size(segment_index)
            holes += segment_size - accessed
        return holes

    def is_valid_memory_value(self, value: MaybeRelocatable) -> bool:
        if isinstance(value, Felt):
            return True
        if isinstance(value, Relocatable):
            return value.segment_index < self.num_segments
        return False

    def gen_arg(self, arg) -> MaybeRelocatable:
        """
        Converts a Python argument to a memory value.

        Sequences are written to a new segment and replaced by its base.
        """
        if isinstance(arg, (Felt, Relocatable)):
            return arg
        if isinstance(arg, (list, tuple)):
            base = self.add()
            self.write_arg(base, arg)
            return base
        if isinstance(arg, int):
            return Felt(arg)
        raise TypeError(f"Unsupported argument type: {type(arg).__name__}")

    def write_arg(self, ptr: Relocatable, arg: Sequence) -> Relocatable:
        data = [self.gen_arg(x) for x in arg]
        return self.load_data(ptr, data)

    def __repr__(self) -> str:
        return (
            f"MemorySegmentManager(num_segments={self.num_segments}, "
            f"num_temp_segments={self.num_temp_segments})"
        )
