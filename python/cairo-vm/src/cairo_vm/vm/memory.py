"""
Segmented, write-once VM memory.

Each segment is a growable list of optional cells; `None` marks a hole.
Segments with a negative index are temporary: they live in `temp_data` and
are moved into real segments by `relocate_memory` through relocation rules.
"""

import logging
from typing import (
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Set,
    Tuple,
)

from cairo_vm.vm.errors import (
    AddressNotInTemporarySegmentError,
    AddressNotRelocatableError,
    DuplicatedRelocationError,
    ExpectedIntegerError,
    InconsistentMemoryError,
    UnallocatedSegmentError,
    UnknownMemoryError,
)
from cairo_vm.vm.felt import Felt
from cairo_vm.vm.relocatable import (
    MaybeRelocatable,
    Relocatable,
    relocate_with_rules,
    to_maybe_relocatable,
)

logger = logging.getLogger(__name__)

Segment = List[Optional[MaybeRelocatable]]
ValidationRule = Callable[["Memory", Relocatable], None]


class Memory:
    def __init__(self):
        self.data: List[Segment] = []
        self.temp_data: List[Segment] = []
        self.validation_rules: Dict[int, List[ValidationRule]] = {}
        self.validated_addresses: Set[Relocatable] = set()
        self.relocation_rules: Dict[int, Relocatable] = {}
        self.accessed_offsets: Dict[int, Set[int]] = {}

    @property
    def num_segments(self) -> int:
        return len(self.data)

    @property
    def num_temp_segments(self) -> int:
        return len(self.temp_data)

    def add_segment(self) -> int:
        self.data.append([])
        return len(self.data) - 1

    def add_temporary_segment(self) -> int:
        self.temp_data.append([])
        return -len(self.temp_data)

    def _segment(self, segment_index: int) -> Optional[Segment]:
        if segment_index >= 0:
            if segment_index < len(self.data):
                return self.data[segment_index]
            return None
        temp_index = -segment_index - 1
        if temp_index < len(self.temp_data):
            return self.temp_data[temp_index]
        return None

    def get_segment(self, segment_index: int) -> Segment:
        segment = self._segment(segment_index)
        if segment is None:
            raise UnallocatedSegmentError(
                Relocatable(segment_index, 0), len(self.data)
            )
        return segment

    # Reads

    def get(
        self, address: Relocatable, default: Optional[MaybeRelocatable] = None
    ) -> Optional[MaybeRelocatable]:
        if not isinstance(address, Relocatable):
            raise AddressNotRelocatableError(address)
        segment = self._segment(address.segment_index)
        if segment is None or address.offset >= len(segment):
            return default
        value = segment[address.offset]
        return default if value is None else value

    def __getitem__(self, address: Relocatable) -> MaybeRelocatable:
        value = self.get(address)
        if value is None:
            raise UnknownMemoryError(address)
        return value

    def __contains__(self, address: Relocatable) -> bool:
        return self.get(address) is not None

    def get_integer(self, address: Relocatable) -> Felt:
        value = self[address]
        if not isinstance(value, Felt):
            raise ExpectedIntegerError(address)
        return value

    def get_relocatable(self, address: Relocatable) -> Relocatable:
        value = self[address]
        if not isinstance(value, Relocatable):
            raise AddressNotRelocatableError(address)
        return value

    def get_range(
        self, address: Relocatable, size: int
    ) -> List[Optional[MaybeRelocatable]]:
        return [self.get(address + i) for i in range(size)]

    def get_continuous_range(
        self, address: Relocatable, size: int
    ) -> List[MaybeRelocatable]:
        """Returns `size` consecutive cells, failing on the first hole."""
        return [self[address + i] for i in range(size)]

    def get_integer_range(self, address: Relocatable, size: int) -> List[Felt]:
        return [self.get_integer(address + i) for i in range(size)]

    def items(self) -> Iterator[Tuple[Relocatable, MaybeRelocatable]]:
        for segment_index, segment in enumerate(self.data):
            for offset, value in enumerate(segment):
                if value is not None:
                    yield Relocatable(segment_index, offset), value
        for temp_index, segment in enumerate(self.temp_data):
            for offset, value in enumerate(segment):
                if value is not None:
                    yield Relocatable(-temp_index - 1, offset), value

    # Writes

    def insert(self, address: Relocatable, value) -> None:
        if not isinstance(address, Relocatable):
            raise AddressNotRelocatableError(address)
        value = to_maybe_relocatable(value)
        segment = self._segment(address.segment_index)
        if segment is None:
            raise UnallocatedSegmentError(address, len(self.data))

        if address.offset >= len(segment):
            segment.extend([None] * (address.offset + 1 - len(segment)))
        current = segment[address.offset]
        if current is None:
            segment[address.offset] = value
        elif current != value:
            raise InconsistentMemoryError(address, current, value)

        self.validate_memory_cell(address)

    __setitem__ = insert

    # Validation

    def add_validation_rule(self, segment_index: int, rule: ValidationRule) -> None:
        self.validation_rules.setdefault(segment_index, []).append(rule)

    def validate_memory_cell(self, address: Relocatable) -> None:
        rules = self.validation_rules.get(address.segment_index)
        if not rules or address in self.validated_addresses:
            return
        for rule in rules:
            rule(self, address)
        self.validated_addresses.add(address)

    def validate_existing_memory(self) -> None:
        for segment_index in self.validation_rules:
            if not 0 <= segment_index < len(self.data):
                continue
            for offset, value in enumerate(self.data[segment_index]):
                if value is not None:
                    self.validate_memory_cell(Relocatable(segment_index, offset))

    # Access tracking

    def mark_as_accessed(self, address: Relocatable) -> None:
        self.accessed_offsets.setdefault(address.segment_index, set()).add(
            address.offset
        )

    def is_accessed(self, address: Relocatable) -> bool:
        return address.offset in self.accessed_offsets.get(address.segment_index, ())

    def get_amount_of_accessed_addresses_for_segment(
        self, segment_index: int
    ) -> Optional[int]:
        if self._segment(segment_index) is None:
            return None
        return len(self.accessed_offsets.get(segment_index, ()))

    # Temporary segments

    def add_relocation_rule(self, src_ptr: Relocatable, dst_ptr: Relocatable) -> None:
        if src_ptr.segment_index >= 0 or src_ptr.offset != 0:
            raise AddressNotInTemporarySegmentError(src_ptr)
        if src_ptr.segment_index in self.relocation_rules:
            raise DuplicatedRelocationError(src_ptr.segment_index)
        self.relocation_rules[src_ptr.segment_index] = dst_ptr

    def _resolve_rules(self) -> Dict[int, Relocatable]:
        # A rule may point into another temporary segment.
        resolved = {}
        for segment_index, dst in self.relocation_rules.items():
            seen = {segment_index}
            while dst.segment_index < 0 and dst.segment_index in self.relocation_rules:
                if dst.segment_index in seen:
                    break
                seen.add(dst.segment_index)
                dst = self.relocation_rules[dst.segment_index] + dst.offset
            resolved[segment_index] = dst
        return resolved

    def relocate_memory(self) -> None:
        """Moves temporary segments into their destination and rewrites pointers."""
        if not self.relocation_rules:
            return
        rules = self._resolve_rules()
        logger.debug(f"Relocating {len(rules)} temporary segment(s)")

        for segment in self.data:
            for offset, value in enumerate(segment):
                if value is not None:
                    segment[offset] = relocate_with_rules(value, rules)

        for temp_index, segment in enumerate(self.temp_data):
            segment_index = -temp_index - 1
            dst = rules.get(segment_index)
            if dst is None:
                segment[:] = [
                    None if value is None else relocate_with_rules(value, rules)
                    for value in segment
                ]
                continue
            accessed = self.accessed_offsets.pop(segment_index, set())
            for offset, value in enumerate(segment):
                if value is None:
                    continue
                address = dst + offset
                self.insert(address, relocate_with_rules(value, rules))
                if offset in accessed:
                    self.mark_as_accessed(address)
            # Indexes of later temporary segments stay stable.
            self.temp_data[temp_index] = []

        self.relocation_rules = {}
