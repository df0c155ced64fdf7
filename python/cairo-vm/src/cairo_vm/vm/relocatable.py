from typing import Mapping, Sequence, Tuple, Union

from cairo_vm.vm.errors import (
    OffsetExceededError,
    RelocatableAddError,
    RelocationError,
    SubDiffIndexError,
    SubRelocatableFromIntError,
    TemporarySegmentInRelocationError,
)
from cairo_vm.vm.felt import PRIME, Felt

OFFSET_BOUND = 2**64


class Relocatable:
    """
    An address in segmented memory: a segment index and an offset within it.

    Negative segment indexes denote temporary segments which must be relocated
    into real segments before the final memory layout is computed.
    """

    __slots__ = ("segment_index", "offset")

    def __init__(self, segment_index: int, offset: int):
        if not 0 <= offset < OFFSET_BOUND:
            raise OffsetExceededError((segment_index, offset), 0)
        self.segment_index = segment_index
        self.offset = offset

    def _shift(self, shift: int) -> "Relocatable":
        new_offset = self.offset + shift
        if not 0 <= new_offset < OFFSET_BOUND:
            raise OffsetExceededError(self, shift)
        return Relocatable(self.segment_index, new_offset)

    def __add__(self, other):
        if isinstance(other, Relocatable):
            raise RelocatableAddError(self, other)
        if isinstance(other, Felt):
            # Field addition first, then the result must fit an offset.
            new_offset = (self.offset + other.value) % PRIME
            if new_offset >= OFFSET_BOUND:
                raise OffsetExceededError(self, other)
            return Relocatable(self.segment_index, new_offset)
        if isinstance(other, int):
            return self._shift(other)
        return NotImplemented

    def __radd__(self, other):
        if isinstance(other, (Felt, int)):
            return self + other
        return NotImplemented

    def __sub__(self, other):
        if isinstance(other, Relocatable):
            if self.segment_index != other.segment_index:
                raise SubDiffIndexError(self, other)
            return Felt(self.offset - other.offset)
        if isinstance(other, Felt):
            return self + (-other)
        if isinstance(other, int):
            return self._shift(-other)
        return NotImplemented

    def __rsub__(self, other):
        if isinstance(other, (Felt, int)):
            raise SubRelocatableFromIntError(other, self)
        return NotImplemented

    def __eq__(self, other) -> bool:
        if not isinstance(other, Relocatable):
            return False
        return (
            self.segment_index == other.segment_index and self.offset == other.offset
        )

    def __hash__(self) -> int:
        return hash(("Relocatable", self.segment_index, self.offset))

    def to_tuple(self) -> Tuple[int, int]:
        return (self.segment_index, self.offset)

    def __lt__(self, other: "Relocatable") -> bool:
        if not isinstance(other, Relocatable):
            return NotImplemented
        return self.to_tuple() < other.to_tuple()

    def __le__(self, other: "Relocatable") -> bool:
        if not isinstance(other, Relocatable):
            return NotImplemented
        return self.to_tuple() <= other.to_tuple()

    def __gt__(self, other: "Relocatable") -> bool:
        if not isinstance(other, Relocatable):
            return NotImplemented
        return self.to_tuple() > other.to_tuple()

    def __ge__(self, other: "Relocatable") -> bool:
        if not isinstance(other, Relocatable):
            return NotImplemented
        return self.to_tuple() >= other.to_tuple()

    def __str__(self) -> str:
        return f"{self.segment_index}:{self.offset}"

    def __format__(self, format_spec: str) -> str:
        return format(str(self), format_spec)

    def __repr__(self) -> str:
        return f"Relocatable({self.segment_index}, {self.offset})"

    def is_temporary(self) -> bool:
        return self.segment_index < 0

    @classmethod
    def from_tuple(cls, value: Sequence[int]) -> "Relocatable":
        segment_index, offset = value
        return cls(segment_index, offset)


MaybeRelocatable = Union[Felt, Relocatable]


def to_maybe_relocatable(value) -> MaybeRelocatable:
    """Normalizes integers to `Felt`, leaving relocatable values untouched."""
    if isinstance(value, (Felt, Relocatable)):
        return value
    if isinstance(value, int):
        return Felt(value)
    raise TypeError(f"Expected an integer or a relocatable value, got {value!r}")


def relocate_address(address: Relocatable, relocation_table: Sequence[int]) -> int:
    if address.segment_index < 0:
        raise TemporarySegmentInRelocationError(address.segment_index)
    if address.segment_index >= len(relocation_table):
        raise RelocationError(
            f"no relocation found for segment {address.segment_index}"
        )
    return relocation_table[address.segment_index] + address.offset


def relocate_value(
    value: MaybeRelocatable, relocation_table: Sequence[int]
) -> Felt:
    if isinstance(value, Relocatable):
        return Felt(relocate_address(value, relocation_table))
    return value


def relocate_with_rules(
    value: MaybeRelocatable, rules: Mapping[int, Relocatable]
) -> MaybeRelocatable:
    """Resolves an address in a temporary segment through its relocation rule."""
    if not isinstance(value, Relocatable) or value.segment_index >= 0:
        return value
    base = rules.get(value.segment_index)
    if base is None:
        return value
    return base + value.offset
