import pytest
from hypothesis import given

from cairo_vm.testing.errors import strict_raises
from cairo_vm.testing.strategies import maybe_relocatable
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
from cairo_vm.vm.memory import Memory
from cairo_vm.vm.relocatable import MaybeRelocatable, Relocatable


@pytest.fixture
def memory():
    memory = Memory()
    memory.add_segment()
    memory.add_segment()
    return memory


class TestMemory:
    def test_add_segment(self):
        memory = Memory()
        assert memory.add_segment() == 0
        assert memory.add_segment() == 1
        assert memory.num_segments == 2

    def test_add_temporary_segment(self):
        memory = Memory()
        assert memory.add_temporary_segment() == -1
        assert memory.add_temporary_segment() == -2
        assert memory.num_temp_segments == 2

    @given(value=...)
    def test_insert_and_get(self, value: Felt):
        memory = Memory()
        memory.add_segment()
        address = Relocatable(0, 3)
        memory.insert(address, value)
        assert memory.get(address) == value
        assert memory[address] == value
        assert address in memory

    def test_insert_int_is_normalized(self, memory):
        memory[Relocatable(0, 0)] = -1
        assert isinstance(memory[Relocatable(0, 0)], Felt)
        assert memory[Relocatable(0, 0)] == Felt(-1)

    def test_insert_leaves_holes(self, memory):
        memory.insert(Relocatable(0, 2), 7)
        assert memory.get_segment(0) == [None, None, Felt(7)]
        assert memory.get(Relocatable(0, 0)) is None
        assert Relocatable(0, 0) not in memory

    @given(value=maybe_relocatable)
    def test_insert_same_value_twice(self, value: MaybeRelocatable):
        memory = Memory()
        memory.add_segment()
        memory.insert(Relocatable(0, 0), value)
        memory.insert(Relocatable(0, 0), value)
        assert memory[Relocatable(0, 0)] == value

    def test_insert_inconsistent_value(self, memory):
        memory.insert(Relocatable(0, 0), 1)
        with strict_raises(InconsistentMemoryError):
            memory.insert(Relocatable(0, 0), 2)
        with strict_raises(InconsistentMemoryError):
            memory.insert(Relocatable(0, 0), Relocatable(1, 0))

    def test_insert_unallocated_segment(self, memory):
        with strict_raises(UnallocatedSegmentError):
            memory.insert(Relocatable(2, 0), 1)
        with strict_raises(UnallocatedSegmentError):
            memory.insert(Relocatable(-1, 0), 1)

    def test_insert_non_relocatable_address(self, memory):
        with strict_raises(AddressNotRelocatableError):
            memory.insert(Felt(0), 1)

    def test_get_unknown(self, memory):
        assert memory.get(Relocatable(5, 0)) is None
        assert memory.get(Relocatable(0, 10), default=Felt(3)) == Felt(3)
        with strict_raises(UnknownMemoryError):
            memory[Relocatable(0, 0)]

    def test_get_integer(self, memory):
        memory.insert(Relocatable(0, 0), 5)
        memory.insert(Relocatable(0, 1), Relocatable(1, 0))
        assert memory.get_integer(Relocatable(0, 0)) == 5
        with strict_raises(ExpectedIntegerError):
            memory.get_integer(Relocatable(0, 1))

    def test_get_relocatable(self, memory):
        memory.insert(Relocatable(0, 0), 5)
        memory.insert(Relocatable(0, 1), Relocatable(1, 0))
        assert memory.get_relocatable(Relocatable(0, 1)) == Relocatable(1, 0)
        with strict_raises(AddressNotRelocatableError):
            memory.get_relocatable(Relocatable(0, 0))

    def test_ranges(self, memory):
        memory.insert(Relocatable(0, 0), 1)
        memory.insert(Relocatable(0, 1), 2)
        memory.insert(Relocatable(0, 3), 4)
        assert memory.get_range(Relocatable(0, 0), 4) == [
            Felt(1),
            Felt(2),
            None,
            Felt(4),
        ]
        assert memory.get_continuous_range(Relocatable(0, 0), 2) == [1, 2]
        assert memory.get_integer_range(Relocatable(0, 0), 2) == [1, 2]
        with strict_raises(UnknownMemoryError):
            memory.get_continuous_range(Relocatable(0, 0), 4)

    def test_items(self, memory):
        temp = memory.add_temporary_segment()
        memory.insert(Relocatable(1, 1), 2)
        memory.insert(Relocatable(temp, 0), 3)
        assert list(memory.items()) == [
            (Relocatable(1, 1), Felt(2)),
            (Relocatable(-1, 0), Felt(3)),
        ]


class TestValidationRules:
    def test_rule_is_applied_on_insert(self, memory):
        seen = []
        memory.add_validation_rule(1, lambda mem, address: seen.append(address))
        memory.insert(Relocatable(0, 0), 1)
        memory.insert(Relocatable(1, 0), 1)
        assert seen == [Relocatable(1, 0)]
        assert Relocatable(1, 0) in memory.validated_addresses

    def test_rule_runs_once_per_address(self, memory):
        seen = []
        memory.add_validation_rule(1, lambda mem, address: seen.append(address))
        memory.insert(Relocatable(1, 0), 1)
        memory.insert(Relocatable(1, 0), 1)
        assert seen == [Relocatable(1, 0)]

    def test_rule_error_propagates(self, memory):
        def reject(mem, address):
            raise ValueError(f"rejected {address}")

        memory.add_validation_rule(0, reject)
        with strict_raises(ValueError, match="rejected 0:0"):
            memory.insert(Relocatable(0, 0), 1)

    def test_validate_existing_memory(self, memory):
        memory.insert(Relocatable(1, 0), 1)
        memory.insert(Relocatable(1, 2), 3)
        seen = []
        memory.add_validation_rule(1, lambda mem, address: seen.append(address))
        memory.validate_existing_memory()
        assert seen == [Relocatable(1, 0), Relocatable(1, 2)]


class TestAccessedAddresses:
    def test_mark_as_accessed(self, memory):
        memory.mark_as_accessed(Relocatable(0, 2))
        memory.mark_as_accessed(Relocatable(0, 2))
        memory.mark_as_accessed(Relocatable(0, 4))
        assert memory.is_accessed(Relocatable(0, 2))
        assert not memory.is_accessed(Relocatable(0, 3))
        assert memory.get_amount_of_accessed_addresses_for_segment(0) == 2
        assert memory.get_amount_of_accessed_addresses_for_segment(1) == 0
        assert memory.get_amount_of_accessed_addresses_for_segment(7) is None


class TestTemporarySegments:
    def test_relocation_rule_source_must_be_temporary_base(self, memory):
        with strict_raises(AddressNotInTemporarySegmentError):
            memory.add_relocation_rule(Relocatable(0, 0), Relocatable(1, 0))
        with strict_raises(AddressNotInTemporarySegmentError):
            memory.add_relocation_rule(Relocatable(-1, 1), Relocatable(1, 0))

    def test_duplicated_relocation_rule(self, memory):
        memory.add_temporary_segment()
        memory.add_relocation_rule(Relocatable(-1, 0), Relocatable(1, 0))
        with strict_raises(DuplicatedRelocationError):
            memory.add_relocation_rule(Relocatable(-1, 0), Relocatable(1, 4))

    def test_relocate_memory(self, memory):
        temp = memory.add_temporary_segment()
        memory.insert(Relocatable(0, 0), Relocatable(temp, 1))
        memory.insert(Relocatable(temp, 0), 10)
        memory.insert(Relocatable(temp, 1), Relocatable(temp, 0))
        memory.mark_as_accessed(Relocatable(temp, 1))
        memory.add_relocation_rule(Relocatable(temp, 0), Relocatable(1, 5))

        memory.relocate_memory()

        assert memory[Relocatable(0, 0)] == Relocatable(1, 6)
        assert memory[Relocatable(1, 5)] == Felt(10)
        assert memory[Relocatable(1, 6)] == Relocatable(1, 5)
        assert memory.is_accessed(Relocatable(1, 6))
        assert memory.get_segment(temp) == []
        assert memory.relocation_rules == {}

    def test_relocate_memory_into_another_temporary_segment(self, memory):
        first = memory.add_temporary_segment()
        second = memory.add_temporary_segment()
        memory.insert(Relocatable(second, 0), 7)
        memory.add_relocation_rule(Relocatable(second, 0), Relocatable(first, 2))
        memory.add_relocation_rule(Relocatable(first, 0), Relocatable(1, 0))

        memory.relocate_memory()

        assert memory[Relocatable(1, 2)] == Felt(7)

    def test_relocate_memory_keeps_unrelocated_segments(self, memory):
        first = memory.add_temporary_segment()
        second = memory.add_temporary_segment()
        memory.insert(Relocatable(first, 0), 1)
        memory.insert(Relocatable(second, 0), Relocatable(first, 0))
        memory.add_relocation_rule(Relocatable(first, 0), Relocatable(0, 3))

        memory.relocate_memory()

        assert memory[Relocatable(0, 3)] == Felt(1)
        assert memory[Relocatable(second, 0)] == Relocatable(0, 3)

    def test_relocate_memory_inconsistent_destination(self, memory):
        temp = memory.add_temporary_segment()
        memory.insert(Relocatable(temp, 0), 1)
        memory.insert(Relocatable(1, 0), 2)
        memory.add_relocation_rule(Relocatable(temp, 0), Relocatable(1, 0))
        with strict_raises(InconsistentMemoryError):
            memory.relocate_memory()
