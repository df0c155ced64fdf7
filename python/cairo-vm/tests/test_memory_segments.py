import pytest
from starkware.cairo.lang.cairo_constants import DEFAULT_PRIME

from cairo_vm.testing.errors import strict_raises
from cairo_vm.vm.errors import MissingSegmentUsedSizesError
from cairo_vm.vm.felt import Felt
from cairo_vm.vm.memory_segments import MemorySegmentManager
from cairo_vm.vm.relocatable import Relocatable


@pytest.fixture
def segments():
    return MemorySegmentManager()


class TestMemorySegmentManager:
    def test_add_segment(self, segments):
        ptr = segments.add()
        assert isinstance(ptr, Relocatable)
        assert ptr.segment_index == 0
        assert ptr.offset == 0
        assert segments.add().segment_index == 1
        assert segments.num_segments == 2

    def test_add_segment_with_size(self, segments):
        ptr = segments.add(size=10)
        assert segments.get_segment_size(ptr.segment_index) == 10

    def test_add_temporary_segment(self, segments):
        ptr = segments.add_temporary_segment()
        assert isinstance(ptr, Relocatable)
        assert ptr.segment_index == -1
        assert ptr.offset == 0
        assert segments.num_temp_segments == 1

    def test_load_data_felt(self, segments):
        ptr = segments.add()
        data = [Felt(1), Felt(2), Felt(3), Felt(4)]
        next_ptr = segments.load_data(ptr, data)
        assert isinstance(next_ptr, Relocatable)
        assert next_ptr.segment_index == ptr.segment_index
        assert next_ptr.offset == 4

    def test_load_data_int(self, segments):
        ptr = segments.add()
        data = [1, 2, 3, 4]
        next_ptr = segments.load_data(ptr, data)
        assert next_ptr == ptr + 4
        assert segments.memory.get_integer_range(ptr, 4) == data

    def test_load_data_biguint(self, segments):
        ptr = segments.add()
        data = [2**128, DEFAULT_PRIME - 1]
        next_ptr = segments.load_data(ptr, data)
        assert next_ptr.offset == 2
        assert segments.memory[ptr + 1] == Felt(-1)

    def test_load_data_empty(self, segments):
        ptr = segments.add()
        assert segments.load_data(ptr + 3, []) == ptr + 3

    def test_compute_effective_sizes(self, segments):
        ptr = segments.add()
        data = [Felt(1), Felt(2), Felt(3), Felt(4)]
        segments.load_data(ptr, data)
        sizes = segments.compute_effective_sizes()
        assert sizes == [4]
        assert segments.get_segment_used_size(0) == 4
        assert segments.get_segment_size(0) == 4
        assert segments.get_segment_used_size(1) is None

    def test_compute_effective_sizes_with_holes(self, segments):
        segments.add()
        segments.add()
        segments.add()
        segments.memory.insert(Relocatable(0, 2), 1)
        segments.memory.insert(Relocatable(2, 7), 1)
        assert segments.compute_effective_sizes() == [3, 0, 8]

    def test_sizes_are_computed_once(self, segments):
        ptr = segments.add()
        segments.compute_effective_sizes()
        segments.load_data(ptr, [1, 2])
        assert segments.compute_effective_sizes() == [0]

    def test_used_size_before_computation(self, segments):
        segments.add()
        with strict_raises(MissingSegmentUsedSizesError):
            segments.get_segment_used_size(0)
        with strict_raises(MissingSegmentUsedSizesError):
            segments.relocate_segments()

    def test_relocate_segments(self, segments):
        for size in (3, 5, 0, 2):
            ptr = segments.add()
            segments.load_data(ptr, [0] * size)
        segments.compute_effective_sizes()
        assert segments.relocate_segments() == [1, 4, 9, 9]

    def test_relocate_segments_uses_finalized_size(self, segments):
        ptr = segments.add()
        segments.load_data(ptr, [1])
        segments.finalize(ptr.segment_index, size=10)
        segments.add()
        segments.compute_effective_sizes()
        assert segments.relocate_segments() == [1, 11]

    def test_get_memory_holes(self, segments):
        program = segments.add()
        execution = segments.add()
        builtin = segments.add()
        segments.load_data(program, [1, 2, 3])
        segments.load_data(execution, [1, 2, 3, 4])
        segments.load_data(builtin, [1, 2])
        for offset in (0, 1, 2):
            segments.memory.mark_as_accessed(program + offset)
        segments.memory.mark_as_accessed(execution + 1)
        segments.compute_effective_sizes()
        assert segments.get_memory_holes([builtin.segment_index]) == 3

    def test_is_valid_memory_value(self, segments):
        segments.add()
        assert segments.is_valid_memory_value(Felt(3))
        assert segments.is_valid_memory_value(Relocatable(0, 5))
        assert not segments.is_valid_memory_value(Relocatable(1, 0))

    def test_gen_arg(self, segments):
        assert segments.gen_arg(5) == Felt(5)
        assert segments.gen_arg(Relocatable(0, 1)) == Relocatable(0, 1)

        ptr = segments.gen_arg([1, [2, 3]])
        assert ptr == Relocatable(0, 0)
        assert segments.memory[ptr] == Felt(1)
        inner = segments.memory.get_relocatable(ptr + 1)
        assert segments.memory.get_integer_range(inner, 2) == [2, 3]

    def test_write_arg(self, segments):
        ptr = segments.add()
        end = segments.write_arg(ptr, [-1, (4,)])
        assert end == ptr + 2
        assert segments.memory[ptr] == Felt(DEFAULT_PRIME - 1)
        inner = segments.memory.get_relocatable(ptr + 1)
        assert segments.memory[inner] == Felt(4)

    def test_gen_arg_unsupported(self, segments):
        with strict_raises(TypeError):
            segments.gen_arg("felt")

    def test_memory_wrapper(self, segments):
        ptr = segments.add()
        segments.load_data(ptr, [Felt(1), Felt(2), Felt(3), Felt(4)])
        assert segments.memory.get(ptr) == Felt(1)
