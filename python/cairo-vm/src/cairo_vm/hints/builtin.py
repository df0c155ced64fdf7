"""Hints available by name to every program run with the Python hint processor."""

from cairo_vm.hints.decorator import register_hint
from cairo_vm.vm.memory import Memory
from cairo_vm.vm.memory_segments import MemorySegmentManager
from cairo_vm.vm.relocatable import Relocatable
from cairo_vm.vm.vm_core import VirtualMachine


@register_hint
def alloc_segment(segments: MemorySegmentManager, memory: Memory, ap: Relocatable):
    memory[ap] = segments.add()


@register_hint
def alloc_temporary_segment(
    segments: MemorySegmentManager, memory: Memory, ap: Relocatable
):
    memory[ap] = segments.add_temporary_segment()


@register_hint
def relocate_temporary_segment(memory: Memory, ap: Relocatable):
    # [ap - 2]: temporary segment base, [ap - 1]: destination
    memory.add_relocation_rule(
        src_ptr=memory.get_relocatable(ap - 2),
        dst_ptr=memory.get_relocatable(ap - 1),
    )


@register_hint
def enter_scope(vm_enter_scope):
    vm_enter_scope()


@register_hint
def exit_scope(vm_exit_scope):
    vm_exit_scope()


@register_hint
def skip_next_instruction(vm: VirtualMachine):
    vm.skip_instruction_execution = True
