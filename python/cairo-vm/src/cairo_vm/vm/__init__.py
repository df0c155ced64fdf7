from cairo_vm.vm.cairo_runner import CairoRunner, ExecutionResources
from cairo_vm.vm.felt import PRIME, Felt
from cairo_vm.vm.memory import Memory
from cairo_vm.vm.memory_segments import MemorySegmentManager
from cairo_vm.vm.program import HintParams, Program
from cairo_vm.vm.relocatable import MaybeRelocatable, Relocatable
from cairo_vm.vm.run_resources import RunResources
from cairo_vm.vm.vm_core import Hooks, RunContext, TraceEntry, VirtualMachine

__all__ = [
    "PRIME",
    "CairoRunner",
    "ExecutionResources",
    "Felt",
    "HintParams",
    "Hooks",
    "MaybeRelocatable",
    "Memory",
    "MemorySegmentManager",
    "Program",
    "Relocatable",
    "RunContext",
    "RunResources",
    "TraceEntry",
    "VirtualMachine",
]
