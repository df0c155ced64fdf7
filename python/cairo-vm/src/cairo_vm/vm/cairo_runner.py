"""
Orchestration of a program run.

A run goes through: initialize_builtins, initialize_segments,
initialize_main_entrypoint, initialize_vm, run_until_pc, end_run,
read_return_values and finally relocate, which flattens memory and trace into
the linear layout consumed by the prover.
"""

import dataclasses
import logging
from typing import IO, Dict, List, Optional, Sequence, Set, Tuple, Union

from cairo_vm.config import VmConfig
from cairo_vm.hints.processor import ExecutionScopes, HintProcessor, PythonHintProcessor
from cairo_vm.vm.builtins import BUILTIN_RUNNERS, BuiltinRunner
from cairo_vm.vm.errors import (
    AlreadyRelocatedError,
    BuiltinNotInLayoutError,
    DisorderedBuiltinsError,
    EndOfProgramError,
    EndOfProgramNotReachedError,
    EndRunCalledTwiceError,
    MissingMainError,
    OutOfBoundsBuiltinSegmentAccessError,
    RunnerNotInitializedError,
    RunNotFinishedError,
    UnknownLayoutError,
    UnsupportedBuiltinError,
)
from cairo_vm.vm.felt import Felt
from cairo_vm.vm.instruction import OFFSET_BIAS, decode_instruction
from cairo_vm.vm.memory_segments import MemorySegmentManager
from cairo_vm.vm.program import Program
from cairo_vm.vm.relocatable import (
    MaybeRelocatable,
    Relocatable,
    relocate_address,
    relocate_value,
)
from cairo_vm.vm.run_resources import RunResources
from cairo_vm.vm.vm_core import Hooks, TraceEntry, VirtualMachine

logger = logging.getLogger(__name__)


def is_subsequence(subsequence: Sequence[str], sequence: Sequence[str]) -> bool:
    """True if the items of `subsequence` appear in `sequence` in the same order."""
    remaining = iter(sequence)
    return all(item in remaining for item in subsequence)


def next_power_of_2(n: int) -> int:
    return 1 if n <= 1 else 1 << (n - 1).bit_length()


@dataclasses.dataclass
class ExecutionResources:
    n_steps: int
    n_memory_holes: int
    builtin_instance_counter: Dict[str, int]


class CairoRunner:
    def __init__(
        self,
        program: Program,
        layout: str = VmConfig.DEFAULT_LAYOUT,
        trace_enabled: bool = True,
        hint_processor: Optional[HintProcessor] = None,
        hooks: Optional[Hooks] = None,
    ):
        if layout not in VmConfig.LAYOUTS:
            raise UnknownLayoutError(layout)
        self.program = program
        self.layout = layout
        self.vm = VirtualMachine(trace_enabled=trace_enabled, hooks=hooks)
        self.hint_processor = (
            hint_processor if hint_processor is not None else PythonHintProcessor()
        )
        self.exec_scopes = ExecutionScopes()

        self.program_base: Optional[Relocatable] = None
        self.execution_base: Optional[Relocatable] = None
        self.initial_pc: Optional[Relocatable] = None
        self.initial_ap: Optional[Relocatable] = None
        self.initial_fp: Optional[Relocatable] = None
        self.final_pc: Optional[Relocatable] = None

        self.run_ended = False
        self.relocated_memory: Optional[List[Optional[Felt]]] = None
        self.relocated_trace: Optional[List[TraceEntry[int]]] = None

    # Shortcuts

    @property
    def segments(self) -> MemorySegmentManager:
        return self.vm.segments

    @property
    def builtin_runners(self) -> List[BuiltinRunner]:
        return self.vm.builtin_runners

    @property
    def pc(self) -> Relocatable:
        return self.vm.pc

    @property
    def ap(self) -> Relocatable:
        return self.vm.ap

    @property
    def fp(self) -> Relocatable:
        return self.vm.fp

    @property
    def accessed_addresses(self) -> Set[Relocatable]:
        return {
            Relocatable(segment_index, offset)
            for segment_index, offsets in self.vm.memory.accessed_offsets.items()
            for offset in offsets
        }

    def get_builtin(self, name: str) -> Optional[BuiltinRunner]:
        return next(
            (builtin for builtin in self.builtin_runners if builtin.name == name), None
        )

    def get_constants(self) -> Dict[str, Felt]:
        return self.program.get_constants()

    # Initialization

    def initialize(self) -> Relocatable:
        self.initialize_builtins()
        self.initialize_segments()
        end = self.initialize_main_entrypoint()
        self.initialize_vm()
        return end

    def initialize_builtins(self) -> None:
        builtins = self.program.builtins
        if not is_subsequence(builtins, VmConfig.BUILTIN_ORDER):
            raise DisorderedBuiltinsError(builtins)

        ratios = VmConfig.LAYOUTS[self.layout]
        runners = []
        for name in builtins:
            if name in VmConfig.UNSUPPORTED_BUILTINS:
                raise UnsupportedBuiltinError(name)
            if name not in ratios:
                raise BuiltinNotInLayoutError(name, self.layout)
            runner_cls = BUILTIN_RUNNERS[name]
            if ratios[name] is None:
                runners.append(runner_cls(included=True))
            else:
                runners.append(runner_cls(ratio=ratios[name], included=True))
        self.vm.builtin_runners = runners
        logger.debug(f"Initialized builtins: {[runner.name for runner in runners]}")

    def initialize_segments(self, program_base: Optional[Relocatable] = None) -> None:
        self.program_base = (
            program_base if program_base is not None else self.segments.add()
        )
        self.execution_base = self.segments.add()
        for builtin in self.builtin_runners:
            builtin.initialize_segments(self.segments)

    def initialize_function_runner(self) -> None:
        self.initialize_builtins()
        self.initialize_segments()

    def initialize_state(self, entrypoint: int, stack: Sequence[MaybeRelocatable]) -> None:
        if self.program_base is None or self.execution_base is None:
            raise RunnerNotInitializedError("program_base")
        self.initial_pc = self.program_base + entrypoint
        self.segments.load_data(self.program_base, self.program.data)
        for i in range(self.program.data_len):
            self.vm.memory.mark_as_accessed(self.program_base + i)
        self.segments.load_data(self.execution_base, stack)

    def initialize_function_entrypoint(
        self,
        entrypoint: int,
        args: Sequence[MaybeRelocatable],
        return_fp: MaybeRelocatable,
    ) -> Relocatable:
        end = self.segments.add()
        stack = list(args) + [return_fp, end]
        self.initial_fp = self.initial_ap = self.execution_base + len(stack)
        self.initialize_state(entrypoint, stack)
        self.final_pc = end
        return end

    def initialize_main_entrypoint(self) -> Relocatable:
        stack: List[MaybeRelocatable] = []
        for builtin in self.builtin_runners:
            stack.extend(builtin.initial_stack())
        if self.program.main is None:
            raise MissingMainError()
        return_fp = self.segments.add()
        return self.initialize_function_entrypoint(self.program.main, stack, return_fp)

    def initialize_vm(self) -> None:
        if self.initial_pc is None:
            raise RunnerNotInitializedError("initial_pc")
        self.vm.set_pc(self.initial_pc)
        self.vm.set_ap(self.initial_ap)
        self.vm.set_fp(self.initial_fp)

        for builtin in self.builtin_runners:
            builtin.add_validation_rule(self.vm.memory)
        self.vm.memory.validate_existing_memory()

        constants = self.get_constants()
        self.vm.hints = {
            self.program_base + pc: [
                self.hint_processor.compile_hint(
                    hint.code, hint.accessible_scopes, constants
                )
                for hint in hints
            ]
            for pc, hints in self.program.hints.items()
        }
        self.vm.hint_processor = self.hint_processor
        self.vm.exec_scopes = self.exec_scopes
        self.vm.constants = constants

    # Execution

    def run_until_pc(
        self, address: Relocatable, run_resources: Optional[RunResources] = None
    ) -> None:
        if run_resources is None:
            run_resources = RunResources(VmConfig.DEFAULT_MAX_STEPS)
        while self.vm.pc != address and not run_resources.consumed():
            self.vm.step()
            run_resources.consume_step()
        if self.vm.pc != address:
            raise EndOfProgramNotReachedError(self.vm.pc, address)
        logger.debug(f"Reached {address} after {self.vm.current_step} steps")

    def run_for_steps(self, steps: int) -> None:
        for remaining_steps in range(steps, 0, -1):
            if self.final_pc is not None and self.vm.pc == self.final_pc:
                raise EndOfProgramError(remaining_steps)
            self.vm.step()

    def run_until_steps(self, steps: int) -> None:
        self.run_for_steps(steps - self.vm.current_step)

    def run_until_next_power_of_2(self) -> None:
        self.run_until_steps(next_power_of_2(self.vm.current_step))

    def end_run(self) -> None:
        if self.run_ended:
            raise EndRunCalledTwiceError()
        self.vm.memory.relocate_memory()
        self.vm.verify_auto_deductions()
        self.segments.compute_effective_sizes()
        self.run_ended = True

    def read_return_values(self) -> Relocatable:
        """Checks the builtins' stop pointers, reading them backwards from ap."""
        if not self.run_ended:
            raise RunNotFinishedError()
        pointer = self.vm.ap
        for builtin in reversed(self.builtin_runners):
            pointer = builtin.final_stack(self.segments, pointer)
        return pointer

    def run_from_entrypoint(
        self,
        entrypoint: Union[str, int],
        args: Sequence,
        verify_secure: bool = True,
        run_resources: Optional[RunResources] = None,
    ) -> None:
        """
        Runs a single function of an initialized function runner with `args` on
        its stack.
        """
        entrypoint_pc = (
            self.program.get_label(entrypoint)
            if isinstance(entrypoint, str)
            else entrypoint
        )
        stack = [self.segments.gen_arg(arg) for arg in args]
        end = self.initialize_function_entrypoint(entrypoint_pc, stack, Felt(0))
        self.initialize_vm()
        self.run_until_pc(end, run_resources)
        self.end_run()
        if verify_secure:
            self.verify_secure_runner()

    def verify_secure_runner(self) -> None:
        for builtin in self.builtin_runners:
            base, stop_ptr = builtin.get_memory_segment_addresses()
            if stop_ptr is not None and builtin.included:
                segment = self.vm.memory.get_segment(base)
                for offset in range(stop_ptr, len(segment)):
                    if segment[offset] is not None:
                        raise OutOfBoundsBuiltinSegmentAccessError(
                            builtin.name, Relocatable(base, offset), stop_ptr
                        )
            builtin.run_security_checks(self.vm)
        self.vm.verify_auto_deductions()

    # Resources

    def check_used_cells(self) -> None:
        for builtin in self.builtin_runners:
            builtin.get_used_cells_and_allocated_size(self.vm)

    def get_memory_holes(self) -> int:
        builtin_segment_indexes = [builtin.base for builtin in self.builtin_runners]
        return self.segments.get_memory_holes(builtin_segment_indexes)

    def get_builtin_segments_info(self) -> Dict[str, Tuple[int, Optional[int]]]:
        return {
            builtin.name: builtin.get_memory_segment_addresses()
            for builtin in self.builtin_runners
        }

    def get_execution_resources(self) -> ExecutionResources:
        return ExecutionResources(
            n_steps=self.vm.current_step,
            n_memory_holes=self.get_memory_holes(),
            builtin_instance_counter={
                builtin.name: builtin.get_used_instances(self.segments)
                for builtin in self.builtin_runners
            },
        )

    def get_perm_range_check_limits(self) -> Optional[Tuple[int, int]]:
        """Smallest and largest biased offset used by the run, range checks included."""
        offsets = []
        for entry in self.vm.trace:
            instruction = decode_instruction(int(self.vm.memory.get_integer(entry.pc)))
            offsets.extend(
                offset + OFFSET_BIAS
                for offset in (instruction.off0, instruction.off1, instruction.off2)
            )
        limits = [(min(offsets), max(offsets))] if offsets else []
        range_check = self.get_builtin("range_check")
        if range_check is not None:
            usage = range_check.get_range_check_usage(self.vm.memory)
            if usage is not None:
                limits.append(usage)
        if not limits:
            return None
        return min(low for low, _ in limits), max(high for _, high in limits)

    # Relocation

    def relocate(self) -> None:
        if self.relocated_memory is not None:
            raise AlreadyRelocatedError()
        self.segments.compute_effective_sizes()
        relocation_table = self.segments.relocate_segments()
        self.relocated_memory = self._relocate_memory(relocation_table)
        if self.vm.trace_enabled:
            self.relocated_trace = self._relocate_trace(relocation_table)
        logger.debug(
            f"Relocated {len(self.relocated_memory) - 1} memory cells "
            f"with table {relocation_table}"
        )

    def _relocate_memory(self, relocation_table: List[int]) -> List[Optional[Felt]]:
        # Address 0 is never part of the relocated memory.
        relocated: List[Optional[Felt]] = [None]
        for segment_index, segment in enumerate(self.vm.memory.data):
            base = relocation_table[segment_index]
            for offset, value in enumerate(segment):
                if value is None:
                    continue
                address = base + offset
                if address >= len(relocated):
                    relocated.extend([None] * (address + 1 - len(relocated)))
                relocated[address] = relocate_value(value, relocation_table)
        return relocated

    def _relocate_trace(self, relocation_table: List[int]) -> List[TraceEntry[int]]:
        return [
            TraceEntry(
                pc=relocate_address(entry.pc, relocation_table),
                ap=relocate_address(entry.ap, relocation_table),
                fp=relocate_address(entry.fp, relocation_table),
            )
            for entry in self.vm.trace
        ]

    # Output

    def get_output(self) -> str:
        output = self.get_builtin("output")
        if output is None:
            return ""
        lines = []
        for value in self.vm.memory.get_segment(output.base):
            lines.append("<missing>" if value is None else str(value))
        return "".join(f"{line}\n" for line in lines)

    def write_output(self, stream: IO[str]) -> None:
        stream.write(self.get_output())
