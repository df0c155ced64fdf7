import dataclasses
import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from cairo_vm.logs import TRACE_LEVEL
from cairo_vm.vm.builtins import BuiltinRunner
from cairo_vm.vm.errors import (
    AssertEqFailedError,
    CallInconsistentError,
    ExpectedIntegerError,
    InconsistentAutoDeductionError,
    MissingHintProcessorError,
    PureValueError,
    TraceNotEnabledError,
    UnconstrainedResError,
    UnknownOperandError,
)
from cairo_vm.vm.felt import Felt
from cairo_vm.vm.instruction import Instruction, Register, decode_instruction
from cairo_vm.vm.memory import Memory
from cairo_vm.vm.memory_segments import MemorySegmentManager
from cairo_vm.vm.relocatable import MaybeRelocatable, Relocatable

if TYPE_CHECKING:
    from cairo_vm.hints.processor import ExecutionScopes, HintProcessor

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (vm, instruction, exec_scopes, constants)
Hook = Callable[["VirtualMachine", Instruction, "ExecutionScopes", Mapping[str, Felt]], None]


@dataclasses.dataclass(frozen=True)
class TraceEntry(Generic[T]):
    pc: T
    ap: T
    fp: T


@dataclasses.dataclass
class Operands:
    dst: MaybeRelocatable
    res: Optional[MaybeRelocatable]
    op0: MaybeRelocatable
    op1: MaybeRelocatable


@dataclasses.dataclass
class Hooks:
    pre_step_instruction: Optional[Hook] = None
    post_step_instruction: Optional[Hook] = None


@dataclasses.dataclass
class RunContext:
    """The registers of the machine and the memory they point into."""

    memory: Memory
    pc: Relocatable
    ap: Relocatable
    fp: Relocatable

    def get_instruction_encoding(self) -> Tuple[Felt, Optional[MaybeRelocatable]]:
        """Returns the instruction word at pc and the cell after it, if any."""
        encoding = self.memory[self.pc]
        if not isinstance(encoding, Felt):
            raise ExpectedIntegerError(self.pc)
        return encoding, self.memory.get(self.pc + 1)

    def _register(self, register: Register) -> Relocatable:
        return self.fp if register is Register.FP else self.ap

    def compute_dst_addr(self, instruction: Instruction) -> Relocatable:
        return self._register(instruction.dst_register) + instruction.off0

    def compute_op0_addr(self, instruction: Instruction) -> Relocatable:
        return self._register(instruction.op0_register) + instruction.off1

    def compute_op1_addr(
        self, instruction: Instruction, op0: Optional[MaybeRelocatable]
    ) -> Relocatable:
        if instruction.op1_addr is Instruction.Op1Addr.FP:
            base_addr = self.fp
        elif instruction.op1_addr is Instruction.Op1Addr.AP:
            base_addr = self.ap
        elif instruction.op1_addr is Instruction.Op1Addr.IMM:
            base_addr = self.pc
        else:
            if not isinstance(op0, Relocatable):
                raise UnknownOperandError("op0", self.compute_op0_addr(instruction))
            base_addr = op0
        return base_addr + instruction.off2


class VirtualMachine:
    """
    Executes Cairo instructions one step at a time.

    The machine owns the register state and the memory segments; builtin runners
    are consulted to deduce cells of their segments on the fly.
    """

    def __init__(
        self,
        segments: Optional[MemorySegmentManager] = None,
        trace_enabled: bool = True,
        hooks: Optional[Hooks] = None,
    ):
        self.segments = segments if segments is not None else MemorySegmentManager()
        self.builtin_runners: List[BuiltinRunner] = []
        self.run_context = RunContext(
            memory=self.segments.memory,
            pc=Relocatable(0, 0),
            ap=Relocatable(0, 0),
            fp=Relocatable(0, 0),
        )
        self.trace_enabled = trace_enabled
        self._trace: Optional[List[TraceEntry[Relocatable]]] = (
            [] if trace_enabled else None
        )
        self.current_step = 0
        # Set by hints to skip the instruction at the current pc.
        self.skip_instruction_execution = False
        self.hooks = hooks if hooks is not None else Hooks()

        self.hints: Dict[Relocatable, List[Any]] = {}
        self.hint_processor: Optional["HintProcessor"] = None
        self.exec_scopes: Optional["ExecutionScopes"] = None
        self.constants: Mapping[str, Felt] = {}

    # Registers

    @property
    def memory(self) -> Memory:
        return self.segments.memory

    @property
    def pc(self) -> Relocatable:
        return self.run_context.pc

    @property
    def ap(self) -> Relocatable:
        return self.run_context.ap

    @property
    def fp(self) -> Relocatable:
        return self.run_context.fp

    def set_pc(self, pc: Relocatable) -> None:
        self.run_context.pc = pc

    def set_ap(self, ap: Relocatable) -> None:
        self.run_context.ap = ap

    def set_fp(self, fp: Relocatable) -> None:
        self.run_context.fp = fp

    @property
    def trace(self) -> List[TraceEntry[Relocatable]]:
        if self._trace is None:
            raise TraceNotEnabledError()
        return self._trace

    # Builtins

    def get_builtin_runner(self, segment_index: int) -> Optional[BuiltinRunner]:
        for builtin in self.builtin_runners:
            if builtin.base == segment_index:
                return builtin
        return None

    def deduce_memory_cell(self, address: Relocatable) -> Optional[Felt]:
        builtin = self.get_builtin_runner(address.segment_index)
        if builtin is None:
            return None
        return builtin.deduce_memory_cell(address, self.memory)

    def verify_auto_deductions(self) -> None:
        """Checks every builtin cell against what the builtin deduces for it."""
        for builtin in self.builtin_runners:
            for offset, value in enumerate(self.memory.get_segment(builtin.base)):
                if value is None:
                    continue
                address = Relocatable(builtin.base, offset)
                deduced = builtin.deduce_memory_cell(address, self.memory)
                if deduced is not None and deduced != value:
                    raise InconsistentAutoDeductionError(
                        builtin.name, address, deduced, value
                    )

    # Operands

    def deduce_op0(
        self,
        instruction: Instruction,
        dst: Optional[MaybeRelocatable],
        op1: Optional[MaybeRelocatable],
    ) -> Tuple[Optional[MaybeRelocatable], Optional[MaybeRelocatable]]:
        """Returns (deduced_op0, deduced_res), either may be None."""
        if instruction.opcode is Instruction.Opcode.CALL:
            return self.pc + instruction.size, None
        if instruction.opcode is Instruction.Opcode.ASSERT_EQ:
            if instruction.res is Instruction.Res.ADD:
                if dst is not None and op1 is not None:
                    return dst - op1, dst
            elif instruction.res is Instruction.Res.MUL:
                if isinstance(dst, Felt) and isinstance(op1, Felt) and op1 != 0:
                    return dst / op1, dst
        return None, None

    def deduce_op1(
        self,
        instruction: Instruction,
        dst: Optional[MaybeRelocatable],
        op0: Optional[MaybeRelocatable],
    ) -> Tuple[Optional[MaybeRelocatable], Optional[MaybeRelocatable]]:
        """Returns (deduced_op1, deduced_res), either may be None."""
        if instruction.opcode is not Instruction.Opcode.ASSERT_EQ:
            return None, None
        if instruction.res is Instruction.Res.OP1:
            if dst is not None:
                return dst, dst
        elif instruction.res is Instruction.Res.ADD:
            if dst is not None and op0 is not None:
                return dst - op0, dst
        elif instruction.res is Instruction.Res.MUL:
            if isinstance(dst, Felt) and isinstance(op0, Felt) and op0 != 0:
                return dst / op0, dst
        return None, None

    def compute_res(
        self, instruction: Instruction, op0: MaybeRelocatable, op1: MaybeRelocatable
    ) -> Optional[MaybeRelocatable]:
        if instruction.res is Instruction.Res.OP1:
            return op1
        if instruction.res is Instruction.Res.ADD:
            return op0 + op1
        if instruction.res is Instruction.Res.MUL:
            if not isinstance(op0, Felt) or not isinstance(op1, Felt):
                raise PureValueError("*", (op0, op1))
            return op0 * op1
        # Unconstrained res is only used by jnz, which never reads it.
        return None

    def compute_operands(
        self, instruction: Instruction
    ) -> Tuple[Operands, List[Relocatable]]:
        """
        Fetches dst, op0 and op1, deducing and writing the missing ones.

        Returns the operands and the addresses of (dst, op0, op1).
        """
        memory = self.memory
        dst_addr = self.run_context.compute_dst_addr(instruction)
        dst = memory.get(dst_addr)
        op0_addr = self.run_context.compute_op0_addr(instruction)
        op0 = memory.get(op0_addr)
        op1_addr = self.run_context.compute_op1_addr(instruction, op0)
        op1 = memory.get(op1_addr)
        res: Optional[MaybeRelocatable] = None

        should_update_dst = dst is None
        should_update_op0 = op0 is None
        should_update_op1 = op1 is None

        # Builtins deduce first, the instruction semantics second.
        if op0 is None:
            op0 = self.deduce_memory_cell(op0_addr)
        if op1 is None:
            op1 = self.deduce_memory_cell(op1_addr)

        if op0 is None:
            op0, res = self.deduce_op0(instruction, dst, op1)
        if op1 is None:
            op1, deduced_res = self.deduce_op1(instruction, dst, op0)
            if res is None:
                res = deduced_res

        if op0 is None:
            raise UnknownOperandError("op0", op0_addr)
        if op1 is None:
            raise UnknownOperandError("op1", op1_addr)

        if res is None:
            res = self.compute_res(instruction, op0, op1)

        if dst is None:
            if instruction.opcode is Instruction.Opcode.ASSERT_EQ and res is not None:
                dst = res
            elif instruction.opcode is Instruction.Opcode.CALL:
                dst = self.fp
        if dst is None:
            raise UnknownOperandError("dst", dst_addr)

        if should_update_dst:
            memory.insert(dst_addr, dst)
        if should_update_op0:
            memory.insert(op0_addr, op0)
        if should_update_op1:
            memory.insert(op1_addr, op1)

        return (
            Operands(dst=dst, res=res, op0=op0, op1=op1),
            [dst_addr, op0_addr, op1_addr],
        )

    def opcode_assertions(self, instruction: Instruction, operands: Operands) -> None:
        if instruction.opcode is Instruction.Opcode.ASSERT_EQ:
            if operands.res is None:
                raise UnconstrainedResError("assert_eq")
            if operands.dst != operands.res:
                raise AssertEqFailedError(operands.dst, operands.res)
        elif instruction.opcode is Instruction.Opcode.CALL:
            return_pc = self.pc + instruction.size
            if operands.op0 != return_pc:
                raise CallInconsistentError("return-pc (op0)", operands.op0, return_pc)
            if operands.dst != self.fp:
                raise CallInconsistentError("return-fp (dst)", operands.dst, self.fp)

    # Registers update

    @staticmethod
    def is_zero(value: MaybeRelocatable) -> bool:
        if isinstance(value, Felt):
            return value.is_zero()
        return False

    def update_fp(self, instruction: Instruction, operands: Operands) -> None:
        if instruction.fp_update is Instruction.FpUpdate.AP_PLUS2:
            self.run_context.fp = self.ap + 2
        elif instruction.fp_update is Instruction.FpUpdate.DST:
            if isinstance(operands.dst, Relocatable):
                self.run_context.fp = operands.dst
            else:
                self.run_context.fp = self.fp + operands.dst

    def update_ap(self, instruction: Instruction, operands: Operands) -> None:
        if instruction.ap_update is Instruction.ApUpdate.ADD:
            if operands.res is None:
                raise UnconstrainedResError("ap += res")
            self.run_context.ap = self.ap + operands.res
        elif instruction.ap_update is Instruction.ApUpdate.ADD1:
            self.run_context.ap = self.ap + 1
        elif instruction.ap_update is Instruction.ApUpdate.ADD2:
            self.run_context.ap = self.ap + 2

    def update_pc(self, instruction: Instruction, operands: Operands) -> None:
        if instruction.pc_update is Instruction.PcUpdate.REGULAR:
            self.run_context.pc = self.pc + instruction.size
        elif instruction.pc_update is Instruction.PcUpdate.JUMP:
            if operands.res is None:
                raise UnconstrainedResError("jmp abs")
            if not isinstance(operands.res, Relocatable):
                raise PureValueError("jmp abs", operands.res)
            self.run_context.pc = operands.res
        elif instruction.pc_update is Instruction.PcUpdate.JUMP_REL:
            if operands.res is None:
                raise UnconstrainedResError("jmp rel")
            if not isinstance(operands.res, Felt):
                raise PureValueError("jmp rel", operands.res)
            self.run_context.pc = self.pc + operands.res
        elif instruction.pc_update is Instruction.PcUpdate.JNZ:
            if self.is_zero(operands.dst):
                self.run_context.pc = self.pc + instruction.size
            else:
                if not isinstance(operands.op1, Felt):
                    raise PureValueError("jmp != 0", operands.op1)
                self.run_context.pc = self.pc + operands.op1

    def update_registers(self, instruction: Instruction, operands: Operands) -> None:
        # pc goes last so that errors report the pc of the failing instruction.
        self.update_fp(instruction, operands)
        self.update_ap(instruction, operands)
        self.update_pc(instruction, operands)

    # Execution

    def decode_current_instruction(self) -> Instruction:
        encoding, _ = self.run_context.get_instruction_encoding()
        return decode_instruction(int(encoding))

    def run_instruction(self, instruction: Instruction) -> None:
        operands, operands_addresses = self.compute_operands(instruction)
        self.opcode_assertions(instruction, operands)

        if self._trace is not None:
            self._trace.append(TraceEntry(pc=self.pc, ap=self.ap, fp=self.fp))
        if logger.isEnabledFor(TRACE_LEVEL):
            logger.log(
                TRACE_LEVEL,
                f"step {self.current_step}: pc={self.pc} ap={self.ap} fp={self.fp} "
                f"{instruction.opcode.name}",
            )

        self.memory.mark_as_accessed(self.pc)
        for address in operands_addresses:
            self.memory.mark_as_accessed(address)

        self.update_registers(instruction, operands)
        self.current_step += 1

    def step_hint(self) -> None:
        hints = self.hints.get(self.pc, [])
        if not hints:
            return
        if self.hint_processor is None:
            raise MissingHintProcessorError(self.pc)
        for hint in hints:
            self.hint_processor.execute_hint(self, self.exec_scopes, hint, self.constants)

    def step_instruction(self) -> None:
        instruction = self.decode_current_instruction()
        if self.skip_instruction_execution:
            self.run_context.pc = self.pc + instruction.size
            self.skip_instruction_execution = False
            return

        if self.hooks.pre_step_instruction is not None:
            self.hooks.pre_step_instruction(
                self, instruction, self.exec_scopes, self.constants
            )
        self.run_instruction(instruction)
        if self.hooks.post_step_instruction is not None:
            self.hooks.post_step_instruction(
                self, instruction, self.exec_scopes, self.constants
            )

    def step(self) -> None:
        self.step_hint()
        self.step_instruction()

    # Helpers used by runners and hints

    def load_data(self, ptr: Relocatable, data: Sequence) -> Relocatable:
        return self.segments.load_data(ptr, data)

    def add_memory_segment(self) -> Relocatable:
        return self.segments.add()

    def get_return_values(self, n_ret: int) -> List[MaybeRelocatable]:
        return self.memory.get_continuous_range(self.ap - n_ret, n_ret)
