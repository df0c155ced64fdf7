"""
Decoding of Cairo instruction words.

An instruction is a 63-bit word: three 16-bit offsets biased by 2**15 followed
by 15 flag bits selecting registers, operand sources and register updates.
"""

import dataclasses
from enum import Enum, auto
from functools import lru_cache

from cairo_vm.vm.errors import InvalidInstructionError

OFFSET_BITS = 16
OFFSET_BIAS = 2 ** (OFFSET_BITS - 1)
OFFSET_MASK = 2**OFFSET_BITS - 1
N_FLAGS = 15
ENCODING_BOUND = 2 ** (3 * OFFSET_BITS + N_FLAGS)

DST_REG_BIT = 0
OP0_REG_BIT = 1
OP1_IMM_BIT = 2
OP1_FP_BIT = 3
OP1_AP_BIT = 4
RES_ADD_BIT = 5
RES_MUL_BIT = 6
PC_JUMP_ABS_BIT = 7
PC_JUMP_REL_BIT = 8
PC_JNZ_BIT = 9
AP_ADD_BIT = 10
AP_ADD1_BIT = 11
OPCODE_CALL_BIT = 12
OPCODE_RET_BIT = 13
OPCODE_ASSERT_EQ_BIT = 14


class Register(Enum):
    AP = auto()
    FP = auto()


@dataclasses.dataclass(frozen=True)
class Instruction:
    class Op1Addr(Enum):
        IMM = auto()
        AP = auto()
        FP = auto()
        OP0 = auto()

    class Res(Enum):
        OP1 = auto()
        ADD = auto()
        MUL = auto()
        UNCONSTRAINED = auto()

    class PcUpdate(Enum):
        REGULAR = auto()
        JUMP = auto()
        JUMP_REL = auto()
        JNZ = auto()

    class ApUpdate(Enum):
        REGULAR = auto()
        ADD = auto()
        ADD1 = auto()
        ADD2 = auto()

    class FpUpdate(Enum):
        REGULAR = auto()
        AP_PLUS2 = auto()
        DST = auto()

    class Opcode(Enum):
        NOP = auto()
        ASSERT_EQ = auto()
        CALL = auto()
        RET = auto()

    off0: int
    off1: int
    off2: int
    dst_register: Register
    op0_register: Register
    op1_addr: Op1Addr
    res: Res
    pc_update: PcUpdate
    ap_update: ApUpdate
    fp_update: FpUpdate
    opcode: Opcode

    @property
    def size(self) -> int:
        return 2 if self.op1_addr is Instruction.Op1Addr.IMM else 1


def _flag(flags: int, bit: int) -> int:
    return (flags >> bit) & 1


def _select(encoding: int, name: str, flags: int, options: dict, default):
    """Picks the single set flag among `options`, or `default` when none is set."""
    selected = [value for bit, value in options.items() if _flag(flags, bit)]
    if len(selected) > 1:
        raise InvalidInstructionError(encoding, f"more than one {name} flag is set")
    return selected[0] if selected else default


@lru_cache(None)
def decode_instruction(encoding: int) -> Instruction:
    if not 0 <= encoding < ENCODING_BOUND:
        raise InvalidInstructionError(encoding, "encoding is out of range")

    off0 = (encoding & OFFSET_MASK) - OFFSET_BIAS
    off1 = ((encoding >> OFFSET_BITS) & OFFSET_MASK) - OFFSET_BIAS
    off2 = ((encoding >> (2 * OFFSET_BITS)) & OFFSET_MASK) - OFFSET_BIAS
    flags = encoding >> (3 * OFFSET_BITS)

    dst_register = Register.FP if _flag(flags, DST_REG_BIT) else Register.AP
    op0_register = Register.FP if _flag(flags, OP0_REG_BIT) else Register.AP

    op1_addr = _select(
        encoding,
        "op1 source",
        flags,
        {
            OP1_IMM_BIT: Instruction.Op1Addr.IMM,
            OP1_FP_BIT: Instruction.Op1Addr.FP,
            OP1_AP_BIT: Instruction.Op1Addr.AP,
        },
        Instruction.Op1Addr.OP0,
    )
    if op1_addr is Instruction.Op1Addr.IMM and off2 != 1:
        raise InvalidInstructionError(encoding, "in immediate mode, off2 should be 1")

    pc_update = _select(
        encoding,
        "pc update",
        flags,
        {
            PC_JUMP_ABS_BIT: Instruction.PcUpdate.JUMP,
            PC_JUMP_REL_BIT: Instruction.PcUpdate.JUMP_REL,
            PC_JNZ_BIT: Instruction.PcUpdate.JNZ,
        },
        Instruction.PcUpdate.REGULAR,
    )

    res = _select(
        encoding,
        "res logic",
        flags,
        {RES_ADD_BIT: Instruction.Res.ADD, RES_MUL_BIT: Instruction.Res.MUL},
        None,
    )
    if res is None:
        res = (
            Instruction.Res.UNCONSTRAINED
            if pc_update is Instruction.PcUpdate.JNZ
            else Instruction.Res.OP1
        )
    elif pc_update is Instruction.PcUpdate.JNZ:
        raise InvalidInstructionError(encoding, "jnz requires an unconstrained res")

    opcode = _select(
        encoding,
        "opcode",
        flags,
        {
            OPCODE_CALL_BIT: Instruction.Opcode.CALL,
            OPCODE_RET_BIT: Instruction.Opcode.RET,
            OPCODE_ASSERT_EQ_BIT: Instruction.Opcode.ASSERT_EQ,
        },
        Instruction.Opcode.NOP,
    )

    ap_update = _select(
        encoding,
        "ap update",
        flags,
        {AP_ADD_BIT: Instruction.ApUpdate.ADD, AP_ADD1_BIT: Instruction.ApUpdate.ADD1},
        Instruction.ApUpdate.REGULAR,
    )
    if opcode is Instruction.Opcode.CALL:
        if ap_update is not Instruction.ApUpdate.REGULAR:
            raise InvalidInstructionError(encoding, "call must not update ap explicitly")
        ap_update = Instruction.ApUpdate.ADD2

    if opcode is Instruction.Opcode.CALL:
        fp_update = Instruction.FpUpdate.AP_PLUS2
    elif opcode is Instruction.Opcode.RET:
        fp_update = Instruction.FpUpdate.DST
    else:
        fp_update = Instruction.FpUpdate.REGULAR

    return Instruction(
        off0=off0,
        off1=off1,
        off2=off2,
        dst_register=dst_register,
        op0_register=op0_register,
        op1_addr=op1_addr,
        res=res,
        pc_update=pc_update,
        ap_update=ap_update,
        fp_update=fp_update,
        opcode=opcode,
    )
