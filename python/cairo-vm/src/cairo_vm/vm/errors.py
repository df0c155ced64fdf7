"""Exceptions raised by the Cairo VM."""

from typing import Any, Optional, Sequence


class CairoVmError(Exception):
    """Base exception for all Cairo VM errors."""

    pass


# Math


class MathError(CairoVmError):
    """Raised on invalid field or address arithmetic."""

    pass


class FeltDivisionByZeroError(MathError, ZeroDivisionError):
    """Raised when dividing a field element by zero."""

    def __init__(self, dividend: Any):
        self.dividend = dividend
        super().__init__(f"Attempted to divide {dividend} by zero")


class NonResidueError(MathError):
    """Raised when taking the square root of a quadratic non-residue."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"{value} is not a quadratic residue modulo the field prime")


class OffsetExceededError(MathError):
    """Raised when an address offset leaves the representable range."""

    def __init__(self, address: Any, shift: Any):
        self.address = address
        self.shift = shift
        super().__init__(
            f"Offset of {address} shifted by {shift} is out of the [0, 2**64) range"
        )


class RelocatableAddError(MathError):
    """Raised when adding two relocatable values."""

    def __init__(self, lhs: Any, rhs: Any):
        self.lhs = lhs
        self.rhs = rhs
        super().__init__(f"Cannot add two relocatable values: {lhs} + {rhs}")


class SubDiffIndexError(MathError):
    """Raised when subtracting relocatable values from different segments."""

    def __init__(self, lhs: Any, rhs: Any):
        self.lhs = lhs
        self.rhs = rhs
        super().__init__(
            f"Cannot subtract relocatable values from different segments: {lhs} - {rhs}"
        )


class SubRelocatableFromIntError(MathError):
    """Raised when subtracting a relocatable value from an integer."""

    def __init__(self, lhs: Any, rhs: Any):
        self.lhs = lhs
        self.rhs = rhs
        super().__init__(f"Cannot subtract a relocatable from an integer: {lhs} - {rhs}")


# Memory


class VmMemoryError(CairoVmError):
    """Raised on memory and segment inconsistencies."""

    pass


class InconsistentMemoryError(VmMemoryError):
    def __init__(self, address: Any, old_value: Any, new_value: Any):
        self.address = address
        self.old_value = old_value
        self.new_value = new_value
        super().__init__(
            f"Inconsistent memory assignment at address {address}. "
            f"{old_value} != {new_value}."
        )


class UnallocatedSegmentError(VmMemoryError):
    def __init__(self, address: Any, num_segments: int):
        self.address = address
        self.num_segments = num_segments
        super().__init__(
            f"Can't insert into segment #{address.segment_index}; "
            f"memory only has {num_segments} segment(s)"
        )


class UnknownMemoryError(VmMemoryError):
    def __init__(self, address: Any):
        self.address = address
        super().__init__(f"Unknown value for memory cell at address {address}")


class ExpectedIntegerError(VmMemoryError):
    def __init__(self, address: Any):
        self.address = address
        super().__init__(f"Expected integer at address {address}")


class AddressNotRelocatableError(VmMemoryError):
    def __init__(self, address: Any):
        self.address = address
        super().__init__(f"Expected relocatable at address {address}")


class TemporarySegmentInRelocationError(VmMemoryError):
    def __init__(self, segment_index: int):
        self.segment_index = segment_index
        super().__init__(
            f"Temporary segment found while relocating (flattening), "
            f"segment: {segment_index}"
        )


class RelocationError(VmMemoryError):
    def __init__(self, message: str):
        super().__init__(f"Relocation error: {message}")


class MissingSegmentUsedSizesError(VmMemoryError):
    def __init__(self):
        super().__init__(
            "Segment effective sizes haven't been calculated; "
            "call compute_effective_sizes() first"
        )


class DuplicatedRelocationError(VmMemoryError):
    def __init__(self, segment_index: int):
        self.segment_index = segment_index
        super().__init__(
            f"A relocation rule already exists for segment {segment_index}"
        )


class AddressNotInTemporarySegmentError(VmMemoryError):
    def __init__(self, address: Any):
        self.address = address
        super().__init__(
            f"The source of a relocation rule must be the base of a temporary "
            f"segment, got {address}"
        )


# Builtins


class BuiltinError(CairoVmError):
    """Raised when a builtin constraint is violated."""

    pass


class NumOutOfBoundsError(BuiltinError):
    def __init__(self, address: Any, value: Any, bound: int):
        self.address = address
        self.value = value
        self.bound = bound
        super().__init__(
            f"Value {value}, in range check builtin at {address}, "
            f"is out of range [0, {bound})."
        )


class FoundNonIntError(BuiltinError):
    def __init__(self, builtin: str, address: Any):
        self.builtin = builtin
        self.address = address
        super().__init__(f"{builtin} builtin: expected integer at address {address}")


class PointNotOnCurveError(BuiltinError):
    def __init__(self, point: Sequence[int]):
        self.point = tuple(point)
        super().__init__(f"EcOp builtin: point {self.point} is not on the curve")


class EcOpSameXCoordinateError(BuiltinError):
    def __init__(self, partial_sum: Sequence[int], doubled_point: Sequence[int], m: int):
        self.partial_sum = tuple(partial_sum)
        self.doubled_point = tuple(doubled_point)
        self.m = m
        super().__init__(
            f"EcOp builtin: point {self.partial_sum} and {self.doubled_point} "
            f"share the same x coordinate (m = {m})"
        )


class BitwiseInputOutOfRangeError(BuiltinError):
    def __init__(self, address: Any, value: Any, n_bits: int):
        self.address = address
        self.value = value
        self.n_bits = n_bits
        super().__init__(
            f"Bitwise builtin: expected integer at address {address} "
            f"to be smaller than 2^{n_bits}. Got: {value}"
        )


class InvalidStopPointerError(BuiltinError):
    def __init__(self, builtin: str, stop_ptr: Any, expected: Any):
        self.builtin = builtin
        self.stop_ptr = stop_ptr
        self.expected = expected
        super().__init__(
            f"Invalid stop pointer for {builtin}. Expected: {expected}, found: {stop_ptr}"
        )


class MissingMemoryCellsError(BuiltinError):
    def __init__(self, builtin: str, addresses: Sequence[Any]):
        self.builtin = builtin
        self.addresses = list(addresses)
        super().__init__(
            f"{builtin} builtin: missing memory cells {[str(a) for a in self.addresses]}"
        )


class InsufficientAllocatedCellsError(BuiltinError):
    def __init__(self, builtin: str, used: int, allocated: Optional[int]):
        self.builtin = builtin
        self.used = used
        self.allocated = allocated
        if allocated is None:
            message = (
                f"Number of steps must be at least the ratio of the {builtin} builtin"
            )
        else:
            message = (
                f"The {builtin} builtin used {used} cells but the capacity is {allocated}"
            )
        super().__init__(message)


# Program


class ProgramError(CairoVmError):
    """Raised on malformed programs or entrypoints."""

    pass


class DisorderedBuiltinsError(ProgramError):
    def __init__(self, builtins: Sequence[str]):
        self.builtins = list(builtins)
        super().__init__(
            f"Given builtins are not in appropriate order: {self.builtins}"
        )


class UnsupportedBuiltinError(ProgramError):
    def __init__(self, builtin: str):
        self.builtin = builtin
        super().__init__(f"Builtin {builtin} is not supported")


class BuiltinNotInLayoutError(ProgramError):
    def __init__(self, builtin: str, layout: str):
        self.builtin = builtin
        self.layout = layout
        super().__init__(f"Builtin {builtin} is not present in layout {layout}")


class UnknownLayoutError(ProgramError):
    def __init__(self, layout: str):
        self.layout = layout
        super().__init__(f"Unknown layout: {layout}")


class EntrypointNotFoundError(ProgramError):
    def __init__(self, entrypoint: str):
        self.entrypoint = entrypoint
        super().__init__(f"Entrypoint {entrypoint} not found")


class MissingMainError(ProgramError):
    def __init__(self):
        super().__init__("Missing main()")


class UnsupportedPrimeError(ProgramError):
    def __init__(self, prime: int):
        self.prime = prime
        super().__init__(f"Unsupported prime {prime:#x}")


class InvalidInstructionError(ProgramError):
    def __init__(self, encoding: Any, reason: str):
        self.encoding = encoding
        self.reason = reason
        super().__init__(f"Invalid instruction encoding {encoding}: {reason}")


# Step


class StepError(CairoVmError):
    """Raised when a VM step cannot be executed."""

    pass


class UnknownOperandError(StepError):
    def __init__(self, operand: str, address: Any):
        self.operand = operand
        self.address = address
        super().__init__(f"Failed to compute or deduce {operand} at address {address}")


class AssertEqFailedError(StepError):
    def __init__(self, dst: Any, res: Any):
        self.dst = dst
        self.res = res
        super().__init__(f"An ASSERT_EQ instruction failed: {dst} != {res}.")


class CallInconsistentError(StepError):
    def __init__(self, operand: str, value: Any, expected: Any):
        self.operand = operand
        self.value = value
        self.expected = expected
        super().__init__(
            f"Call failed to write {operand}: {value} != {expected}"
        )


class PureValueError(StepError):
    def __init__(self, operation: str, value: Any):
        self.operation = operation
        self.value = value
        super().__init__(f"Could not complete computation {operation} on {value}")


class UnconstrainedResError(StepError):
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Res.UNCONSTRAINED cannot be used with {operation}")


class InconsistentAutoDeductionError(StepError):
    def __init__(self, builtin: str, address: Any, expected: Any, actual: Any):
        self.builtin = builtin
        self.address = address
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Inconsistent auto-deduction for builtin {builtin} at {address}, "
            f"expected {expected}, got {actual}"
        )


# Runner


class RunnerError(CairoVmError):
    """Raised when the runner is driven out of order."""

    pass


class EndOfProgramNotReachedError(RunnerError):
    def __init__(self, pc: Any, final_pc: Any):
        self.pc = pc
        self.final_pc = final_pc
        super().__init__(
            f"End of program was not reached: pc is {pc}, expected {final_pc}"
        )


class EndOfProgramError(RunnerError):
    def __init__(self, remaining_steps: int):
        self.remaining_steps = remaining_steps
        super().__init__(
            f"Execution reached the end of the program. Requested remaining steps: {remaining_steps}."
        )


class EndRunCalledTwiceError(RunnerError):
    def __init__(self):
        super().__init__("end_run called twice")


class OutOfBoundsBuiltinSegmentAccessError(RunnerError):
    def __init__(self, builtin: str, address: Any, stop_ptr: int):
        self.builtin = builtin
        self.address = address
        self.stop_ptr = stop_ptr
        super().__init__(
            f"{builtin} builtin segment accessed at {address}, beyond its stop pointer {stop_ptr}"
        )


class RunNotFinishedError(RunnerError):
    def __init__(self):
        super().__init__("end_run must be called before this operation")


class RunnerNotInitializedError(RunnerError):
    def __init__(self, missing: str):
        self.missing = missing
        super().__init__(f"Runner is not initialized: {missing} is not set")


# Trace


class TraceError(CairoVmError):
    """Raised on trace relocation issues."""

    pass


class AlreadyRelocatedError(TraceError):
    def __init__(self):
        super().__init__("Trace and memory were already relocated")


class TraceNotEnabledError(TraceError):
    def __init__(self):
        super().__init__("Tracing is disabled for this run")


# Hints


class HintError(CairoVmError):
    """Raised by hint processors."""

    pass


class MissingHintProcessorError(HintError):
    def __init__(self, pc: Any):
        self.pc = pc
        super().__init__(f"Hints found at pc {pc} but no hint processor is set")


class VariableNotInScopeError(HintError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Variable {name} is not in scope")


class ExitMainScopeError(HintError):
    def __init__(self):
        super().__init__("Cannot exit the main scope")
