"""Binary encodings of the relocated trace and memory, as read by the prover."""

from typing import BinaryIO, Optional, Sequence

from cairo_vm.vm.felt import Felt
from cairo_vm.vm.vm_core import TraceEntry

U64_BYTES = 8


def write_binary_trace(stream: BinaryIO, relocated_trace: Sequence[TraceEntry[int]]) -> None:
    """Each entry is ap, fp and pc as little-endian u64."""
    for entry in relocated_trace:
        for register in (entry.ap, entry.fp, entry.pc):
            stream.write(register.to_bytes(U64_BYTES, "little"))


def write_binary_memory(
    stream: BinaryIO, relocated_memory: Sequence[Optional[Felt]]
) -> None:
    """Each written cell is its address as a little-endian u64 followed by its value."""
    for address, value in enumerate(relocated_memory):
        if value is None:
            continue
        stream.write(address.to_bytes(U64_BYTES, "little"))
        stream.write(Felt(value).to_bytes_le())
