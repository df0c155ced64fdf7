from cairo_vm.hints.decorator import implementations, register_hint
from cairo_vm.hints.processor import (
    CompiledHint,
    ExecutionScopes,
    HintProcessor,
    PythonHintProcessor,
)

__all__ = [
    "CompiledHint",
    "ExecutionScopes",
    "HintProcessor",
    "PythonHintProcessor",
    "implementations",
    "register_hint",
]
