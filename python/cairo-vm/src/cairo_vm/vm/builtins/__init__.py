from typing import Dict, Type

from cairo_vm.vm.builtins.base import BuiltinRunner
from cairo_vm.vm.builtins.bitwise import BitwiseBuiltinRunner
from cairo_vm.vm.builtins.ec_op import EcOpBuiltinRunner
from cairo_vm.vm.builtins.hash import HashBuiltinRunner
from cairo_vm.vm.builtins.output import OutputBuiltinRunner
from cairo_vm.vm.builtins.poseidon import PoseidonBuiltinRunner
from cairo_vm.vm.builtins.range_check import RangeCheckBuiltinRunner

BUILTIN_RUNNERS: Dict[str, Type[BuiltinRunner]] = {
    runner.name: runner
    for runner in (
        OutputBuiltinRunner,
        HashBuiltinRunner,
        RangeCheckBuiltinRunner,
        BitwiseBuiltinRunner,
        EcOpBuiltinRunner,
        PoseidonBuiltinRunner,
    )
}

__all__ = [
    "BUILTIN_RUNNERS",
    "BitwiseBuiltinRunner",
    "BuiltinRunner",
    "EcOpBuiltinRunner",
    "HashBuiltinRunner",
    "OutputBuiltinRunner",
    "PoseidonBuiltinRunner",
    "RangeCheckBuiltinRunner",
]
