import os
from pathlib import Path
from typing import Union

from starkware.cairo.lang.cairo_constants import DEFAULT_PRIME
from starkware.cairo.lang.compiler.cairo_compile import compile_cairo, get_module_reader
from starkware.cairo.lang.compiler.constants import LIBS_DIR_ENVVAR
from starkware.cairo.lang.compiler.preprocessor.default_pass_manager import (
    default_pass_manager,
)
from starkware.cairo.lang.compiler.program import Program


def compile_source(
    code: str,
    debug_info: bool = False,
    proof_mode: bool = False,
    prime: int = DEFAULT_PRIME,
) -> Program:
    module_reader = get_module_reader(
        cairo_path=[path for path in os.getenv(LIBS_DIR_ENVVAR, "").split(":") if path]
    )

    pass_manager = default_pass_manager(prime=prime, read_module=module_reader.read)

    return compile_cairo(
        code,
        pass_manager=pass_manager,
        debug_info=debug_info,
        add_start=proof_mode,
    )


def cairo_compile(
    path: Union[str, Path],
    debug_info: bool = False,
    proof_mode: bool = False,
    prime: int = DEFAULT_PRIME,
) -> Program:
    return compile_source(
        Path(path).read_text(),
        debug_info=debug_info,
        proof_mode=proof_mode,
        prime=prime,
    )
