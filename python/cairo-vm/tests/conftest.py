import json

import pytest
from hypothesis import strategies as st
from starkware.cairo.lang.compiler.program import Program as SWProgram
from starkware.cairo.lang.vm.relocatable import RelocatableValue

import cairo_vm.testing.strategies  # noqa: F401 registers type strategies
from cairo_vm.compiler import compile_source
from cairo_vm.vm.felt import PRIME
from cairo_vm.vm.program import Program

st.register_type_strategy(
    RelocatableValue,
    st.fixed_dictionaries(
        {
            "segment_index": st.integers(
                min_value=0, max_value=2**RelocatableValue.SEGMENT_BITS - 1
            ),
            "offset": st.integers(
                min_value=0, max_value=2**RelocatableValue.OFFSET_BITS - 1
            ),
        }
    ).map(lambda x: RelocatableValue(**x)),
)


@pytest.fixture(scope="session")
def cairo_content():
    return """
func main() {
    get_values();

    return ();
}

func get_values() -> (felt, felt, felt) {
    return (1, 2, 3);
}
"""


@pytest.fixture(scope="session")
def sw_program(cairo_content):
    return compile_source(cairo_content)


@pytest.fixture(scope="module")
def program_bytes(sw_program: SWProgram):
    return json.dumps(sw_program.Schema().dump(sw_program)).encode()


@pytest.fixture
def program(program_bytes):
    return Program.from_bytes(program_bytes)


@pytest.fixture(scope="session")
def output_sw_program():
    return compile_source(
        """
%builtins output

func main{output_ptr: felt*}() {
    assert [output_ptr] = 1;
    assert [output_ptr + 1] = 17;
    let output_ptr = output_ptr + 2;
    return ();
}
"""
    )


@pytest.fixture
def output_program(output_sw_program):
    return Program.from_sw_program(output_sw_program)


# Hand-assembled programs, together with their expected executions.


@pytest.fixture
def function_call_program():
    """
    func mul_by_2(n) -> felt { return n * 2; }

    func main() { mul_by_2(2); return (); }
    """
    return Program(
        data=[
            5207990763031199744,
            2,
            2345108766317314046,
            5189976364521848832,
            1,
            1226245742482522112,
            PRIME - 5,
            2345108766317314046,
        ],
        main=3,
    )


@pytest.fixture
def output_builtin_program():
    """Writes 1 then 17 to the output builtin through a serialize_word helper."""
    return Program(
        data=[
            4612671182993129469,
            5198983563776393216,
            1,
            2345108766317314046,
            5191102247248822272,
            5189976364521848832,
            1,
            1226245742482522112,
            PRIME - 7,
            5189976364521848832,
            17,
            1226245742482522112,
            PRIME - 11,
            2345108766317314046,
        ],
        builtins=["output"],
        main=4,
    )


@pytest.fixture
def range_check_program():
    """Checks that 0 <= 7 < 2**64 by range checking 7 and 2**64 - 1 - 7."""
    return Program(
        data=[
            4612671182993129469,
            5189976364521848832,
            18446744073709551615,
            5199546496550207487,
            4612389712311386111,
            5198983563776393216,
            2,
            2345108766317314046,
            5191102247248822272,
            5189976364521848832,
            7,
            1226245742482522112,
            PRIME - 11,
            2345108766317314046,
        ],
        builtins=["range_check"],
        main=8,
    )
