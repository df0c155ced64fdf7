"""
Programs as the runner consumes them.

Compiled programs are parsed with cairo-lang's `Program` schema and flattened
into plain Python values: the bytecode as field elements, the declared
builtins, the entrypoint offset, named constants and hints keyed by pc offset.
"""

import dataclasses
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from starkware.cairo.lang.compiler.identifier_definition import (
    ConstDefinition,
    LabelDefinition,
)
from starkware.cairo.lang.compiler.identifier_manager import MissingIdentifierError
from starkware.cairo.lang.compiler.program import Program as SWProgram

from cairo_vm.vm.errors import EntrypointNotFoundError, UnsupportedPrimeError
from cairo_vm.vm.felt import PRIME, Felt
from cairo_vm.vm.relocatable import MaybeRelocatable, to_maybe_relocatable

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class HintParams:
    code: str
    accessible_scopes: List[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class Program:
    data: List[MaybeRelocatable]
    builtins: List[str] = dataclasses.field(default_factory=list)
    main: Optional[int] = None
    hints: Dict[int, List[HintParams]] = dataclasses.field(default_factory=dict)
    constants: Dict[str, Felt] = dataclasses.field(default_factory=dict)
    labels: Dict[str, int] = dataclasses.field(default_factory=dict)
    start: Optional[int] = None
    end: Optional[int] = None
    prime: int = PRIME

    def __post_init__(self):
        self.data = [to_maybe_relocatable(value) for value in self.data]

    @property
    def data_len(self) -> int:
        return len(self.data)

    def get_label(self, name: str) -> int:
        if name not in self.labels:
            raise EntrypointNotFoundError(name)
        return self.labels[name]

    def get_constants(self) -> Dict[str, Felt]:
        return dict(self.constants)

    @classmethod
    def from_sw_program(
        cls, sw_program: SWProgram, entrypoint: Optional[str] = "main"
    ) -> "Program":
        if sw_program.prime != PRIME:
            raise UnsupportedPrimeError(sw_program.prime)

        main = None
        if entrypoint is not None:
            try:
                main = sw_program.get_label(entrypoint)
            except MissingIdentifierError:
                raise EntrypointNotFoundError(entrypoint) from None

        constants: Dict[str, Felt] = {}
        labels: Dict[str, int] = {}
        for name, definition in sw_program.identifiers.as_dict().items():
            if isinstance(definition, ConstDefinition):
                constants[str(name)] = Felt(definition.value)
            elif isinstance(definition, LabelDefinition):
                labels[str(name)] = definition.pc
                labels.setdefault(name.path[-1], definition.pc)

        hints = {
            pc: [
                HintParams(
                    code=hint.code,
                    accessible_scopes=[str(scope) for scope in hint.accessible_scopes],
                )
                for hint in pc_hints
            ]
            for pc, pc_hints in sw_program.hints.items()
        }

        return cls(
            data=list(sw_program.data),
            builtins=list(sw_program.builtins),
            main=main,
            hints=hints,
            constants=constants,
            labels=labels,
            start=labels.get("__start__"),
            end=labels.get("__end__"),
            prime=sw_program.prime,
        )

    @classmethod
    def from_bytes(
        cls, data: Union[bytes, str], entrypoint: Optional[str] = "main"
    ) -> "Program":
        sw_program = SWProgram.Schema().loads(data)
        return cls.from_sw_program(sw_program, entrypoint=entrypoint)

    @classmethod
    def load(cls, path: Path, entrypoint: Optional[str] = "main") -> "Program":
        logger.debug(f"Loading program from {path}")
        return cls.from_bytes(Path(path).read_text(), entrypoint=entrypoint)
