import dataclasses
import logging
from abc import ABC, abstractmethod
from types import CodeType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

from cairo_vm.hints.decorator import implementations
from cairo_vm.vm.errors import ExitMainScopeError, VariableNotInScopeError
from cairo_vm.vm.felt import Felt

if TYPE_CHECKING:
    from cairo_vm.vm.vm_core import VirtualMachine

logger = logging.getLogger(__name__)


class ExecutionScopes:
    """Stack of variable scopes shared by the hints of a run."""

    def __init__(self):
        self.data: List[Dict[str, Any]] = [{}]

    def enter_scope(self, new_scope_locals: Optional[Dict[str, Any]] = None) -> None:
        self.data.append(dict(new_scope_locals or {}))

    def exit_scope(self) -> None:
        if len(self.data) == 1:
            raise ExitMainScopeError()
        self.data.pop()

    def get_local_variables(self) -> Dict[str, Any]:
        return self.data[-1]

    def get(self, name: str) -> Any:
        scope = self.get_local_variables()
        if name not in scope:
            raise VariableNotInScopeError(name)
        return scope[name]

    def assign_or_update_variable(self, name: str, value: Any) -> None:
        self.get_local_variables()[name] = value

    def delete_variable(self, name: str) -> None:
        self.get_local_variables().pop(name, None)


class HintProcessor(ABC):
    """Compiles hint code once, then executes it each time its pc is reached."""

    @abstractmethod
    def compile_hint(
        self,
        code: str,
        accessible_scopes: Sequence[str],
        constants: Mapping[str, Felt],
    ) -> Any:
        pass

    @abstractmethod
    def execute_hint(
        self,
        vm: "VirtualMachine",
        exec_scopes: ExecutionScopes,
        hint_data: Any,
        constants: Mapping[str, Felt],
    ) -> None:
        pass


@dataclasses.dataclass
class CompiledHint:
    code: str
    compiled: CodeType
    accessible_scopes: List[str] = dataclasses.field(default_factory=list)


class PythonHintProcessor(HintProcessor):
    """
    Runs hints as Python code.

    A hint whose code is the name of a registered implementation runs that
    implementation instead. Hints see the VM state through the names `memory`,
    `segments`, `ap`, `fp`, `pc`, `current_step`, `constants` and `vm`, plus the
    variables of the current execution scope.
    """

    def __init__(self, static_locals: Optional[Dict[str, Any]] = None):
        # Registers the default hint implementations.
        import cairo_vm.hints.builtin  # noqa: F401

        self.static_locals = dict(static_locals or {})

    def compile_hint(
        self,
        code: str,
        accessible_scopes: Sequence[str] = (),
        constants: Optional[Mapping[str, Felt]] = None,
    ) -> CompiledHint:
        source = implementations.get(code.strip(), code)
        return CompiledHint(
            code=code,
            compiled=compile(source, f"<hint: {code.strip()[:40]}>", "exec"),
            accessible_scopes=list(accessible_scopes),
        )

    def execute_hint(
        self,
        vm: "VirtualMachine",
        exec_scopes: ExecutionScopes,
        hint_data: CompiledHint,
        constants: Mapping[str, Felt],
    ) -> None:
        exec_locals = exec_scopes.get_local_variables()
        injected = {
            "memory": vm.memory,
            "segments": vm.segments,
            "ap": vm.ap,
            "fp": vm.fp,
            "pc": vm.pc,
            "current_step": vm.current_step,
            "constants": constants,
            "vm": vm,
            "vm_enter_scope": exec_scopes.enter_scope,
            "vm_exit_scope": exec_scopes.exit_scope,
            **self.static_locals,
        }
        exec_locals.update(injected)
        logger.debug(f"Executing hint at {vm.pc}: {hint_data.code}")
        try:
            exec(hint_data.compiled, exec_locals)
        finally:
            # The scope may have changed while the hint ran.
            for name in injected:
                exec_locals.pop(name, None)
            exec_locals.pop("__builtins__", None)
