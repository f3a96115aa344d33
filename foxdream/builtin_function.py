from dataclasses import dataclass, field
from typing import Any, List, Optional

from .errors import FoxRuntimeError
from .types import ArgValue, CallableValue, ValueTag, is_compatible, type_name


@dataclass
class BuiltinFunction(CallableValue):
    """A host function. ``fn`` receives the list of argument values.

    Arguments are checked for count first and then, when ``check_types`` is
    set, against ``params`` with the permissive ``is_compatible`` rule.
    """
    name: str
    params: List[str]
    fn: Any
    check_types: bool = True
    tag: ValueTag = field(default=ValueTag.BUILTIN, init=False, repr=False)

    def __str__(self) -> str:
        return f"fn({self.name})"

    def arity(self) -> int:
        return len(self.params)

    def param_info(self) -> Optional[List[str]]:
        return self.params

    def check_arguments(self, token: Any, arguments: List[ArgValue]):
        if len(arguments) != self.arity():
            raise FoxRuntimeError(token, f"Wrong number of arguments, expected: {self.arity()}, got: {len(arguments)}")
        if not self.check_types:
            return
        for expected, arg in zip(self.params, arguments):
            if not is_compatible(arg.value, expected):
                raise FoxRuntimeError(arg.token, f"Wrong argument type, expected: {expected}, got: {type_name(arg.value)}")

    def call(self, interpreter: Any, arguments: List[ArgValue], callee: Any) -> Any:
        self.check_arguments(getattr(callee, 'token', None), arguments)
        return self.fn([a.value for a in arguments])
