"""Runtime value model for FoxDream.

Values are plain Python objects where possible: ``None`` is null,
``bool`` and ``float`` are booleans and numbers, ``str`` is a string and
a tuple is the multi-value result of ``return a, b``.  Arrays, scopes,
functions, classes and host objects are represented by classes that
carry a ``tag`` attribute naming their ``ValueTag``.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from .errors import FoxRuntimeError


class ValueTag(Enum):
    """Closed set of runtime value kinds, valued by their runtime type name."""
    NULL = 'null'
    BOOLEAN = 'Boolean'
    NUMBER = 'Double'
    STRING = 'String'
    LIST = 'List'
    ARRAY = 'RuntimeArray'
    FUNCTION = 'RuntimeFunction'
    BUILTIN = 'BuiltinFunction'
    CLASS = 'RuntimeClass'
    SCOPE = 'Environment'
    CONNECTION = 'RuntimeConnection'
    CURSOR = 'RuntimeCursor'
    CALLABLE = 'Callable'


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def tag_of(value: Any) -> ValueTag:
    if value is None:
        return ValueTag.NULL
    if isinstance(value, bool):
        return ValueTag.BOOLEAN
    if is_number(value):
        return ValueTag.NUMBER
    if isinstance(value, str):
        return ValueTag.STRING
    if isinstance(value, tuple):
        return ValueTag.LIST
    tag = getattr(value, 'tag', None)
    if isinstance(tag, ValueTag):
        return tag
    raise TypeError(f"not a FoxDream value: {value!r}")


def type_name(value: Any) -> str:
    return tag_of(value).value


def is_compatible(value: Any, expected: str) -> bool:
    """Builtin argument check: the value's runtime type name contains ``expected``.

    The match is a substring test on purpose, so ``"Array"`` accepts arrays
    and ``"Function"`` accepts both user functions and builtins.
    """
    return expected in type_name(value)


def format_number(value: float) -> str:
    """Shortest decimal text, switching to ``1.5E7`` form outside [1e-3, 1e7)."""
    value = float(value)
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    if value == 0 or 1e-3 <= abs(value) < 1e7:
        text = repr(value)
        if text.endswith('.0'):
            text = text[:-2]
        return text
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    mantissa = ''.join(str(d) for d in digits)
    power = exponent + len(digits) - 1
    return f"{'-' if sign else ''}{mantissa[0]}.{mantissa[1:] or '0'}E{power}"


def to_string(value: Any) -> str:
    """Render a value the way ``print`` shows it."""
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, tuple):
        return '[' + ', '.join(to_string(v) for v in value) + ']'
    if getattr(value, 'tag', None) is ValueTag.SCOPE:
        items = ', '.join(f"{k}:{to_string(v)}" for k, v in value.values.items())
        return '{' + items + '}'
    return str(value)


# Decimal spellings accepted when coercing the right operand of `+`.
DECIMAL_TEXT = re.compile(r'\s*[+-]?(NaN|Infinity|(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?[fFdD]?)\s*')


def parse_decimal(text: str) -> Optional[float]:
    if DECIMAL_TEXT.fullmatch(text) is None:
        return None
    return float(text.strip().rstrip('fFdD'))


def number_text(value: Any) -> str:
    """Text used when coercing a non-number right operand of ``+``."""
    if isinstance(value, bool):
        return '1' if value else '0'
    if value is None:
        return '0'
    return to_string(value)


def is_truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return True


def is_equal(a: Any, b: Any) -> bool:
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) and is_number(b):
        return a == b
    if isinstance(a, (str, tuple)) and isinstance(b, (str, tuple)):
        return a == b
    return a is b


@dataclass
class ArgValue:
    """An evaluated call argument; ``name`` is the alias for named arguments."""
    token: Any
    name: Optional[str]
    value: Any


class CallableValue(ABC):
    """Uniform invocation contract shared by every callable runtime value."""
    tag = ValueTag.CALLABLE

    @abstractmethod
    def arity(self) -> int:
        ...

    def param_info(self) -> Optional[List[str]]:
        return None

    def validate_arguments(self) -> bool:
        return True

    @abstractmethod
    def call(self, interpreter: Any, arguments: List[ArgValue], callee: Any) -> Any:
        ...


def method_name(callee: Any) -> Optional[str]:
    """The lower-cased property name when ``callee`` is a ``obj.name`` member."""
    prop = getattr(callee, 'prop', None)
    if prop is None or getattr(callee, 'computed', True):
        return None
    return str(prop.token).lower()


class ArrayVal(CallableValue):
    """Ordered mutable array; calling ``arr.method(...)`` dispatches on the method name."""
    tag = ValueTag.ARRAY

    def __init__(self, elements: Optional[List[Any]] = None):
        self.elements: List[Any] = elements if elements is not None else []

    def __str__(self) -> str:
        return '[' + ', '.join(to_string(v) for v in self.elements) + ']'

    def arity(self) -> int:
        return len(self.elements)

    def validate_arguments(self) -> bool:
        return False

    def index_of(self, value: Any) -> int:
        for i, element in enumerate(self.elements):
            if is_equal(element, value):
                return i
        return -1

    def check_index(self, token: Any, index: Any) -> int:
        if not is_number(index) or not math.isfinite(index) or int(index) != index:
            raise FoxRuntimeError(token, "Invalid argument type for this function, expecting integer.")
        position = int(index)
        if position < 0 or position >= len(self.elements):
            raise FoxRuntimeError(token, f"Index {position} out of bounds for length {len(self.elements)}")
        return position

    def call(self, interpreter: Any, arguments: List[ArgValue], callee: Any) -> Any:
        token = getattr(callee, 'token', None)
        name = method_name(callee)
        values = [a.value for a in arguments]

        def expect(count: int):
            if len(values) != count:
                raise FoxRuntimeError(token, f"Wrong number of arguments, expected: {count}, got: {len(values)}")

        if name == 'add':
            expect(1)
            self.elements.append(values[0])
            return True
        if name == 'remove':
            expect(1)
            position = self.index_of(values[0])
            if position < 0:
                return False
            del self.elements[position]
            return True
        if name == 'contains':
            expect(1)
            return self.index_of(values[0]) >= 0
        if name == 'get':
            expect(1)
            return self.elements[self.check_index(token, values[0])]
        if name == 'set':
            expect(2)
            position = self.check_index(token, values[0])
            previous = self.elements[position]
            self.elements[position] = values[1]
            return previous
        if name == 'len':
            if values:
                raise FoxRuntimeError(token, "Unexpected arguments.")
            return float(len(self.elements))
        if name == 'indexof':
            expect(1)
            return float(self.index_of(values[0]))
        raise FoxRuntimeError(token, "Function not defined for this data type.")
