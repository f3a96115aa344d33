from dataclasses import dataclass
from typing import Any, List, Optional


@dataclass
class ErrorVal:
    """A diagnostic: error kind, message and where it happened."""
    name: str
    message: str
    line: int = 0
    column: int = 0
    lexeme: str = ''

    @classmethod
    def at(cls, token: Any, name: str, message: str) -> 'ErrorVal':
        if token is None:
            return cls(name, message)
        return cls(name, message, getattr(token, 'line', 0) or 0,
                   getattr(token, 'column', 0) or 0, str(token))


class FoxError(Exception):
    """Exception type used to propagate FoxDream errors."""
    def __init__(self, err: ErrorVal):
        super().__init__(f"{err.name}: {err.message}")
        self.err = err


class FoxSyntaxError(FoxError):
    """Raised once parsing finishes with one or more syntax errors."""
    def __init__(self, errors: List[ErrorVal]):
        super().__init__(errors[0])
        self.errors = errors


class FoxRuntimeError(FoxError):
    def __init__(self, token: Any, message: str):
        super().__init__(ErrorVal.at(token, 'RuntimeError', message))
        self.token = token


class Signal:
    """Base class of the non-error results returned by statement execution."""


class ReturnSignal(Signal):
    def __init__(self, value: Optional[Any] = None):
        self.value = value


class LoopSignal(Signal):
    pass


class ExitSignal(Signal):
    pass
