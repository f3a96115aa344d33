# FoxDream language package
# A scanner, parser and tree-walking interpreter for an xBase flavored scripting language.
from .errors import FoxError, FoxRuntimeError, FoxSyntaxError
from .interpreter import Interpreter, run_program
from .parser import parse, parse_program
from .resolver import FileResolver

__all__ = [
    'run_program',
    'parse',
    'parse_program',
    'Interpreter',
    'FileResolver',
    'FoxError',
    'FoxSyntaxError',
    'FoxRuntimeError',
]
