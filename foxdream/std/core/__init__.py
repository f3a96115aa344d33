import time
from typing import Any, List

from foxdream.builtin_function import BuiltinFunction
from foxdream.environment import Environment
from foxdream.types import ArrayVal

VERSION = '1.0'
AUTHOR = 'FoxDream authors'


def populate_core_environment(env: Environment) -> Environment:
    """Bind the core constants, prototypes and functions into ``env``."""

    def std_alltrim(args: List[Any]) -> Any:
        value = args[0]
        return value.strip() if isinstance(value, str) else None

    def std_len(args: List[Any]) -> Any:
        value = args[0]
        return float(len(value)) if isinstance(value, str) else 0.0

    def std_tick(args: List[Any]) -> Any:
        return time.time()

    def std_tack(args: List[Any]) -> Any:
        return time.time() - args[0]

    env.define('_VERSION', VERSION, constant=True)
    env.define('_AUTHOR', AUTHOR, constant=True)
    env.define('empty', Environment(), constant=True)
    env.define('array', ArrayVal(), constant=True)
    env.define('alltrim', BuiltinFunction('alltrim', ['String'], std_alltrim), constant=True)
    env.define('len', BuiltinFunction('len', ['String'], std_len, check_types=False), constant=True)
    env.define('tick', BuiltinFunction('tick', [], std_tick), constant=True)
    env.define('tack', BuiltinFunction('tack', ['Double'], std_tack), constant=True)
    return env
