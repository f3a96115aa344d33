from typing import Any, Dict, Optional

from .errors import FoxRuntimeError
from .types import ValueTag


class Environment:
    """A scope mapping case-insensitive names to values.

    Scopes chain to an enclosing parent; the global scope has none.  A
    scope is also a runtime value: ``obj.name`` on a scope looks the name
    up in it.  Names may be given as plain strings or as scanner tokens;
    tokens are used to position any error raised.
    """
    tag = ValueTag.SCOPE

    def __init__(self, parent: Optional['Environment'] = None):
        self.parent = parent
        self.values: Dict[str, Any] = {}
        self.consts: Dict[str, bool] = {}

    def resolve(self, name: str) -> Optional['Environment']:
        """Return the scope in the chain that binds ``name``, if any."""
        key = name.lower()
        env: Optional[Environment] = self
        while env is not None:
            if key in env.values:
                return env
            env = env.parent
        return None

    def is_constant(self, name: str) -> bool:
        owner = self.resolve(name)
        return owner is not None and owner.consts.get(name.lower(), False)

    def define(self, name: str, value: Any, constant: bool = False, token: Any = None):
        if self.is_constant(name):
            raise FoxRuntimeError(token or name, f"Constants cannot be redefined `{name}`")
        key = name.lower()
        self.values[key] = value
        self.consts[key] = constant

    def assign(self, name: str, value: Any, token: Any = None):
        owner = self.resolve(name)
        if owner is None:
            self.define(name, value, token=token)
            return
        key = name.lower()
        if owner.consts.get(key, False):
            raise FoxRuntimeError(token or name, f"Invalid constant assignment `{name}`")
        owner.values[key] = value

    def lookup(self, name: str, token: Any = None) -> Any:
        owner = self.resolve(name)
        if owner is None:
            raise FoxRuntimeError(token or name, f"Undefined variable `{name}`.")
        return owner.values[name.lower()]

    def release(self, name: str):
        owner = self.resolve(name)
        if owner is not None:
            key = name.lower()
            del owner.values[key]
            owner.consts.pop(key, None)
