"""Database connector objects exposed to FoxDream scripts.

A ``Connection`` is a scope, so scripts set its properties with member
assignment (``conn.server = "localhost"``) before calling ``connect()``.
Drivers follow the Python DB-API and are imported only when a
connection for their provider is opened.
"""

import importlib
import re
from decimal import Decimal
from typing import Any, List, Optional

from foxdream.environment import Environment
from foxdream.errors import FoxRuntimeError
from foxdream.types import ArgValue, CallableValue, ValueTag, is_number, method_name, to_string

MYSQL = 1.0
MSSQL = 2.0
SQLITE = 3.0

DRIVERS = {MYSQL: 'pymysql', MSSQL: 'pymssql', SQLITE: 'sqlite3'}

TABLE_NAME = re.compile(r'^[A-Za-z_][\w.]*$')


def to_value(value: Any) -> Any:
    """Convert a DB-API column value to a FoxDream value."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, (bytes, bytearray)):
        return value.decode('utf-8', errors='replace')
    return str(value)


def load_driver(token: Any, provider: Any) -> Any:
    module_name = DRIVERS.get(float(provider)) if is_number(provider) else None
    if module_name is None:
        raise FoxRuntimeError(token, f"Unsupported database provider: {to_string(provider)}")
    try:
        return importlib.import_module(module_name)
    except ImportError:
        raise FoxRuntimeError(token, f"Database driver `{module_name}` is not installed.")


class Cursor(CallableValue):
    """Forward-only cursor positioned on the first row when opened."""
    tag = ValueTag.CURSOR
    METHODS = ('close', 'skip', 'eof')

    def __init__(self, db_cursor: Any):
        self.db_cursor = db_cursor
        self.columns = [str(d[0]).lower() for d in (db_cursor.description or [])]
        self.row = db_cursor.fetchone()
        self.closed = False

    def __str__(self) -> str:
        return 'Object(Cursor)'

    def arity(self) -> int:
        return 0

    def validate_arguments(self) -> bool:
        return False

    def lookup(self, name: str, token: Any = None) -> Any:
        key = name.lower()
        if key in self.columns:
            if self.row is None:
                raise FoxRuntimeError(token or name, "The cursor has no current row.")
            return to_value(self.row[self.columns.index(key)])
        if key in self.METHODS:
            return self
        raise FoxRuntimeError(token or name, f"Column `{name}` not found.")

    def call(self, interpreter: Any, arguments: List[ArgValue], callee: Any) -> Any:
        token = getattr(callee, 'token', None)
        name = method_name(callee)
        if name == 'close':
            if not self.closed:
                self.db_cursor.close()
                self.closed = True
            self.row = None
            return True
        if name == 'skip':
            if self.closed:
                raise FoxRuntimeError(token, "The cursor is closed.")
            self.row = self.db_cursor.fetchone()
            return self.row is not None
        if name == 'eof':
            return self.row is None
        raise FoxRuntimeError(token, "Function not defined for this data type.")


class ConnectionMethod(CallableValue):
    """``connect``, ``open`` and ``disconnect`` bound to one connection."""

    def __init__(self, connection: 'Connection'):
        self.connection = connection

    def __str__(self) -> str:
        return 'fn(connection)'

    def arity(self) -> int:
        return 0

    def validate_arguments(self) -> bool:
        return False

    def call(self, interpreter: Any, arguments: List[ArgValue], callee: Any) -> Any:
        token = getattr(callee, 'token', None)
        name = method_name(callee)
        values = [a.value for a in arguments]
        if name == 'connect':
            return self.connection.connect(token)
        if name == 'disconnect':
            return self.connection.disconnect(token)
        if name == 'open':
            if len(values) != 1 or not isinstance(values[0], str):
                raise FoxRuntimeError(token, "open() expects a table name.")
            return self.connection.open(token, values[0])
        raise FoxRuntimeError(token, "Function not defined for this data type.")


class Connection(Environment):
    tag = ValueTag.CONNECTION

    def __init__(self):
        super().__init__()
        self.handle: Optional[Any] = None
        self.define('provider', None)
        for prop in ('server', 'database', 'user', 'password'):
            self.define(prop, '')
        self.define('port', None)
        methods = ConnectionMethod(self)
        for name in ('connect', 'disconnect', 'open'):
            self.define(name, methods, constant=True)

    def __str__(self) -> str:
        return 'Object(Connection)'

    def setting(self, name: str) -> Any:
        value = self.values.get(name)
        return None if value == '' else value

    def connect(self, token: Any) -> bool:
        if self.handle is not None:
            return True
        provider = self.setting('provider')
        database = self.setting('database')
        port = self.setting('port')
        if database is not None and not isinstance(database, str):
            raise FoxRuntimeError(token, "The database property must be a string.")
        if port is not None and not is_number(port):
            raise FoxRuntimeError(token, "The port property must be a number.")
        driver = load_driver(token, provider)
        try:
            if float(provider) == SQLITE:
                self.handle = driver.connect(database or ':memory:')
            else:
                options = {
                    'user': self.setting('user'),
                    'password': self.setting('password'),
                    'database': database,
                }
                if port is not None:
                    options['port'] = int(float(port))
                if float(provider) == MYSQL:
                    options['host'] = self.setting('server') or 'localhost'
                else:
                    options['server'] = self.setting('server') or 'localhost'
                self.handle = driver.connect(**options)
        except (driver.Error, TypeError, ValueError, OverflowError) as exc:
            raise FoxRuntimeError(token, f"Connection failed: {exc}")
        return True

    def disconnect(self, token: Any) -> bool:
        if self.handle is None:
            raise FoxRuntimeError(token, "The connection object is not connected.")
        self.handle.close()
        self.handle = None
        return True

    def open(self, token: Any, table: str) -> Cursor:
        if self.handle is None:
            raise FoxRuntimeError(token, "The connection object is not connected.")
        if not TABLE_NAME.match(table):
            raise FoxRuntimeError(token, f"Invalid table name: {table}")
        db_cursor = self.handle.cursor()
        try:
            db_cursor.execute(f"select * from {table}")
        except Exception as exc:
            db_cursor.close()
            raise FoxRuntimeError(token, f"Query failed: {exc}")
        return Cursor(db_cursor)
