from foxdream.environment import Environment

from .connection import MSSQL, MYSQL, SQLITE, Connection, Cursor


def populate_db_environment(env: Environment) -> Environment:
    """Register the provider ids and the shared ``connection`` prototype."""
    env.define('_MYSQL', MYSQL, constant=True)
    env.define('_MSSQL', MSSQL, constant=True)
    env.define('_SQLITE', SQLITE, constant=True)
    env.define('connection', Connection(), constant=True)
    return env


__all__ = ['populate_db_environment', 'Connection', 'Cursor']
