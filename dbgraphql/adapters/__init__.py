from __future__ import annotations

from enum import Enum
from typing import Dict, Type

from sqlalchemy.ext.asyncio import AsyncEngine

from ..errors import ConfigurationError
from .base import DatabaseDriver
from .sqlite import SQLiteDriver
from .postgres import PostgresDriver
from .mysql import MySQLDriver


class DriverKind(str, Enum):
    SQLITE = 'sqlite'
    POSTGRES = 'postgresql'
    MYSQL = 'mysql'


DRIVERS: Dict[DriverKind, Type[DatabaseDriver]] = {
    DriverKind.SQLITE: SQLiteDriver,
    DriverKind.POSTGRES: PostgresDriver,
    DriverKind.MYSQL: MySQLDriver,
}


def driver_kind_for(engine: AsyncEngine) -> DriverKind:
    dialect_name = (engine.dialect.name or '').lower()
    if dialect_name == 'mariadb':
        dialect_name = 'mysql'
    try:
        return DriverKind(dialect_name)
    except ValueError:
        raise ConfigurationError(f"Database driver not available: {dialect_name}") from None


def get_driver(engine: AsyncEngine, kind: DriverKind | str | None = None) -> DatabaseDriver:
    if engine is None:
        raise ConfigurationError("Invalid database engine")
    if kind is None:
        kind = driver_kind_for(engine)
    try:
        kind = DriverKind(kind)
    except ValueError:
        raise ConfigurationError(f"Database driver not available: {kind}") from None
    return DRIVERS[kind](engine)


__all__ = [
    'DatabaseDriver',
    'SQLiteDriver',
    'PostgresDriver',
    'MySQLDriver',
    'DriverKind',
    'DRIVERS',
    'driver_kind_for',
    'get_driver',
]
