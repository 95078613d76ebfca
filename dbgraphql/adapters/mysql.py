from __future__ import annotations
from typing import FrozenSet, Optional
from .base import DatabaseDriver


class MySQLDriver(DatabaseDriver):
    """MySQL/MariaDB; the namespace is the database named in the engine URL."""
    name = 'mysql'

    def namespace_default(self) -> Optional[str]:
        return self.engine.url.database

    @staticmethod
    def get_available_types() -> FrozenSet[str]:
        return frozenset({
            'tinyint', 'smallint', 'mediumint', 'int', 'integer', 'bigint',
            'decimal', 'float', 'double', 'bit', 'boolean',
            'char', 'varchar', 'text', 'mediumtext', 'longtext', 'json',
            'blob', 'date', 'datetime', 'timestamp', 'time',
        })
