from __future__ import annotations
from typing import FrozenSet
from .base import DatabaseDriver


class SQLiteDriver(DatabaseDriver):
    name = 'sqlite'
    default_namespace = 'main'

    @staticmethod
    def get_available_types() -> FrozenSet[str]:
        return frozenset({
            'integer', 'bigint', 'text', 'varchar', 'real', 'float',
            'numeric', 'decimal', 'boolean', 'date', 'datetime', 'blob',
        })
