from __future__ import annotations
from typing import FrozenSet
from .base import DatabaseDriver


class PostgresDriver(DatabaseDriver):
    name = 'postgresql'
    default_namespace = 'public'

    @staticmethod
    def get_available_types() -> FrozenSet[str]:
        return frozenset({
            'smallint', 'integer', 'bigint', 'serial', 'bigserial',
            'boolean', 'real', 'double precision', 'numeric', 'decimal',
            'char', 'varchar', 'text', 'uuid', 'json', 'jsonb', 'bytea',
            'date', 'time', 'timestamp', 'timestamptz',
        })
