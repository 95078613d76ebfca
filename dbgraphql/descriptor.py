"""Normalized relational schema metadata.

A ``SchemaDescriptor`` is produced once per introspection pass by a driver and
is treated as immutable afterwards; refreshing means building a new one.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    native_type: str
    nullable: bool = True
    is_primary_key: bool = False


@dataclass(frozen=True)
class ForeignKeyDescriptor:
    column: str
    referenced_table: str
    referenced_column: str


@dataclass(frozen=True)
class TableDescriptor:
    name: str
    columns: Tuple[ColumnDescriptor, ...] = ()
    foreign_keys: Tuple[ForeignKeyDescriptor, ...] = ()

    @property
    def primary_key(self) -> List[str]:
        return [c.name for c in self.columns if c.is_primary_key]

    def column(self, name: str) -> Optional[ColumnDescriptor]:
        for c in self.columns:
            if c.name == name:
                return c
        return None

    def sorted_foreign_keys(self) -> List[ForeignKeyDescriptor]:
        """Foreign keys in a stable order: by column, then referenced table/column."""
        return sorted(
            set(self.foreign_keys),
            key=lambda fk: (fk.column, fk.referenced_table, fk.referenced_column),
        )


@dataclass(frozen=True)
class SchemaDescriptor(Mapping[str, TableDescriptor]):
    """Mapping of table name to ``TableDescriptor``."""
    tables: Dict[str, TableDescriptor] = field(default_factory=dict)

    def __getitem__(self, name: str) -> TableDescriptor:
        return self.tables[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.tables)

    def __len__(self) -> int:
        return len(self.tables)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SchemaDescriptor':
        """Build from the plain form ``{table: {columns: [...], foreign_keys: [...]}}``.

        Column entries accept ``name``, ``native_type`` (or ``type``), ``nullable``
        and ``is_primary_key`` (or ``primary``). Foreign key entries accept
        ``column``, ``referenced_table`` and ``referenced_column``.
        """
        tables: Dict[str, TableDescriptor] = {}
        for tname, raw in data.items():
            cols = tuple(
                ColumnDescriptor(
                    name=c['name'],
                    native_type=str(c.get('native_type', c.get('type', 'text'))),
                    nullable=bool(c.get('nullable', True)),
                    is_primary_key=bool(c.get('is_primary_key', c.get('primary', False))),
                )
                for c in raw.get('columns', ())
            )
            fks = tuple(
                ForeignKeyDescriptor(
                    column=f['column'],
                    referenced_table=f['referenced_table'],
                    referenced_column=f.get('referenced_column', 'id'),
                )
                for f in raw.get('foreign_keys', ())
            )
            tables[tname] = TableDescriptor(name=tname, columns=cols, foreign_keys=fks)
        return cls(tables=tables)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for tname, t in self.tables.items():
            out[tname] = {
                'columns': [
                    {
                        'name': c.name,
                        'native_type': c.native_type,
                        'nullable': c.nullable,
                        'is_primary_key': c.is_primary_key,
                    }
                    for c in t.columns
                ],
                'foreign_keys': [
                    {
                        'column': fk.column,
                        'referenced_table': fk.referenced_table,
                        'referenced_column': fk.referenced_column,
                    }
                    for fk in t.sorted_foreign_keys()
                ],
            }
        return out


__all__ = ['ColumnDescriptor', 'ForeignKeyDescriptor', 'TableDescriptor', 'SchemaDescriptor']
