"""Database driver contract and the SQLAlchemy-backed implementation shared by all variants.

Product specifics (namespace handling, available column types) live in the
subclasses; generated resolvers only use the query handle methods here.
"""
from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import MetaData, Table, asc, desc, func, select, insert, update
from sqlalchemy.ext.asyncio import AsyncEngine

from ..core.filters import Condition
from ..core.utils import coerce_row_values, column_of, where_clause
from ..descriptor import ColumnDescriptor, ForeignKeyDescriptor, SchemaDescriptor, TableDescriptor
from ..errors import ConfigurationError, QueryArgumentError

logger = logging.getLogger(__name__)


class DatabaseDriver(ABC):
    """Introspection plus a small async query handle over one ``AsyncEngine``.

    The engine owns connection pooling; every call checks out its own
    connection so concurrent requests never share one.
    """

    name = 'base'
    default_namespace: Optional[str] = None

    def __init__(self, engine: AsyncEngine):
        if engine is None:
            raise ConfigurationError("A SQLAlchemy AsyncEngine is required")
        self.engine = engine
        self.metadata = MetaData()
        self._tables: Dict[str, Table] = {}

    @staticmethod
    @abstractmethod
    def get_available_types() -> FrozenSet[str]:
        """Column type identifiers accepted by this product."""
        raise NotImplementedError

    def namespace_default(self) -> Optional[str]:
        return self.default_namespace

    def reflect_schema_arg(self, namespace: Optional[str]) -> Optional[str]:
        """SQLAlchemy ``schema=`` argument for ``namespace`` (``None`` for the default one)."""
        if not namespace or namespace == self.namespace_default():
            return None
        return namespace

    # --- Introspection -------------------------------------------------

    async def get_schema(self, namespace: Optional[str] = None, exclude: Iterable[str] = ()) -> SchemaDescriptor:
        excluded = frozenset(exclude or ())
        async with self.engine.connect() as conn:
            descriptor = await conn.run_sync(self._introspect, namespace, excluded)
        logger.info(f"Introspected {len(descriptor)} tables from {self.name} namespace '{namespace or self.namespace_default()}'")
        return descriptor

    def _introspect(self, sync_conn, namespace: Optional[str], excluded: FrozenSet[str]) -> SchemaDescriptor:
        schema = self.reflect_schema_arg(namespace)
        metadata = MetaData()
        metadata.reflect(
            bind=sync_conn,
            schema=schema,
            views=False,
            only=lambda name, _meta: name not in excluded,
        )
        own = {
            t.name: t for t in metadata.tables.values()
            if t.schema == schema and t.name not in excluded
        }
        tables: Dict[str, TableDescriptor] = {}
        for tname in sorted(own):
            t = own[tname]
            columns = tuple(
                ColumnDescriptor(
                    name=c.name,
                    native_type=self._native_type(c, sync_conn.dialect),
                    nullable=bool(c.nullable),
                    is_primary_key=bool(c.primary_key),
                )
                for c in t.columns
            )
            fks = []
            for fk in t.foreign_keys:
                target = fk.column
                if target.table.name not in own:
                    logger.debug(f"Skipping foreign key {tname}.{fk.parent.name}: target table {target.table.name} is excluded")
                    continue
                fks.append(ForeignKeyDescriptor(fk.parent.name, target.table.name, target.name))
            tables[tname] = TableDescriptor(name=tname, columns=columns, foreign_keys=tuple(fks))
        self.metadata = metadata
        self._tables = own
        return SchemaDescriptor(tables=tables)

    @staticmethod
    def _native_type(col, dialect) -> str:
        try:
            return col.type.compile(dialect=dialect)
        except Exception:
            return type(col.type).__name__

    # --- Query handle --------------------------------------------------

    def table(self, name: str) -> Table:
        t = self._tables.get(name)
        if t is None:
            raise QueryArgumentError(f"Unknown table '{name}'")
        return t

    def _pk_columns(self, t: Table) -> List[Any]:
        return list(t.primary_key.columns)

    def _order(self, t: Table, order_by: Sequence[Tuple[str, str]]) -> List[Any]:
        if order_by:
            return [desc(column_of(t, c)) if d == 'desc' else asc(column_of(t, c)) for c, d in order_by]
        return [asc(c) for c in self._pk_columns(t)]

    async def select(
        self,
        table: str,
        conditions: Sequence[Condition] = (),
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: Sequence[Tuple[str, str]] = (),
    ) -> List[Dict[str, Any]]:
        t = self.table(table)
        stmt = select(t)
        where = where_clause(t, list(conditions))
        if where is not None:
            stmt = stmt.where(where)
        stmt = stmt.order_by(*self._order(t, order_by))
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [dict(r) for r in result.mappings().all()]

    async def count(self, table: str, conditions: Sequence[Condition] = ()) -> int:
        t = self.table(table)
        stmt = select(func.count()).select_from(t)
        where = where_clause(t, list(conditions))
        if where is not None:
            stmt = stmt.where(where)
        async with self.engine.connect() as conn:
            return int((await conn.execute(stmt)).scalar_one())

    async def find(self, table: str, keys: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        t = self.table(table)
        keys = coerce_row_values(t, keys)
        if not keys:
            return None
        stmt = select(t).where(*[t.c[k] == v for k, v in keys.items()]).limit(1)
        async with self.engine.connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        return dict(row) if row is not None else None

    async def insert(self, table: str, values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        t = self.table(table)
        values = coerce_row_values(t, values)
        stmt = insert(t).values(**values)
        async with self.engine.begin() as conn:
            if conn.dialect.insert_returning:
                row = (await conn.execute(stmt.returning(*t.c))).mappings().first()
                return dict(row) if row is not None else None
            result = await conn.execute(stmt)
            keys: Dict[str, Any] = {}
            inserted = result.inserted_primary_key or ()
            for col, generated in zip(self._pk_columns(t), inserted):
                keys[col.name] = values.get(col.name, generated)
            if keys and all(v is not None for v in keys.values()):
                crit = [t.c[k] == v for k, v in keys.items()]
            else:
                # No usable key: match on the written values
                crit = [t.c[k].is_(None) if v is None else t.c[k] == v for k, v in values.items()]
            row = (await conn.execute(select(t).where(*crit).limit(1))).mappings().first()
        return dict(row) if row is not None else None

    async def update(self, table: str, keys: Dict[str, Any], values: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        t = self.table(table)
        keys = coerce_row_values(t, keys)
        values = coerce_row_values(t, values)
        crit = [t.c[k] == v for k, v in keys.items()]
        async with self.engine.begin() as conn:
            if values:
                await conn.execute(update(t).where(*crit).values(**values))
            row = (await conn.execute(select(t).where(*crit).limit(1))).mappings().first()
        return dict(row) if row is not None else None
