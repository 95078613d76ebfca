"""dbgraphql: a GraphQL API generated from an existing relational database.

Exposes:
- DBGraphQL facade (connect, get_schema, get_resolvers, add/add_field/add_input, on_before)
- Compiler (SDL + relation names) and Resolver (generic CRUD resolvers, overrides, before-hook)
- Database drivers selected by DriverKind
- make_executable_schema to bind SDL and resolvers with graphql-core
"""
from __future__ import annotations

from .adapters import DatabaseDriver, DriverKind, MySQLDriver, PostgresDriver, SQLiteDriver, get_driver
from .compiler import Compiler, FieldDef, RelationDef, TableTypes, scalar_for
from .config import BeforeHook, EngineConfig
from .descriptor import ColumnDescriptor, ForeignKeyDescriptor, SchemaDescriptor, TableDescriptor
from .errors import ConfigurationError, DBGraphQLError, QueryArgumentError
from .facade import DBGraphQL
from .resolver import FieldContext, Record, Resolver
from .schema import make_executable_schema

__all__ = [
    'DBGraphQL',
    'Compiler', 'FieldDef', 'RelationDef', 'TableTypes', 'scalar_for',
    'Resolver', 'FieldContext', 'Record',
    'BeforeHook', 'EngineConfig',
    'ColumnDescriptor', 'ForeignKeyDescriptor', 'SchemaDescriptor', 'TableDescriptor',
    'DatabaseDriver', 'DriverKind', 'SQLiteDriver', 'PostgresDriver', 'MySQLDriver', 'get_driver',
    'DBGraphQLError', 'ConfigurationError', 'QueryArgumentError',
    'make_executable_schema',
]
