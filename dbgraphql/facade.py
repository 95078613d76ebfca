"""``DBGraphQL``: compose driver, compiler and resolver behind one object.

Usage::

    from sqlalchemy.ext.asyncio import create_async_engine
    from dbgraphql import DBGraphQL

    api = DBGraphQL('blog', create_async_engine('sqlite+aiosqlite:///blog.db'))
    await api.connect()
    sdl = api.get_schema()
    resolvers = api.get_resolvers()
"""
from __future__ import annotations
import logging
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional, Tuple

from graphql import GraphQLSchema
from sqlalchemy.ext.asyncio import AsyncEngine

from .adapters import DatabaseDriver, DriverKind, get_driver
from .compiler import Compiler, Returns
from .config import EngineConfig
from .descriptor import SchemaDescriptor
from .errors import ConfigurationError
from .resolver import Resolver
from .schema import make_executable_schema

logger = logging.getLogger(__name__)


def _split_path(path: str, what: str, shape: str) -> Tuple[str, str]:
    segments = [s for s in str(path or '').strip().split('.') if s]
    if len(segments) < 2:
        raise ConfigurationError(f"{what} path must be in format {shape}")
    return segments[-2], segments[-1]


class DBGraphQL:
    def __init__(
        self,
        name: str = '',
        engine: Optional[AsyncEngine] = None,
        *,
        exclude: Iterable[str] = (),
        config: Optional[EngineConfig] = None,
        driver: DriverKind | str | None = None,
    ):
        self.name = name
        self.engine = engine
        self.exclude = tuple(exclude or ())
        self.config = config or EngineConfig()
        self.driver_kind = driver
        self.db_driver: Optional[DatabaseDriver] = None
        self.db_schema: Optional[SchemaDescriptor] = None
        self.gql_schema: Optional[str] = None
        self.compiler = Compiler(config=self.config)
        self.resolver = Resolver(config=self.config)
        if name:
            self.add('Query', 'getAPIName', 'String', lambda parent, args, context: name)

    @property
    def has_connection(self) -> bool:
        return self.engine is not None

    def add_field(self, path: str, returns: Returns, resolver: Callable[..., Any], args: Optional[Dict[str, Returns]] = None) -> 'DBGraphQL':
        """Add ``Type.field`` returning ``returns`` resolved by ``resolver``.

        ``returns`` is a scalar or type name, or ``[Type]`` for lists.
        """
        type_name, field_name = _split_path(path, 'add_field', 'Type.field')
        return self.add(type_name, field_name, returns, resolver, args)

    def add(self, type_name: str, field_name: str, returns: Returns, resolver: Callable[..., Any], args: Optional[Dict[str, Returns]] = None) -> 'DBGraphQL':
        self.compiler.add_type(type_name, field_name, returns, args)
        self.resolver.add(type_name, field_name, resolver, args)
        return self

    def add_input(self, path: str, sub_type: Returns) -> 'DBGraphQL':
        input_name, field_name = _split_path(path, 'add_input', 'Input.field')
        self.compiler.add_input(input_name, field_name, sub_type)
        return self

    def on_before(self, validator: Callable[..., Any], rejected: Optional[Callable[..., Any]] = None) -> None:
        """Set the global gate ``validator(type, field, parent, args, context) -> bool``.

        When it returns false, ``rejected(type, field, parent, args, context)`` is
        the field's value instead of running its resolver.
        """
        self.resolver.on_before(validator, rejected)

    async def connect(self, namespace: str = '') -> 'DBGraphQL':
        """Introspect the database and (re)build names, types and default resolvers."""
        if self.engine is None:
            raise ConfigurationError("Invalid database engine")
        if self.db_driver is None:
            self.db_driver = get_driver(self.engine, self.driver_kind)
            logger.info(f"Detected database dialect: {self.db_driver.name}")
        namespace = namespace or self.db_driver.namespace_default() or ''
        self.db_schema = await self.db_driver.get_schema(namespace, self.exclude)
        self.compiler.db_schema = self.db_schema
        self.resolver.db_driver = self.db_driver
        self.compiler.build_schema()
        self.resolver.register_schema(self.compiler)
        self.gql_schema = None
        return self

    async def get_database_schema(self, refresh: bool = False) -> SchemaDescriptor:
        if self.db_schema is None or refresh:
            await self.connect()
        return self.db_schema

    def available_types(self) -> FrozenSet[str]:
        if self.db_driver is None:
            raise ConfigurationError("Not connected")
        return self.db_driver.get_available_types()

    def get_resolvers(self) -> Dict[str, Dict[str, Callable[..., Any]]]:
        return self.resolver.get_resolvers(self.has_connection)

    def get_schema(self, refresh: bool = False) -> str:
        """Generated SDL text; the compiler re-renders only on ``refresh`` or after a registry change."""
        self.gql_schema = self.compiler.get_sdl(refresh, self.has_connection)
        return self.gql_schema

    def make_executable_schema(self, refresh: bool = False) -> GraphQLSchema:
        return make_executable_schema(self.get_schema(refresh), self.get_resolvers())
