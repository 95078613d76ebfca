"""Generic Resolver Engine.

Every generated GraphQL field gets a default, database-backed resolver built
from three primitives (``get_page``, ``get_first_of``, ``put_item``). Callers
may register an override for any ``(type, field)``; overrides receive a
``FieldContext`` exposing the engine, the table and the driver so they can
delegate to the default and post-process its result.

All resolvers in the map go through the before-hook gate first.
"""
from __future__ import annotations
import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from .config import BeforeHook, EngineConfig
from .core.filters import Condition, RequestArgs, ScopeArgs, parse_request_args
from .descriptor import SchemaDescriptor
from .errors import ConfigurationError, QueryArgumentError

if TYPE_CHECKING:  # pragma: no cover
    from .adapters.base import DatabaseDriver
    from .compiler import Compiler, RelationDef

logger = logging.getLogger(__name__)

Handler = Callable[[Any, Dict[str, Any], 'FieldContext'], Any]

# Errors a single CRUD call may hit; they become ``None`` instead of failing the document
DATA_ERRORS = (SQLAlchemyError, QueryArgumentError)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Record(dict):
    """A row handed to the GraphQL runtime.

    Carries the parsed request arguments so relation fields below it can look
    up their own filter/pagination fragment.
    """
    __slots__ = ('request_args',)

    def __init__(self, row: Mapping[str, Any], request_args: Optional[RequestArgs] = None):
        super().__init__(row)
        self.request_args = request_args if request_args is not None else RequestArgs()


@dataclass
class FieldContext:
    """Per-field, per-request context passed to every resolver in the map."""
    resolver: 'Resolver'
    type_name: str
    field_name: str
    table: Optional[str] = None
    db: Optional['DatabaseDriver'] = None
    request: Any = None
    info: Any = None
    default_resolver: Optional[Handler] = None

    async def resolve_default(self, parent: Any, args: Dict[str, Any]) -> Any:
        """Run the generated implementation for this field."""
        if self.default_resolver is None:
            raise ConfigurationError(f"No default resolver for {self.type_name}.{self.field_name}")
        return await _maybe_await(self.default_resolver(parent, args, self))


@dataclass
class ResolverEntry:
    type_name: str
    field_name: str
    default: Optional[Handler] = None
    override: Optional[Handler] = None
    table: Optional[str] = None
    args: Dict[str, Any] = field(default_factory=dict)

    def handler(self, has_connection: bool = True) -> Optional[Handler]:
        if self.override is not None:
            return self.override
        return self.default if has_connection else None


class Resolver:
    def __init__(self, db_driver: Optional['DatabaseDriver'] = None, config: Optional[EngineConfig] = None):
        self.db_driver = db_driver
        self.config = config or EngineConfig()
        self.db_schema: Optional[SchemaDescriptor] = None
        self._entries: Dict[Tuple[str, str], ResolverEntry] = {}

    # --- Hook & override registry ----------------------------------------

    @property
    def before_hook(self) -> BeforeHook:
        return self.config.before_hook

    def on_before(self, validator: Callable[..., Any], rejected: Optional[Callable[..., Any]] = None) -> None:
        """Replace the global gate; keeps the current ``rejected`` when none is given."""
        self.config.before_hook = BeforeHook(
            validator=validator,
            rejected=rejected or self.config.before_hook.rejected,
        )

    def add(self, type_name: str, field_name: str, handler: Handler, args: Optional[Dict[str, Any]] = None) -> None:
        """Register ``handler`` for ``type_name.field_name``, replacing any previous override."""
        if not type_name or not field_name:
            raise ConfigurationError("Resolver type and field names must not be empty")
        if not callable(handler):
            raise ConfigurationError(f"Resolver for {type_name}.{field_name} must be callable")
        entry = self._entries.get((type_name, field_name))
        if entry is None:
            entry = ResolverEntry(type_name, field_name)
            self._entries[(type_name, field_name)] = entry
        entry.override = handler
        if args:
            entry.args = dict(args)
        logger.debug(f"Registered override for {type_name}.{field_name}")

    on = add

    def entry(self, type_name: str, field_name: str) -> Optional[ResolverEntry]:
        return self._entries.get((type_name, field_name))

    # --- Default resolver registration -----------------------------------

    def register_schema(self, compiler: 'Compiler') -> None:
        """(Re)create default resolvers for every generated field; overrides are kept."""
        self.db_schema = compiler.db_schema
        for key in list(self._entries):
            entry = self._entries[key]
            entry.default = None
            if entry.override is None:
                del self._entries[key]
        types = compiler.get_types()
        for tt in compiler.tables.values():
            self._set_default('Query', tt.list_field, self._page_handler, tt.table, types)
            self._set_default('Query', tt.first_field, self._first_handler, tt.table, types)
            self._set_default('Mutation', tt.put_field, self._put_handler, tt.table, types)
            for rel in tt.relations:
                self._set_default(rel.type_name, rel.field_name, self._relation_handler(rel), rel.referenced_table, types)

    def _set_default(self, type_name: str, field_name: str, handler: Handler, table: str, types: Dict[str, Any]) -> None:
        entry = self._entries.get((type_name, field_name))
        if entry is None:
            entry = ResolverEntry(type_name, field_name)
            self._entries[(type_name, field_name)] = entry
        entry.default = handler
        entry.table = table
        fdef = types.get(type_name, {}).get(field_name)
        if fdef is not None and not entry.args:
            entry.args = dict(fdef.args)

    @staticmethod
    async def _page_handler(parent: Any, args: Dict[str, Any], ctx: FieldContext) -> Any:
        return await ctx.resolver.get_page(ctx.table, args)

    @staticmethod
    async def _first_handler(parent: Any, args: Dict[str, Any], ctx: FieldContext) -> Any:
        return await ctx.resolver.get_first_of(ctx.table, args)

    @staticmethod
    async def _put_handler(parent: Any, args: Dict[str, Any], ctx: FieldContext) -> Any:
        return await ctx.resolver.put_item(ctx.table, args)

    @staticmethod
    def _relation_handler(rel: 'RelationDef') -> Handler:
        async def resolve(parent: Any, args: Dict[str, Any], ctx: FieldContext) -> Any:
            return await ctx.resolver.get_related(rel, parent, args)
        return resolve

    # --- Resolver map ----------------------------------------------------

    def get_resolvers(self, has_connection: bool = True) -> Dict[str, Dict[str, Callable[..., Awaitable[Any]]]]:
        """Gated resolvers keyed by type then field.

        Each callable has the signature ``(parent, args, context=None, info=None)``.
        Without a connection only caller-registered resolvers are included.
        """
        out: Dict[str, Dict[str, Callable[..., Awaitable[Any]]]] = {}
        for (type_name, field_name), entry in self._entries.items():
            if entry.handler(has_connection) is None:
                continue
            out.setdefault(type_name, {})[field_name] = self._gated(type_name, field_name, has_connection)
        return out

    def _gated(self, type_name: str, field_name: str, has_connection: bool) -> Callable[..., Awaitable[Any]]:
        async def resolve(parent: Any, args: Optional[Dict[str, Any]] = None, context: Any = None, info: Any = None) -> Any:
            return await self.resolve(type_name, field_name, parent, args or {}, context, info, has_connection=has_connection)
        resolve.__name__ = f"resolve_{type_name}_{field_name}"
        return resolve

    async def resolve(
        self,
        type_name: str,
        field_name: str,
        parent: Any,
        args: Dict[str, Any],
        context: Any = None,
        info: Any = None,
        *,
        has_connection: bool = True,
    ) -> Any:
        """Run the gate, then the override or default resolver for ``type_name.field_name``."""
        hook = self.config.before_hook
        allowed = await _maybe_await(hook.validator(type_name, field_name, parent, args, context))
        if not allowed:
            logger.debug(f"Before-hook rejected {type_name}.{field_name}")
            return await _maybe_await(hook.rejected(type_name, field_name, parent, args, context))
        entry = self._entries.get((type_name, field_name))
        handler = entry.handler(has_connection) if entry is not None else None
        if handler is None:
            raise ConfigurationError(f"No resolver registered for {type_name}.{field_name}")
        ctx = FieldContext(
            resolver=self,
            type_name=type_name,
            field_name=field_name,
            table=entry.table,
            db=self.db_driver,
            request=context,
            info=info,
            default_resolver=entry.default,
        )
        return await _maybe_await(handler(parent, args, ctx))

    # --- Database primitives ---------------------------------------------

    def _driver(self) -> 'DatabaseDriver':
        if self.db_driver is None:
            raise ConfigurationError("Resolver has no database driver; connect first")
        return self.db_driver

    @staticmethod
    def _request_args(args: Optional[Mapping[str, Any]]) -> RequestArgs:
        args = args or {}
        return parse_request_args(args.get('filter'), args.get('pagination'))

    async def get_page(self, table: str, args: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """``{total, items}`` for ``table``; ``None`` when the query fails."""
        db = self._driver()
        try:
            request_args = self._request_args(args)
            scope = request_args.for_root(table)
            return await self._page(db, table, scope, request_args)
        except DATA_ERRORS as e:
            logger.warning(f"get_page on {table} failed: {e}")
            return None

    async def _page(self, db: 'DatabaseDriver', table: str, scope: ScopeArgs, request_args: RequestArgs) -> Dict[str, Any]:
        limit = self.config.clamp_limit(scope.limit)
        total, rows = await asyncio.gather(
            db.count(table, scope.conditions),
            db.select(table, scope.conditions, limit, scope.offset, scope.order_by),
        )
        return {'total': total, 'items': [Record(r, request_args) for r in rows]}

    async def get_first_of(self, table: str, args: Optional[Mapping[str, Any]] = None) -> Optional[Record]:
        """First row matching the filter, or ``None`` (no match is not an error)."""
        db = self._driver()
        try:
            request_args = self._request_args(args)
            return await self._first(db, table, request_args.for_root(table), request_args)
        except DATA_ERRORS as e:
            logger.warning(f"get_first_of on {table} failed: {e}")
            return None

    async def _first(self, db: 'DatabaseDriver', table: str, scope: ScopeArgs, request_args: RequestArgs) -> Optional[Record]:
        rows = await db.select(table, scope.conditions, 1, scope.offset, scope.order_by)
        if not rows:
            return None
        return Record(rows[0], request_args)

    async def put_item(self, table: str, args: Optional[Mapping[str, Any]] = None) -> Optional[Record]:
        """Update the row addressed by the primary key if it exists, else insert.

        Only supplied columns are written. Accepts ``input`` and/or flat column
        arguments (flat ones win).
        """
        db = self._driver()
        args = dict(args or {})
        values: Dict[str, Any] = dict(args.pop('input', None) or {})
        values.update(args)
        pk = self._primary_key(table)
        # A null key means "generate one"
        values = {k: v for k, v in values.items() if not (k in pk and v is None)}
        try:
            keys = {k: values[k] for k in pk if k in values}
            if pk and len(keys) == len(pk) and await db.find(table, keys) is not None:
                rest = {k: v for k, v in values.items() if k not in keys}
                row = await db.update(table, keys, rest)
            else:
                row = await db.insert(table, values)
        except DATA_ERRORS as e:
            logger.warning(f"put_item on {table} failed: {e}")
            return None
        return Record(row) if row is not None else None

    def _primary_key(self, table: str):
        if self.db_schema is None or table not in self.db_schema:
            return []
        return self.db_schema[table].primary_key

    async def get_related(self, rel: 'RelationDef', parent: Any, args: Optional[Mapping[str, Any]] = None) -> Optional[Record]:
        """Follow ``rel`` from ``parent`` to the referenced row.

        The filter/pagination fragment scoped by the relation's field name is
        taken from the parent's request; the field's own arguments apply to
        the same scope and are merged on top.
        """
        if parent is None:
            return None
        if isinstance(parent, Mapping):
            value = parent.get(rel.column)
        else:
            value = getattr(parent, rel.column, None)
        if value is None:
            return None
        db = self._driver()
        inherited = getattr(parent, 'request_args', None) or RequestArgs()
        try:
            own = self._request_args(args)
            if None in own.scopes:
                scopes = dict(own.scopes)
                root = scopes.pop(None)
                scopes[rel.field_name] = scopes[rel.field_name].merged(root) if rel.field_name in scopes else root
                own = RequestArgs(scopes)
            request_args = inherited.overlay(own)
            scope = request_args.for_scope(rel.field_name)
            key = Condition(column=rel.referenced_column, op='eq', value=value)
            scoped = ScopeArgs(
                conditions=scope.conditions + (key,),
                limit=scope.limit,
                offset=scope.offset,
                order_by=scope.order_by,
            )
            return await self._first(db, rel.referenced_table, scoped, request_args)
        except DATA_ERRORS as e:
            logger.warning(f"Relation {rel.type_name}.{rel.field_name} failed: {e}")
            return None
