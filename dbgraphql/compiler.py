"""Schema Compiler: relational metadata -> GraphQL type system (SDL).

The compiler keeps two registries. Database-backed entries are rebuilt from
the ``SchemaDescriptor`` on every ``build_schema``; entries added through
``add_type``/``add_input`` survive rebuilds and overlay the generated ones.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from .config import EngineConfig
from .descriptor import SchemaDescriptor, TableDescriptor
from .errors import ConfigurationError
from .naming import RESERVED_TYPE_NAMES, RelationNamer, is_graphql_name, stable_hash, type_name_for

logger = logging.getLogger(__name__)

Returns = Union[str, Sequence[Any]]

QUERY = 'Query'
MUTATION = 'Mutation'

_INT_TYPES = frozenset({
    'integer', 'int', 'int2', 'int4', 'int8', 'smallint', 'bigint', 'mediumint',
    'tinyint', 'serial', 'smallserial', 'bigserial',
})
_FLOAT_TYPES = frozenset({
    'real', 'float', 'float4', 'float8', 'double', 'decimal', 'numeric', 'money',
})
_BOOL_TYPES = frozenset({'boolean', 'bool'})

PAGE_ARGS: Dict[str, str] = {'filter': 'String', 'pagination': 'String'}


def scalar_for(native_type: str) -> str:
    """Nearest GraphQL scalar for a native column type; unknown types map to String."""
    raw = (native_type or '').strip().lower()
    if raw.startswith('tinyint(1)'):
        return 'Boolean'
    base = re.split(r'[\s(]', raw, maxsplit=1)[0] if raw else ''
    if base in _INT_TYPES:
        return 'Int'
    if base in _FLOAT_TYPES:
        return 'Float'
    if base in _BOOL_TYPES:
        return 'Boolean'
    return 'String'


def render_type_ref(returns: Returns) -> str:
    """``'Posts'`` -> ``Posts``; ``['Posts']`` -> ``[Posts]``."""
    if isinstance(returns, (list, tuple)):
        if len(returns) != 1:
            raise ConfigurationError(f"List return types must have exactly one element, got {returns!r}")
        return f"[{render_type_ref(returns[0])}]"
    s = str(returns or '').strip()
    if not s:
        raise ConfigurationError("Return type must not be empty")
    return s


@dataclass
class FieldDef:
    name: str
    returns: Returns
    args: Dict[str, Returns] = field(default_factory=dict)

    def render(self) -> str:
        args = ''
        if self.args:
            args = '(' + ', '.join(f"{k}: {render_type_ref(v)}" for k, v in self.args.items()) + ')'
        return f"{self.name}{args}: {render_type_ref(self.returns)}"


@dataclass(frozen=True)
class RelationDef:
    """Forward (many-to-one) relation generated for one foreign key."""
    type_name: str
    field_name: str
    table: str
    column: str
    referenced_table: str
    referenced_column: str


@dataclass
class TableTypes:
    """Names generated for one table."""
    table: str
    type_name: str
    input_name: str
    page_name: str
    list_field: str
    first_field: str
    put_field: str
    columns: List[str] = field(default_factory=list)
    relations: List[RelationDef] = field(default_factory=list)


class Compiler:
    def __init__(self, db_schema: Optional[SchemaDescriptor] = None, config: Optional[EngineConfig] = None):
        self.db_schema = db_schema
        self.config = config or EngineConfig()
        self.tables: Dict[str, TableTypes] = {}
        self.relation_names: Dict[Tuple[str, str], str] = {}
        self._db_types: Dict[str, Dict[str, FieldDef]] = {}
        self._db_inputs: Dict[str, Dict[str, Returns]] = {}
        self._manual_types: Dict[str, Dict[str, FieldDef]] = {}
        self._manual_inputs: Dict[str, Dict[str, Returns]] = {}
        self._sdl: Optional[str] = None
        self._sdl_has_connection: Optional[bool] = None
        self._dirty = True

    # --- Registry mutation ----------------------------------------------

    def add_type(self, type_name: str, field_name: str, returns: Returns, args: Optional[Dict[str, Returns]] = None) -> None:
        """Ensure ``type_name`` exists and set ``field_name`` on it (overwrites)."""
        if not type_name or not field_name:
            raise ConfigurationError("add_type requires a type name and a field name")
        render_type_ref(returns)
        for v in (args or {}).values():
            render_type_ref(v)
        self._manual_types.setdefault(type_name, {})[field_name] = FieldDef(field_name, returns, dict(args or {}))
        self._dirty = True

    def add_input(self, type_name: str, field_name: str, sub_type: Returns) -> None:
        if not type_name or not field_name:
            raise ConfigurationError("add_input requires an input name and a field name")
        render_type_ref(sub_type)
        self._manual_inputs.setdefault(type_name, {})[field_name] = sub_type
        self._dirty = True

    # --- Schema derivation ----------------------------------------------

    def build_schema(self, db_schema: Optional[SchemaDescriptor] = None) -> Dict[str, TableTypes]:
        if db_schema is not None:
            self.db_schema = db_schema
        if self.db_schema is None:
            raise ConfigurationError("No database schema to build from; connect first")
        types: Dict[str, Dict[str, FieldDef]] = {}
        inputs: Dict[str, Dict[str, Returns]] = {}
        query: Dict[str, FieldDef] = {}
        mutation: Dict[str, FieldDef] = {}
        tables = self._assign_type_names(self.db_schema)
        namer = RelationNamer(hash_length=self.config.hash_length)

        for tname in sorted(tables):
            tt = tables[tname]
            tdesc = self.db_schema[tname]
            fields: Dict[str, FieldDef] = {}
            input_fields: Dict[str, Returns] = {}
            for col in tdesc.columns:
                if not is_graphql_name(col.name):
                    logger.warning(f"Skipping column {tname}.{col.name}: not a valid GraphQL name")
                    continue
                scalar = scalar_for(col.native_type)
                fields[col.name] = FieldDef(col.name, scalar)
                input_fields[col.name] = scalar
                tt.columns.append(col.name)
            namer.reserve(tname, fields.keys())
            for fk in tdesc.sorted_foreign_keys():
                target = tables.get(fk.referenced_table)
                if target is None or fk.column not in fields:
                    logger.debug(f"No relation for {tname}.{fk.column}: target {fk.referenced_table} not compiled")
                    continue
                fname = namer.assign(tname, fk.column, fk.referenced_table)
                fields[fname] = FieldDef(fname, target.type_name, dict(PAGE_ARGS))
                tt.relations.append(RelationDef(
                    type_name=tt.type_name,
                    field_name=fname,
                    table=tname,
                    column=fk.column,
                    referenced_table=fk.referenced_table,
                    referenced_column=fk.referenced_column,
                ))
            if not fields:
                logger.warning(f"Skipping table {tname}: no exposable columns")
                continue
            types[tt.type_name] = fields
            types[tt.page_name] = {
                'total': FieldDef('total', 'Int'),
                'items': FieldDef('items', [tt.type_name]),
            }
            inputs[tt.input_name] = input_fields
            query[tt.list_field] = FieldDef(tt.list_field, tt.page_name, dict(PAGE_ARGS))
            query[tt.first_field] = FieldDef(tt.first_field, tt.type_name, dict(PAGE_ARGS))
            put_args: Dict[str, Returns] = {'input': tt.input_name}
            put_args.update({k: v for k, v in input_fields.items() if k != 'input'})
            mutation[tt.put_field] = FieldDef(tt.put_field, tt.type_name, put_args)

        types[QUERY] = query
        if mutation:
            types[MUTATION] = mutation
        self._db_types = types
        self._db_inputs = inputs
        self.tables = {k: v for k, v in tables.items() if v.type_name in types}
        self.relation_names = dict(namer.names)
        self._dirty = True
        return self.tables

    def _assign_type_names(self, db_schema: SchemaDescriptor) -> Dict[str, TableTypes]:
        used: Set[str] = set(RESERVED_TYPE_NAMES)
        out: Dict[str, TableTypes] = {}
        for tname in sorted(db_schema):
            base = type_name_for(tname)
            names = (base, f"Page{base}", f"Input{base}")
            if any(n in used for n in names):
                base = f"{base}_{stable_hash(tname, length=self.config.hash_length)}"
                names = (base, f"Page{base}", f"Input{base}")
            used.update(names)
            out[tname] = TableTypes(
                table=tname,
                type_name=base,
                page_name=f"Page{base}",
                input_name=f"Input{base}",
                list_field=f"get{base}",
                first_field=f"getFirstOf{base}",
                put_field=f"putItem{base}",
            )
        return out

    def get_types(self, has_connection: bool = True) -> Dict[str, Dict[str, FieldDef]]:
        """Compiled type registry as rendered (generated entries overlaid by manual ones)."""
        if not has_connection:
            return {k: dict(v) for k, v in self._manual_types.items()}
        return self._merge(self._db_types, self._manual_types)

    # --- Rendering ------------------------------------------------------

    def get_sdl(self, refresh: bool = False, has_connection: bool = True) -> str:
        """Render the registry to SDL; cached until ``refresh`` or a registry change."""
        if self._sdl is not None and not refresh and not self._dirty and self._sdl_has_connection == has_connection:
            return self._sdl
        if has_connection:
            types = self._merge(self._db_types, self._manual_types)
            inputs = self._merge(self._db_inputs, self._manual_inputs)
        else:
            types = self._manual_types
            inputs = self._manual_inputs
        chunks: List[str] = []
        for name, fields in inputs.items():
            if not fields:
                continue
            body = '\n'.join(f"  {k}: {render_type_ref(v)}" for k, v in fields.items())
            chunks.append(f"input {name} {{\n{body}\n}}")
        for name, fields in types.items():
            if not fields:
                continue
            body = '\n'.join(f"  {f.render()}" for f in fields.values())
            chunks.append(f"type {name} {{\n{body}\n}}")
        self._sdl = '\n\n'.join(chunks) + '\n'
        self._sdl_has_connection = has_connection
        self._dirty = False
        return self._sdl

    @staticmethod
    def _merge(base: Dict[str, Dict[str, Any]], overlay: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        merged = {k: dict(v) for k, v in base.items()}
        for k, v in overlay.items():
            merged.setdefault(k, {}).update(v)
        return merged
