"""Bind a generated SDL document and resolver map into a graphql-core schema."""
from __future__ import annotations
from typing import Any, Callable, Dict, Mapping

from graphql import GraphQLObjectType, GraphQLResolveInfo, GraphQLSchema, build_schema

from .errors import ConfigurationError

ResolverMap = Mapping[str, Mapping[str, Callable[..., Any]]]


def _bind(fn: Callable[..., Any]) -> Callable[..., Any]:
    # graphql-core calls resolve(parent, info, **args)
    def resolve(parent: Any, info: GraphQLResolveInfo, **args: Any) -> Any:
        return fn(parent, args, info.context, info)
    resolve.__name__ = getattr(fn, '__name__', 'resolve')
    return resolve


def make_executable_schema(type_defs: str, resolvers: ResolverMap) -> GraphQLSchema:
    """Build ``type_defs`` and attach ``resolvers`` (``{type: {field: fn}}``).

    Every bound function must accept ``(parent, args, context, info)``.
    """
    schema = build_schema(type_defs)
    for type_name, fields in resolvers.items():
        gtype = schema.get_type(type_name)
        if not isinstance(gtype, GraphQLObjectType):
            raise ConfigurationError(f"Resolver map refers to unknown object type '{type_name}'")
        for field_name, fn in fields.items():
            gfield = gtype.fields.get(field_name)
            if gfield is None:
                raise ConfigurationError(f"Resolver map refers to unknown field '{type_name}.{field_name}'")
            gfield.resolve = _bind(fn)
    return schema


__all__ = ['make_executable_schema', 'ResolverMap']
