"""Naming utilities: GraphQL identifiers for tables and relation fields.

Relation names are derived deterministically from the foreign-key topology so
that the same schema always yields the same field names, across processes.
"""
from __future__ import annotations

import hashlib
import re
from typing import Dict, Iterable, Optional, Set, Tuple

__all__ = [
    'RESERVED_TYPE_NAMES',
    'is_graphql_name',
    'sanitize_name',
    'snake_to_camel',
    'type_name_for',
    'stable_hash',
    'relation_candidate',
    'RelationNamer',
]

RESERVED_TYPE_NAMES = frozenset({
    'Query', 'Mutation', 'Subscription',
    'String', 'Int', 'Float', 'Boolean', 'ID',
})

_GRAPHQL_NAME = re.compile(r'^[_A-Za-z][_0-9A-Za-z]*$')
_INVALID_CHARS = re.compile(r'[^_0-9A-Za-z]')


def is_graphql_name(name: str) -> bool:
    return bool(name) and bool(_GRAPHQL_NAME.match(name)) and not name.startswith('__')


def sanitize_name(name: str) -> str:
    """Coerce an arbitrary identifier into a valid GraphQL name."""
    s = _INVALID_CHARS.sub('_', str(name or ''))
    if not s or s[0].isdigit():
        s = '_' + s
    while s.startswith('__'):
        s = s[1:]
    return s


def snake_to_camel(name: str, upper_first: bool = False) -> str:
    """Convert snake_case identifier to camelCase or PascalCase.

    upper_first=False returns lowerCamelCase (default), True returns UpperCamelCase.
    Idempotent for already camelCase strings without underscores.
    """
    if not isinstance(name, str) or not name:
        return name  # type: ignore
    if '_' not in name:
        if upper_first:
            return name[0].upper() + name[1:]
        return name
    parts = [p for p in name.split('_') if p]
    if not parts:
        return ''
    first = parts[0].lower() if not upper_first else parts[0].capitalize()
    rest = ''.join(p.capitalize() for p in parts[1:])
    return first + rest


def type_name_for(table: str) -> str:
    """PascalCase GraphQL type name for a table (``post_tags`` -> ``PostTags``)."""
    return sanitize_name(snake_to_camel(sanitize_name(table), upper_first=True))


def stable_hash(*parts: str, length: int = 8) -> str:
    """Short hex digest of ``parts``; identical on every run and platform."""
    raw = '\x1f'.join(str(p) for p in parts).encode('utf-8')
    return hashlib.sha1(raw).hexdigest()[:max(1, length)]


def relation_candidate(referenced_table: str) -> str:
    """First-choice relation field name: the referenced table (``categories_id`` -> ``categories``).

    The column only takes part in the name once candidates collide.
    """
    return sanitize_name(referenced_table)


class RelationNamer:
    """Assigns unique relation field names per GraphQL type.

    Seed each type with the names already taken (its columns) via ``reserve``
    and feed foreign keys in a stable order. The table's own name is always
    taken: it is the scope key of root-level filter fragments, so a
    self-reference never shares it. Resolution on collision:

    1. candidate (the referenced table)
    2. candidate + ``_`` + original column name
    3. step 2 + ``_`` + short hash of ``(table, column, referenced_table)``
    """

    def __init__(self, hash_length: int = 8):
        self.hash_length = hash_length
        self._used: Dict[str, Set[str]] = {}
        self.names: Dict[Tuple[str, str], str] = {}

    def reserve(self, table: str, names: Iterable[str]) -> None:
        self._taken(table).update(names)

    def _taken(self, table: str) -> Set[str]:
        used = self._used.get(table)
        if used is None:
            used = self._used[table] = {sanitize_name(table)}
        return used

    def assign(self, table: str, column: str, referenced_table: str) -> str:
        key = (table, column)
        if key in self.names:
            return self.names[key]
        used = self._taken(table)
        name = relation_candidate(referenced_table)
        if name in used:
            name = sanitize_name(f"{name}_{column}")
        if name in used:
            name = f"{name}_{stable_hash(table, column, referenced_table, length=self.hash_length)}"
        # Rehash until unique
        salt = 0
        while name in used:
            salt += 1
            name = f"{name}_{stable_hash(table, column, referenced_table, str(salt), length=self.hash_length)}"
        used.add(name)
        self.names[key] = name
        return name

    def lookup(self, table: str, column: str) -> Optional[str]:
        return self.names.get((table, column))
