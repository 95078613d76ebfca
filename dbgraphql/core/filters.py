"""Parser for the ``filter`` and ``pagination`` argument mini-languages.

Both strings are ``|``-separated segments. A segment may carry a scope prefix
(``posts:id=1``); a bare segment (``id=1``) addresses the root scope.

filter:      ``[scope:]column<op>value`` with op one of ``= != ~ > >= < <=``
pagination:  ``[scope:]limit=N``, ``[scope:]offset=N``, ``[scope:]orderby=col [asc|desc]``

Strings are parsed once into ``RequestArgs``; use sites only look up scopes.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import QueryArgumentError

SEGMENT_SEP = '|'
SCOPE_SEP = ':'

# Global operator registry (extensible)
OPERATOR_REGISTRY: Dict[str, Callable[[Any, Any], Any]] = {
    'eq': lambda col, v: col == v,
    'ne': lambda col, v: col != v,
    'lt': lambda col, v: col < v,
    'lte': lambda col, v: col <= v,
    'gt': lambda col, v: col > v,
    'gte': lambda col, v: col >= v,
    'like': lambda col, v: col.like(v),
}

# Longest symbols first so ``>=`` wins over ``>``
_SYMBOLS: List[Tuple[str, str]] = [
    ('!=', 'ne'),
    ('>=', 'gte'),
    ('<=', 'lte'),
    ('=', 'eq'),
    ('~', 'like'),
    ('>', 'gt'),
    ('<', 'lt'),
]
_FILTER_SEGMENT = re.compile(
    r'^\s*(?:(?P<scope>[^:=<>!~]+?)\s*:)?\s*(?P<column>[^:=<>!~]+?)\s*'
    r'(?P<op>!=|>=|<=|=|~|>|<)(?P<value>.*)$'
)
_PAGINATION_KEYS = ('limit', 'offset', 'orderby')


@dataclass(frozen=True)
class Condition:
    column: str
    op: str
    value: Any


@dataclass(frozen=True)
class ScopeArgs:
    conditions: Tuple[Condition, ...] = ()
    limit: Optional[int] = None
    offset: int = 0
    order_by: Tuple[Tuple[str, str], ...] = ()

    def merged(self, other: 'ScopeArgs') -> 'ScopeArgs':
        """Combine with ``other``; conditions accumulate, ``other`` wins on paging keys."""
        return ScopeArgs(
            conditions=self.conditions + other.conditions,
            limit=other.limit if other.limit is not None else self.limit,
            offset=other.offset or self.offset,
            order_by=other.order_by or self.order_by,
        )


@dataclass(frozen=True)
class RequestArgs:
    """Parsed filter/pagination for one request, keyed by scope (``None`` = root)."""
    scopes: Dict[Optional[str], ScopeArgs] = field(default_factory=dict)

    def get(self, scope: Optional[str]) -> ScopeArgs:
        return self.scopes.get(scope, ScopeArgs())

    def for_root(self, table: str) -> ScopeArgs:
        """Bare segments plus those scoped by the root table name."""
        return self.get(None).merged(self.get(table))

    def for_scope(self, key: str) -> ScopeArgs:
        return self.get(key)

    def overlay(self, other: 'RequestArgs') -> 'RequestArgs':
        scopes = dict(self.scopes)
        for k, v in other.scopes.items():
            scopes[k] = scopes[k].merged(v) if k in scopes else v
        return RequestArgs(scopes)


def _split(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [s for s in (p.strip() for p in str(raw).split(SEGMENT_SEP)) if s]


def _update(scopes: Dict[Optional[str], ScopeArgs], scope: Optional[str], **changes: Any) -> None:
    current = scopes.get(scope, ScopeArgs())
    if 'conditions' in changes:
        changes['conditions'] = current.conditions + tuple(changes['conditions'])
    scopes[scope] = replace(current, **changes)


def parse_filter(raw: Optional[str]) -> Dict[Optional[str], ScopeArgs]:
    scopes: Dict[Optional[str], ScopeArgs] = {}
    for segment in _split(raw):
        m = _FILTER_SEGMENT.match(segment)
        if not m:
            raise QueryArgumentError(f"Invalid filter segment: {segment!r}")
        op = dict(_SYMBOLS)[m.group('op')]
        cond = Condition(column=m.group('column').strip(), op=op, value=m.group('value'))
        _update(scopes, _scope_of(m.group('scope')), conditions=[cond])
    return scopes


def _scope_of(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    return raw.strip() or None


def _parse_int(key: str, value: str, segment: str) -> int:
    try:
        n = int(value.strip())
    except ValueError:
        raise QueryArgumentError(f"{key} must be an integer in pagination segment {segment!r}") from None
    if n < 0:
        raise QueryArgumentError(f"{key} must be non-negative in pagination segment {segment!r}")
    return n


def _parse_order(value: str, segment: str) -> Tuple[str, str]:
    parts = value.split()
    if not parts or len(parts) > 2:
        raise QueryArgumentError(f"Invalid orderby in pagination segment {segment!r}")
    direction = parts[1].lower() if len(parts) == 2 else 'asc'
    if direction not in ('asc', 'desc'):
        raise QueryArgumentError(f"Invalid order direction '{parts[1]}'. Must be 'asc' or 'desc'.")
    return parts[0], direction


def parse_pagination(raw: Optional[str]) -> Dict[Optional[str], ScopeArgs]:
    scopes: Dict[Optional[str], ScopeArgs] = {}
    for segment in _split(raw):
        scope: Optional[str] = None
        body = segment
        head, sep, rest = segment.partition(SCOPE_SEP)
        if sep and '=' not in head:
            scope, body = _scope_of(head), rest
        key, eq, value = body.partition('=')
        key = key.strip().lower()
        if not eq or key not in _PAGINATION_KEYS:
            raise QueryArgumentError(f"Invalid pagination segment: {segment!r}")
        if key == 'limit':
            _update(scopes, scope, limit=_parse_int(key, value, segment))
        elif key == 'offset':
            _update(scopes, scope, offset=_parse_int(key, value, segment))
        else:
            current = scopes.get(scope, ScopeArgs())
            _update(scopes, scope, order_by=current.order_by + (_parse_order(value, segment),))
    return scopes


def parse_request_args(filter: Optional[str] = None, pagination: Optional[str] = None) -> RequestArgs:
    scopes = parse_filter(filter)
    for k, v in parse_pagination(pagination).items():
        scopes[k] = scopes[k].merged(v) if k in scopes else v
    return RequestArgs(scopes)
