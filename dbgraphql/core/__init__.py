"""Request-argument parsing and value coercion shared by the resolver and drivers."""
from .filters import (
    OPERATOR_REGISTRY,
    Condition,
    ScopeArgs,
    RequestArgs,
    parse_filter,
    parse_pagination,
    parse_request_args,
)

__all__ = [
    'OPERATOR_REGISTRY',
    'Condition',
    'ScopeArgs',
    'RequestArgs',
    'parse_filter',
    'parse_pagination',
    'parse_request_args',
]
