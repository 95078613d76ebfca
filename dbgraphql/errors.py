"""Exception types raised by dbgraphql."""
from __future__ import annotations


class DBGraphQLError(Exception):
    """Base class for all dbgraphql errors."""
    pass


class ConfigurationError(DBGraphQLError, ValueError):
    """Raised synchronously for invalid setup: missing engine, bad paths, unknown types."""
    pass


class QueryArgumentError(DBGraphQLError, ValueError):
    """Raised when a filter or pagination string cannot be translated."""
    pass


__all__ = ['DBGraphQLError', 'ConfigurationError', 'QueryArgumentError']
