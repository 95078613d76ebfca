from __future__ import annotations
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Table, and_ as _and
from sqlalchemy.sql import ColumnElement
from sqlalchemy.sql.sqltypes import Boolean, Date, DateTime, Float, Integer, Numeric

from ..errors import QueryArgumentError
from .filters import OPERATOR_REGISTRY, Condition

_TRUE = ('true', 't', '1', 'yes', 'y')
_FALSE = ('false', 'f', '0', 'no', 'n')


def coerce_value(col, val: Any) -> Any:
    """Convert a filter/key string to the Python type of ``col``.

    Raises ``QueryArgumentError`` when a value cannot represent the column type.
    """
    if not isinstance(val, str):
        return val
    ctype = getattr(col, 'type', None)
    if ctype is None:
        return val
    s = val.strip()
    if isinstance(ctype, Boolean):
        lv = s.lower()
        if lv in _TRUE:
            return True
        if lv in _FALSE:
            return False
        raise QueryArgumentError(f"Invalid boolean value {val!r} for column {col.name}")
    if isinstance(ctype, Integer):
        try:
            return int(s)
        except ValueError:
            raise QueryArgumentError(f"Invalid integer value {val!r} for column {col.name}") from None
    if isinstance(ctype, (Numeric, Float)):
        try:
            return float(s)
        except ValueError:
            raise QueryArgumentError(f"Invalid number value {val!r} for column {col.name}") from None
    if isinstance(ctype, DateTime):
        s = s.replace('Z', '+00:00') if 'Z' in s else s
        try:
            dv = datetime.fromisoformat(s)
        except ValueError:
            raise QueryArgumentError(f"Invalid datetime value {val!r} for column {col.name}") from None
        if getattr(ctype, 'timezone', False) is False and dv.tzinfo is not None:
            dv = dv.replace(tzinfo=None)
        return dv
    if isinstance(ctype, Date):
        try:
            return date.fromisoformat(s)
        except ValueError:
            raise QueryArgumentError(f"Invalid date value {val!r} for column {col.name}") from None
    return val


def column_of(table: Table, name: str):
    col = table.c.get(name)
    if col is None:
        raise QueryArgumentError(f"Unknown column '{name}' on table '{table.name}'")
    return col


def condition_expression(table: Table, cond: Condition) -> ColumnElement:
    col = column_of(table, cond.column)
    fn = OPERATOR_REGISTRY.get(cond.op)
    if fn is None:
        raise QueryArgumentError(f"Unknown filter operator: {cond.op}")
    value = cond.value if cond.op == 'like' else coerce_value(col, cond.value)
    return fn(col, value)


def where_clause(table: Table, conditions: List[Condition]) -> Optional[ColumnElement]:
    exprs = [condition_expression(table, c) for c in conditions]
    if not exprs:
        return None
    return _and(*exprs)


def coerce_row_values(table: Table, values: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only known columns of ``table`` and coerce string values to their types."""
    out: Dict[str, Any] = {}
    for k, v in values.items():
        col = table.c.get(k)
        if col is None:
            continue
        out[k] = coerce_value(col, v)
    return out
