from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

Validator = Callable[[str, str, Any, dict, Any], Any]
Rejected = Callable[[str, str, Any, dict, Any], Any]

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100


def _allow_all(type_name, field_name, parent, args, context):
    return True


def _reject_with_none(type_name, field_name, parent, args, context):
    return None


@dataclass
class BeforeHook:
    """Global gate consulted before every resolver in the map.

    ``validator`` returns a truthy value to let the field resolve; otherwise the
    value returned by ``rejected`` is produced instead. Both may be async.
    """
    validator: Validator = _allow_all
    rejected: Rejected = _reject_with_none


@dataclass
class EngineConfig:
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE
    hash_length: int = 8
    before_hook: BeforeHook = field(default_factory=BeforeHook)

    def clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None:
            return self.default_page_size
        return min(limit, self.max_page_size)
