"""Shallow configuration equality.

Two configuration objects are equal when they are the same object, or when
both are present, have the same number of keys, and every key of one maps to
an identical value in the other. The comparison is not recursive: nested
objects that differ by identity but not content compare as changed.
"""

from collections.abc import Mapping
from typing import Any, Dict, Optional

from pydantic import BaseModel

_SCALARS = (str, int, float, bool, bytes, type(None))


def _items(obj: Any) -> Optional[Dict[str, Any]]:
    if isinstance(obj, Mapping):
        return dict(obj)
    if isinstance(obj, BaseModel):
        return dict(obj)
    if hasattr(obj, "__dict__"):
        return dict(vars(obj))
    return None


def identical(a: Any, b: Any) -> bool:
    """Strict identity for objects, value equality for scalars."""
    if a is b:
        return True
    if type(a) is not type(b) or not isinstance(a, _SCALARS):
        return False
    return a == b


def shallow_equal(a: Any, b: Any) -> bool:
    """Key-by-key identity comparison of two configuration objects."""
    if a is b:
        return True
    if a is None or b is None:
        return False

    a_items = _items(a)
    b_items = _items(b)
    if a_items is None or b_items is None:
        return identical(a, b)
    if len(a_items) != len(b_items):
        return False

    return all(k in b_items and identical(v, b_items[k]) for k, v in a_items.items())
