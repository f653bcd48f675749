"""Centralized canonical JSON serialization.

Every persisted payload (ranking dumps, file storage documents) goes through
this single function so that an unchanged view state always produces
byte-identical text.
"""

import json
from typing import Any


def canonical_dumps(obj: Any) -> str:
    """
    Canonical JSON serialization for persisted payloads.

    Rules:
    - UTF-8 text (no ASCII escaping)
    - Sorted keys
    - Stable separators (",", ":")
    - Lists keep their order (column order is meaningful)
    - NaN/Infinity rejected, so the output is always strict JSON

    Args:
        obj: Python object to serialize

    Returns:
        Canonical JSON string
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
