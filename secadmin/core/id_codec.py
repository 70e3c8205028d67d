"""Encoding of id sets stored in scalar columns.

Role rows keep their explicit items, parents and children as JSON arrays in
text columns. Historical rows also hold comma strings (``"3,4,6"``) and
arrays with numeric strings (``[1, "2", 3]``); all of them decode to the same
set. Decoding never raises: a value that cannot be read is logged and treated
as empty so read paths keep working on malformed data.
"""

import json
import logging
import math
import re
from typing import Any, Iterable, Optional, Set

logger = logging.getLogger("secadmin.codec")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def coerce_id(value: Any) -> Optional[int]:
    """Return ``value`` as an int id, or None when it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


def _coerce_all(values: Iterable[Any]) -> Set[int]:
    ids = set()
    for value in values:
        coerced = coerce_id(value)
        if coerced is not None:
            ids.add(coerced)
    return ids


def decode_ids(raw: Any) -> Set[int]:
    """Decode a stored id array into a set of ints."""
    if raw is None or raw == "" or raw == []:
        return set()

    if isinstance(raw, (list, tuple, set, frozenset)):
        return _coerce_all(raw)

    if isinstance(raw, str):
        try:
            value = json.loads(raw)
        except ValueError:
            return _coerce_all(part.strip() for part in raw.split(","))
        if isinstance(value, list):
            return _coerce_all(value)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return _coerce_all([value])
        logger.warning("Stored id array is not a JSON array: %r", raw)
        return set()

    logger.warning("Unsupported id array format %s: %r", type(raw).__name__, raw)
    return set()


def encode_ids(ids: Optional[Iterable[Any]]) -> Optional[str]:
    """Encode ids as a JSON array string; empty input encodes to None."""
    if not ids:
        return None
    clean = _coerce_all(ids)
    if not clean:
        return None
    return json.dumps(sorted(clean))
