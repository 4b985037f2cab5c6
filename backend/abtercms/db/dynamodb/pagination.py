from __future__ import annotations

from typing import Any

PARTITION_KEY = "pk"

# A Key addresses one item: {"pk": "<id>"}. Empty means "start of scan" for list.
Key = dict[str, Any]


def make_key(pk: str) -> Key:
    return {PARTITION_KEY: pk}


def is_valid_key(key: Key | None) -> bool:
    if not isinstance(key, dict) or set(key) != {PARTITION_KEY}:
        return False
    value = key[PARTITION_KEY]
    return isinstance(value, str) and bool(value)


def encode_cursor(last_evaluated_key: Key | None) -> str | None:
    """Wire cursor for a page: the partition-key value the next scan resumes after."""
    if not last_evaluated_key:
        return None
    value = last_evaluated_key.get(PARTITION_KEY)
    return str(value) if value else None


def decode_cursor(cursor: str | None) -> Key:
    cur = str(cursor or "").strip()
    if not cur:
        return {}
    return make_key(cur)
