"""
Object utilities for hashing and JSON serialization.

Query descriptors and drafts are compared and cached by their serialized
form, so serialization here is canonical: dataclasses become dicts,
``Decimal``/``date`` values become strings and, with ``canonical=True``,
keys are sorted and separators are fixed.
"""

import hashlib
import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class HashResult:
    """Wrapper around a sha256 digest exposing ``hexdigest()``."""

    def __init__(self, data: bytes) -> None:
        self._hash = hashlib.sha256(data)

    def hexdigest(self) -> str:
        return self._hash.hexdigest()


def hash(obj: Any) -> HashResult:
    """
    Create a stable hash of an object.

    Objects are serialized to canonical JSON before hashing so equal inputs
    hash equally across processes.

    Args:
        obj: Any object accepted by ``to_json``.

    Returns:
        HashResult instance with hexdigest() method.
    """
    return HashResult(to_json(obj, canonical=True).encode("utf-8"))


def to_json(obj: Any, indent: int | None = None, canonical: bool = False) -> str:
    """
    Serialize an object to a JSON string.

    Args:
        obj: Object to serialize. Dataclasses are converted to dictionaries.
        indent: Optional indentation for pretty printing.
        canonical: Sort keys and use compact separators so the output is
            byte-identical for equal inputs.

    Returns:
        JSON string representation.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        obj = asdict(obj)
    if canonical:
        return json.dumps(
            obj,
            default=_default_serializer,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )
    return json.dumps(obj, default=_default_serializer, indent=indent, ensure_ascii=False)


def _default_serializer(obj: Any) -> Any:
    """Serialize values the json module does not handle natively."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "__dict__"):
        return obj.__dict__
    return str(obj)
