from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import asdict, is_dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        # Integral values stay ints; everything else becomes a JSON number.
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(records: Sequence[Any]) -> str:
    payload = [asdict(record) if is_dataclass(record) else record for record in records]
    return json.dumps(payload, default=_encode, indent=2, ensure_ascii=False)


def print_json(records: Sequence[Any]) -> None:
    """Print prices, conversions, histories or ticker matches as a JSON array."""

    print(to_json(records))


__all__ = ["print_json", "to_json"]
