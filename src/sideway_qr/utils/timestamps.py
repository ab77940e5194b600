"""Timestamp coercion for event payloads."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any


def parse_timestamp(value: Any) -> datetime:
    """Turn an ISO-8601 string or epoch milliseconds into an aware datetime.

    Naive ISO values are taken as UTC. Raises ``ValueError`` for anything else.
    """
    if isinstance(value, bool):
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if isinstance(value, (int, float)):
        try:
            if not math.isfinite(value):
                raise ValueError(f"Unsupported timestamp value: {value!r}")
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"Timestamp out of range: {value!r}") from exc

    if isinstance(value, str) and value.strip():
        candidate = value.strip()
        if candidate.endswith(("Z", "z")):
            candidate = candidate[:-1] + "+00:00"
        moment = datetime.fromisoformat(candidate)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment

    raise ValueError(f"Unsupported timestamp value: {value!r}")
