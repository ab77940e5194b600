"""Decoding of raw QR payloads of the form ``<eventId>:<code>``."""

from __future__ import annotations

import re
from typing import Optional

from .errors import MalformedPayloadError
from .models import ScanCommand

SEPARATOR = ":"
_EVENT_ID_RE = re.compile(r"[0-9]+")


def parse_scan_payload(raw: Optional[str]) -> ScanCommand:
    """Split ``raw`` on its first ``:`` into an event id and a code.

    The id must be a non-negative decimal integer and the code must be
    non-empty. Everything after the first separator is the code, so the code
    itself may contain ``:``. Raises :class:`MalformedPayloadError` otherwise.
    """
    if raw is None or not raw.strip():
        raise MalformedPayloadError(raw, "payload is empty")

    text = raw.strip()
    event_part, sep, code_part = text.partition(SEPARATOR)
    if not sep:
        raise MalformedPayloadError(raw, "missing ':' separator")

    event_part = event_part.strip()
    if not _EVENT_ID_RE.fullmatch(event_part):
        raise MalformedPayloadError(raw, "event id is not a non-negative integer")

    code = code_part.strip()
    if not code:
        raise MalformedPayloadError(raw, "attendance code is empty")

    return ScanCommand(event_id=int(event_part), code=code)
