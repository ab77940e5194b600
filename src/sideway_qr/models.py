"""Domain objects shared by the check-in pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from .utils.timestamps import parse_timestamp


@dataclass(frozen=True)
class Event:
    """An attendable event as listed by the server."""

    id: int
    name: str
    start_time: datetime
    end_time: datetime

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Event":
        """Build an event from its wire form (``startDate``/``endDate`` keys).

        Raises ``ValueError`` when a field is missing or has the wrong shape.
        """
        try:
            raw_id = payload["id"]
            name = payload["name"]
            start = payload["startDate"]
            end = payload["endDate"]
        except KeyError as exc:
            raise ValueError(f"Event entry missing field: {exc.args[0]}") from exc
        if isinstance(raw_id, bool) or not isinstance(raw_id, int):
            raise ValueError(f"Event id must be an integer, got {raw_id!r}")
        if not isinstance(name, str):
            raise ValueError(f"Event name must be a string, got {name!r}")
        return cls(
            id=raw_id,
            name=name,
            start_time=parse_timestamp(start),
            end_time=parse_timestamp(end),
        )


EventList = Tuple[Event, ...]


@dataclass(frozen=True)
class ScanCommand:
    """A decoded scan: which event to attend and with which code."""

    event_id: int
    code: str


class AttendanceOutcome(Enum):
    SUCCESS = "success"
    ALREADY_MARKED = "already_marked"
    UNAUTHENTICATED = "unauthenticated"
    INVALID = "invalid"
    SERVER_ERROR = "server_error"


class ListStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class ScanStatus(Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


class ScanResultKind(Enum):
    SUCCESS = "success"
    USER_CANCELED = "user_canceled"
    MISSING_PERMISSION = "missing_permission"
    ERROR = "error"


@dataclass(frozen=True)
class ScanResult:
    """What the QR decoding collaborator hands back after a scan attempt."""

    kind: ScanResultKind
    text: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def decoded(cls, text: str) -> "ScanResult":
        return cls(ScanResultKind.SUCCESS, text=text)

    @classmethod
    def canceled(cls) -> "ScanResult":
        return cls(ScanResultKind.USER_CANCELED)

    @classmethod
    def missing_permission(cls) -> "ScanResult":
        return cls(ScanResultKind.MISSING_PERMISSION)

    @classmethod
    def failed(cls, message: str) -> "ScanResult":
        return cls(ScanResultKind.ERROR, message=message)


class SessionSignal(Enum):
    STATE_CHANGED = "state_changed"
    NEEDS_LOGIN = "needs_login"
    ATTENDANCE_SUCCEEDED = "attendance_succeeded"


@dataclass(frozen=True)
class SessionState:
    """Read-only snapshot of what presentation should render."""

    events: EventList = field(default_factory=tuple)
    is_loading: bool = False
    last_outcome: Optional[AttendanceOutcome] = None
    list_status: ListStatus = ListStatus.IDLE
    scan_status: ScanStatus = ScanStatus.IDLE
    last_error: Optional[Exception] = None
    needs_login: bool = False

    @property
    def is_empty(self) -> bool:
        """True once a load has completed with no events."""
        return self.list_status is ListStatus.LOADED and not self.events
