"""Authenticated QR check-in pipeline: credential store, API client, scan parser and session state."""

from .api_client import APIClient, classify_attendance_status
from .attendance_session import AttendanceSession
from .errors import (
    ApiError,
    AuthError,
    AuthServerError,
    InvalidCredentialsError,
    MalformedPayloadError,
    ParseError,
    ServerError,
    SidewayQRError,
    StorageError,
    UnauthenticatedError,
)
from .models import (
    AttendanceOutcome,
    Event,
    ListStatus,
    ScanCommand,
    ScanResult,
    ScanResultKind,
    ScanStatus,
    SessionSignal,
    SessionState,
)
from .scan_parser import parse_scan_payload
from .session_store import FileSessionStore, MemorySessionStore, SessionStore

__all__ = [
    "APIClient",
    "classify_attendance_status",
    "AttendanceSession",
    "SidewayQRError",
    "StorageError",
    "AuthError",
    "InvalidCredentialsError",
    "AuthServerError",
    "ApiError",
    "UnauthenticatedError",
    "ServerError",
    "ParseError",
    "MalformedPayloadError",
    "AttendanceOutcome",
    "Event",
    "ListStatus",
    "ScanCommand",
    "ScanResult",
    "ScanResultKind",
    "ScanStatus",
    "SessionSignal",
    "SessionState",
    "parse_scan_payload",
    "FileSessionStore",
    "MemorySessionStore",
    "SessionStore",
]
