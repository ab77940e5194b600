"""aiohttp client for the SidewayQR attendance API.

Every call is a single attempt. The client reads the credential from the
session store once per call, attaches it as a ``Cookie`` header and turns
the response status into a domain result; response bodies are only read to
decode the event list.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from .errors import AuthServerError, InvalidCredentialsError, ServerError, UnauthenticatedError
from .models import AttendanceOutcome, Event, EventList, ScanCommand
from .session_store import SessionStore
from .utils.logger import get_logger
from .utils.session import is_credential_effective

DEFAULT_TIMEOUT_SECONDS = 15.0

log = get_logger("api_client")

ATTENDANCE_OUTCOMES: Dict[int, AttendanceOutcome] = {
    201: AttendanceOutcome.SUCCESS,
    200: AttendanceOutcome.ALREADY_MARKED,
    401: AttendanceOutcome.UNAUTHENTICATED,
    400: AttendanceOutcome.INVALID,
    422: AttendanceOutcome.INVALID,
}


def classify_attendance_status(status: int) -> AttendanceOutcome:
    """Map a submission status code to its outcome."""
    if status in ATTENDANCE_OUTCOMES:
        return ATTENDANCE_OUTCOMES[status]
    if status >= 500:
        return AttendanceOutcome.SERVER_ERROR
    return AttendanceOutcome.INVALID


def _cookie_header(response: aiohttp.ClientResponse) -> str:
    return "; ".join(f"{name}={morsel.value}" for name, morsel in response.cookies.items())


class APIClient:
    """Authenticated access to ``/login``, ``/events`` and ``/events/{id}/attend``."""

    def __init__(
        self,
        base_url: str,
        store: SessionStore,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._store = store
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _http(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            # The credential is attached by hand; a live cookie jar would leak it across logins.
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                cookie_jar=aiohttp.DummyCookieJar(),
            )
            self._owns_session = True
        return self._session

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def login(self, email: str, password: str) -> str:
        """Log in and persist the returned cookie; return it."""
        log.debug("POST /login", layer="debug")
        try:
            async with self._http().post(
                self._url("/login"), json={"email": email, "password": password}
            ) as response:
                status = response.status
                credential = _cookie_header(response) if 200 <= status < 300 else ""
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise AuthServerError(f"Login request failed: {exc}") from exc

        log.debug("POST /login -> %s", status, layer="debug")
        if 400 <= status < 500:
            raise InvalidCredentialsError("Email or password was rejected", status=status)
        if not 200 <= status < 300:
            raise AuthServerError(f"Login failed with status {status}", status=status)
        if not credential:
            raise AuthServerError("Login response carried no session cookie", status=status)

        await self._store.set(credential)
        return credential

    async def fetch_events(self) -> EventList:
        """Return the events visible to the current session, in server order."""
        credential = await self._store.get()
        if not is_credential_effective(credential):
            raise UnauthenticatedError("No session credential stored")

        log.debug("GET /events", layer="debug")
        try:
            async with self._http().get(
                self._url("/events"), headers={"Cookie": credential}
            ) as response:
                status = response.status
                payload: Any = None
                decode_error: Optional[Exception] = None
                if status == 200:
                    try:
                        payload = await response.json(content_type=None)
                    except ValueError as exc:
                        decode_error = exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ServerError(None, f"Event list request failed: {exc}") from exc

        log.debug("GET /events -> %s", status, layer="debug")
        if status == 401:
            raise UnauthenticatedError("Session credential was rejected")
        if status != 200:
            raise ServerError(status)
        if decode_error is not None:
            raise ServerError(status, f"Event list is not valid JSON: {decode_error}") from decode_error
        return self._decode_events(payload, status)

    async def submit_attendance(self, command: ScanCommand) -> AttendanceOutcome:
        """Send a scanned code and classify the response by status code only."""
        credential = await self._store.get()
        if not is_credential_effective(credential):
            return AttendanceOutcome.UNAUTHENTICATED

        path = f"/events/{command.event_id}/attend"
        log.debug("POST %s", path, layer="debug")
        try:
            async with self._http().post(
                self._url(path), json={"code": command.code}, headers={"Cookie": credential}
            ) as response:
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ServerError(None, f"Attendance request failed: {exc}") from exc

        outcome = classify_attendance_status(status)
        log.debug("POST %s -> %s (%s)", path, status, outcome.value, layer="debug")
        return outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _decode_events(payload: Any, status: int) -> EventList:
        if not isinstance(payload, list):
            raise ServerError(status, "Event list must be a JSON array")
        events = []
        for entry in payload:
            if not isinstance(entry, dict):
                raise ServerError(status, "Event entry must be a JSON object")
            try:
                events.append(Event.from_payload(entry))
            except ValueError as exc:
                raise ServerError(status, f"Invalid event entry: {exc}") from exc
        return tuple(events)
