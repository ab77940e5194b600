"""Orchestration of login, event list refresh and scan submission.

An :class:`AttendanceSession` is the single owner of the published
:class:`~sideway_qr.models.SessionState`. Presentation subscribes to
:class:`~sideway_qr.models.SessionSignal` values and reads ``state``; the
session never navigates or renders itself.

Overlapping refreshes are tagged with a sequence number and only the latest
issued one may publish its result. Each scan remembers the cancel epoch it
started in; :meth:`cancel_scan`, :meth:`logout` and :meth:`close` advance the
epoch, which makes the result of an abandoned submission inert. Overlapping
scans never abandon each other.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, List, Optional, Protocol

from .errors import ApiError, AuthError, MalformedPayloadError, ServerError, UnauthenticatedError
from .models import (
    AttendanceOutcome,
    EventList,
    ListStatus,
    ScanCommand,
    ScanResult,
    ScanResultKind,
    ScanStatus,
    SessionSignal,
    SessionState,
)
from .scan_parser import parse_scan_payload
from .session_store import SessionStore
from .utils.logger import get_logger
from .utils.session import is_credential_effective

Listener = Callable[[SessionSignal], None]

log = get_logger("attendance_session")


class AttendanceAPI(Protocol):
    async def login(self, email: str, password: str) -> str: ...

    async def fetch_events(self) -> EventList: ...

    async def submit_attendance(self, command: ScanCommand) -> AttendanceOutcome: ...


class AttendanceSession:
    def __init__(self, client: AttendanceAPI, store: SessionStore) -> None:
        self._client = client
        self._store = store
        self._state = SessionState()
        self._listeners: List[Listener] = []
        self._refresh_seq = 0
        self._scan_epoch = 0
        self._closed = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, signal: SessionSignal) -> None:
        for listener in list(self._listeners):
            try:
                listener(signal)
            except Exception:
                log.exception("Listener failed while handling %s", signal.value)

    def _publish(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        self._emit(SessionSignal.STATE_CHANGED)

    def _request_login(self) -> None:
        self._publish(needs_login=True)
        self._emit(SessionSignal.NEEDS_LOGIN)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    async def ensure_authenticated(self) -> bool:
        """Check the stored credential; signal NEEDS_LOGIN when there is none."""
        credential = await self._store.get()
        if self._closed:
            return False
        if is_credential_effective(credential):
            return True
        self._request_login()
        return False

    async def login(self, email: str, password: str) -> bool:
        """Log in, then load the event list. Returns False when login failed."""
        try:
            await self._client.login(email, password)
        except AuthError as exc:
            if self._closed:
                return False
            log.warning("Login failed: %s", exc)
            self._publish(last_error=exc)
            self._request_login()
            return False

        if self._closed:
            return False
        log.info("Logged in as %s", email, layer="success")
        self._publish(needs_login=False, last_error=None)
        await self.refresh()
        return True

    async def logout(self) -> None:
        """Forget the stored credential and reset local state."""
        await self._store.clear()
        self._refresh_seq += 1
        self._scan_epoch += 1
        if self._closed:
            return
        self._state = SessionState(needs_login=True)
        self._emit(SessionSignal.STATE_CHANGED)
        self._emit(SessionSignal.NEEDS_LOGIN)

    # ------------------------------------------------------------------
    # Event list
    # ------------------------------------------------------------------
    async def refresh(self) -> None:
        """Reload the event list; only the latest issued refresh may publish."""
        await self._refresh(record_outcome=True)

    async def _refresh(self, *, record_outcome: bool) -> None:
        # record_outcome is off after a 201 so SUCCESS survives a failed reload.
        if self._closed:
            return
        self._refresh_seq += 1
        seq = self._refresh_seq
        self._publish(is_loading=True, list_status=ListStatus.LOADING)

        try:
            events = await self._client.fetch_events()
        except UnauthenticatedError as exc:
            if not self._is_current_refresh(seq):
                return
            log.warning("Session is no longer authenticated")
            self._publish(
                events=(),
                is_loading=False,
                list_status=ListStatus.IDLE,
                last_error=exc,
            )
            self._request_login()
            return
        except ServerError as exc:
            if not self._is_current_refresh(seq):
                return
            log.warning("Could not refresh events: %s", exc)
            changes = {"is_loading": False, "list_status": ListStatus.ERROR, "last_error": exc}
            if record_outcome:
                changes["last_outcome"] = AttendanceOutcome.SERVER_ERROR
            self._publish(**changes)
            return

        if not self._is_current_refresh(seq):
            return
        log.debug("Loaded %d events", len(events), layer="debug")
        self._publish(
            events=events,
            is_loading=False,
            list_status=ListStatus.LOADED,
            needs_login=False,
            last_error=None,
        )

    def _is_current_refresh(self, seq: int) -> bool:
        if self._closed or seq != self._refresh_seq:
            log.debug("Discarding superseded refresh #%d (latest #%d)", seq, self._refresh_seq, layer="debug")
            return False
        return True

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------
    async def handle_scan_result(self, result: ScanResult) -> Optional[AttendanceOutcome]:
        """Entry point for the QR collaborator; anything but a decoded text is a no-op."""
        if result.kind is not ScanResultKind.SUCCESS:
            log.debug("Ignoring scan result %s", result.kind.value, layer="debug")
            return None
        return await self.submit_scan(result.text)

    async def submit_scan(self, raw: Optional[str]) -> Optional[AttendanceOutcome]:
        """Parse and submit a scanned payload.

        Returns the outcome, or None when the payload was malformed, the
        request never completed, or the scan was abandoned meanwhile.
        """
        if self._closed:
            return None
        epoch = self._scan_epoch

        try:
            command = parse_scan_payload(raw)
        except MalformedPayloadError as exc:
            log.warning("Ignoring unreadable QR code: %s", exc.reason)
            self._publish(scan_status=ScanStatus.FAILED, last_error=exc)
            return None

        self._publish(scan_status=ScanStatus.SUBMITTING)
        try:
            outcome = await self._client.submit_attendance(command)
        except ApiError as exc:
            if not self._is_current_scan(epoch):
                return None
            log.warning("Attendance submission failed: %s", exc)
            self._publish(scan_status=ScanStatus.FAILED, last_error=exc)
            return None

        if not self._is_current_scan(epoch):
            return None

        self._publish(scan_status=ScanStatus.SUBMITTED, last_outcome=outcome, last_error=None)
        if outcome is AttendanceOutcome.SUCCESS:
            log.info("Attendance recorded for event %s", command.event_id, layer="success")
            self._emit(SessionSignal.ATTENDANCE_SUCCEEDED)
            await self._refresh(record_outcome=False)
        elif outcome is AttendanceOutcome.UNAUTHENTICATED:
            self._request_login()
        else:
            log.info("Attendance for event %s: %s", command.event_id, outcome.value)
        return outcome

    def cancel_scan(self) -> None:
        """Abandon the in-flight submission, if any."""
        self._scan_epoch += 1
        if not self._closed and self._state.scan_status is ScanStatus.SUBMITTING:
            self._publish(scan_status=ScanStatus.IDLE)

    def _is_current_scan(self, epoch: int) -> bool:
        if self._closed or epoch != self._scan_epoch:
            log.debug("Discarding scan abandoned in epoch #%d", epoch, layer="debug")
            return False
        return True

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    def close(self) -> None:
        """End the session; late results from in-flight calls are dropped."""
        self._closed = True
        self._refresh_seq += 1
        self._scan_epoch += 1
        self._listeners.clear()


__all__ = ["AttendanceSession", "AttendanceAPI", "Listener"]
