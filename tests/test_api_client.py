import asyncio
from datetime import datetime, timezone

import pytest
from aiohttp import web
from aiohttp import test_utils

from sideway_qr import (
    APIClient,
    AttendanceOutcome,
    AuthServerError,
    InvalidCredentialsError,
    MemorySessionStore,
    ScanCommand,
    ServerError,
    UnauthenticatedError,
)

HITS = web.AppKey("hits", list)

EVENTS_PAYLOAD = [
    {"id": 3, "name": "Compilers lecture", "startDate": "2024-03-04T09:00:00Z", "endDate": "2024-03-04T11:00:00Z"},
    {"id": 1, "name": "Databases lab", "startDate": 1709802000000, "endDate": 1709809200000},
]


def _make_app(*, login_status=200, events_status=200, events_body=None, attend_status=201, cookie="abc123"):
    app = web.Application()
    app[HITS] = []

    async def login(request):
        body = await request.json()
        app[HITS].append(("login", body, request.headers.get("Cookie")))
        response = web.json_response({"message": "ok"}, status=login_status)
        if cookie:
            response.set_cookie("connect.sid", cookie)
        return response

    async def events(request):
        app[HITS].append(("events", None, request.headers.get("Cookie")))
        if events_body is not None:
            return web.Response(text=events_body, status=events_status, content_type="application/json")
        return web.json_response(EVENTS_PAYLOAD, status=events_status)

    async def attend(request):
        body = await request.json()
        app[HITS].append((f"attend/{request.match_info['event_id']}", body, request.headers.get("Cookie")))
        return web.json_response({"success": True}, status=attend_status)

    app.router.add_post("/login", login)
    app.router.add_get("/events", events)
    app.router.add_post("/events/{event_id}/attend", attend)
    return app


def _run_with_server(app, store, scenario):
    async def runner():
        async with test_utils.TestServer(app) as server:
            base_url = str(server.make_url("/")).rstrip("/")
            async with APIClient(base_url, store, timeout_seconds=5) as client:
                return await scenario(client)

    return asyncio.run(runner())


def test_login_persists_cookie_from_response() -> None:
    app = _make_app()
    store = MemorySessionStore()

    credential = _run_with_server(app, store, lambda client: client.login("student1@email.com", "student1"))

    assert credential == "connect.sid=abc123"
    assert asyncio.run(store.get()) == "connect.sid=abc123"
    assert app[HITS] == [("login", {"email": "student1@email.com", "password": "student1"}, None)]


@pytest.mark.parametrize(
    "status,error",
    [
        (401, InvalidCredentialsError),
        (400, InvalidCredentialsError),
        (500, AuthServerError),
        (503, AuthServerError),
    ],
)
def test_login_failure_never_persists(status, error) -> None:
    store = MemorySessionStore("old-cookie")

    with pytest.raises(error) as excinfo:
        _run_with_server(_make_app(login_status=status), store, lambda client: client.login("a@b.c", "x"))

    assert excinfo.value.status == status
    assert asyncio.run(store.get()) == "old-cookie"


def test_login_without_cookie_is_a_server_error() -> None:
    store = MemorySessionStore()

    with pytest.raises(AuthServerError):
        _run_with_server(_make_app(cookie=None), store, lambda client: client.login("a@b.c", "x"))

    assert asyncio.run(store.get()) is None


def test_fetch_events_without_credential_skips_network() -> None:
    app = _make_app()

    with pytest.raises(UnauthenticatedError):
        _run_with_server(app, MemorySessionStore(), lambda client: client.fetch_events())

    assert app[HITS] == []


def test_fetch_events_attaches_cookie_and_keeps_server_order() -> None:
    app = _make_app()

    events = _run_with_server(app, MemorySessionStore("connect.sid=abc123"), lambda client: client.fetch_events())

    assert [event.id for event in events] == [3, 1]
    assert events[0].name == "Compilers lecture"
    assert events[0].start_time == datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)
    assert events[1].end_time == datetime.fromtimestamp(1709809200, tz=timezone.utc)
    assert app[HITS] == [("events", None, "connect.sid=abc123")]


def test_fetch_events_empty_list_is_valid() -> None:
    app = _make_app(events_body="[]")

    events = _run_with_server(app, MemorySessionStore("c=1"), lambda client: client.fetch_events())

    assert events == ()


def test_fetch_events_rejected_cookie_is_unauthenticated() -> None:
    with pytest.raises(UnauthenticatedError):
        _run_with_server(_make_app(events_status=401), MemorySessionStore("c=1"), lambda client: client.fetch_events())


@pytest.mark.parametrize("status", [403, 404, 500, 502])
def test_fetch_events_other_status_is_server_error(status) -> None:
    with pytest.raises(ServerError) as excinfo:
        _run_with_server(_make_app(events_status=status), MemorySessionStore("c=1"), lambda client: client.fetch_events())

    assert excinfo.value.status == status


@pytest.mark.parametrize(
    "body",
    [
        "not json",
        '{"id": 1}',
        '[{"id": "x", "name": "n", "startDate": 0, "endDate": 0}]',
        '[{"id": 1, "name": "n", "startDate": Infinity, "endDate": 0}]',
        '[{"id": 1, "name": "n", "startDate": NaN, "endDate": 0}]',
        '[{"id": 1, "name": "n", "startDate": 1e20, "endDate": 0}]',
    ],
)
def test_fetch_events_bad_body_is_server_error(body) -> None:
    with pytest.raises(ServerError) as excinfo:
        _run_with_server(_make_app(events_body=body), MemorySessionStore("c=1"), lambda client: client.fetch_events())

    assert excinfo.value.status == 200


@pytest.mark.parametrize(
    "status,outcome",
    [
        (201, AttendanceOutcome.SUCCESS),
        (200, AttendanceOutcome.ALREADY_MARKED),
        (401, AttendanceOutcome.UNAUTHENTICATED),
        (400, AttendanceOutcome.INVALID),
        (422, AttendanceOutcome.INVALID),
        (500, AttendanceOutcome.SERVER_ERROR),
        (503, AttendanceOutcome.SERVER_ERROR),
    ],
)
def test_submit_attendance_classifies_by_status_only(status, outcome) -> None:
    app = _make_app(attend_status=status)

    result = _run_with_server(
        app, MemorySessionStore("connect.sid=abc123"), lambda client: client.submit_attendance(ScanCommand(42, "ABC123"))
    )

    assert result is outcome
    assert app[HITS] == [("attend/42", {"code": "ABC123"}, "connect.sid=abc123")]


def test_submit_attendance_without_credential_skips_network() -> None:
    app = _make_app()

    result = _run_with_server(app, MemorySessionStore(), lambda client: client.submit_attendance(ScanCommand(1, "X")))

    assert result is AttendanceOutcome.UNAUTHENTICATED
    assert app[HITS] == []


def test_unreachable_server_is_a_server_error_without_status() -> None:
    async def scenario():
        async with APIClient("http://127.0.0.1:1", MemorySessionStore("c=1"), timeout_seconds=2) as client:
            await client.fetch_events()

    with pytest.raises(ServerError) as excinfo:
        asyncio.run(scenario())

    assert excinfo.value.status is None
