"""Command-line front end for the check-in pipeline.

Usage:
    sideway-qr login [--email you@example.com]
    sideway-qr events
    sideway-qr scan "42:ABC123"
    sideway-qr logout

Configuration is read from the environment and ``.env`` (see
``sideway_qr.config.settings``).
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import os
import sys
from pathlib import Path
from typing import List, Optional

from .api_client import APIClient
from .attendance_session import AttendanceSession
from .config import Settings, ensure_env_file, load_settings
from .models import AttendanceOutcome, ListStatus, SessionSignal, SessionState
from .session_store import FileSessionStore
from .utils.logger import debug_detail, logger, progress, set_log_profile, spinner, step, success

ACCEPTED_OUTCOMES = (AttendanceOutcome.SUCCESS, AttendanceOutcome.ALREADY_MARKED)


def format_state(state: SessionState) -> List[str]:
    """Render a snapshot as plain text lines."""
    if state.list_status is ListStatus.IDLE and not state.events:
        return ["No events loaded."]
    lines = [
        f"{event.id:>5}  {event.name}  "
        f"{event.start_time:%Y-%m-%d %H:%M} → {event.end_time:%Y-%m-%d %H:%M}"
        for event in state.events
    ]
    if state.is_empty:
        lines.append("No attended events yet.")
    if state.list_status is ListStatus.ERROR:
        lines.append(f"(showing cached list: {state.last_error})")
    return lines


def scan_exit_code(outcome: Optional[AttendanceOutcome]) -> int:
    """Exit status for `scan`: zero only when attendance is on record."""
    return 0 if outcome in ACCEPTED_OUTCOMES else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sideway-qr",
        description="SidewayQR: scan-to-attend check-in from the command line",
    )
    parser.add_argument("--env-file", default=os.getenv("ENV_FILE", ".env"), help="Path to the .env file")
    parser.add_argument("--debug", action="store_true", help="Enable verbose debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Log in and store the session cookie")
    login.add_argument("--email", help="Account email (defaults to SIDEWAY_EMAIL)")
    login.add_argument("--password", help="Account password (defaults to SIDEWAY_PASSWORD, else prompted)")

    sub.add_parser("events", help="List attended events")

    scan = sub.add_parser("scan", help="Submit a scanned QR payload (<eventId>:<code>)")
    scan.add_argument("payload", help="Decoded QR text")

    sub.add_parser("logout", help="Forget the stored session cookie")
    sub.add_parser("init", help="Write a template .env file")
    return parser


def _warn_on_login_required(signal: SessionSignal) -> None:
    if signal is SessionSignal.NEEDS_LOGIN:
        logger.warning("Not logged in; run `sideway-qr login` first.")


def _print_state(state: SessionState) -> None:
    for line in format_state(state):
        print(line)


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    debug_detail(f"API {settings.api_url}, data dir {settings.data_dir}, timeout {settings.timeout_seconds}s")
    store = FileSessionStore(settings.data_dir)
    async with APIClient(settings.api_url, store, timeout_seconds=settings.timeout_seconds) as client:
        session = AttendanceSession(client, store)
        session.subscribe(_warn_on_login_required)
        try:
            if args.command == "login":
                email = args.email or settings.email or input("Email: ").strip()
                password = args.password or settings.password or getpass.getpass("Password: ")
                async with spinner(f"Logging in to {settings.api_url}") as spin:
                    ok = await session.login(email, password)
                    if not ok:
                        spin.fail(str(session.state.last_error))
                if ok:
                    _print_state(session.state)
                return 0 if ok else 1

            if args.command == "logout":
                await session.logout()
                success("Session cookie cleared")
                return 0

            if not await session.ensure_authenticated():
                return 1

            if args.command == "events":
                step("Fetching events")
                await session.refresh()
                _print_state(session.state)
                return 0 if session.state.list_status is ListStatus.LOADED else 1

            if args.command == "scan":
                progress(f"Submitting {args.payload.strip()}")
                outcome = await session.submit_scan(args.payload)
                if outcome is None:
                    logger.error(str(session.state.last_error))
                    return 1
                print(outcome.value)
                if session.state.list_status is ListStatus.LOADED:
                    _print_state(session.state)
                return scan_exit_code(outcome)
        finally:
            session.close()
    return 2


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.debug:
        set_log_profile("debug")

    env_path = Path(args.env_file)
    if args.command == "init":
        if ensure_env_file(env_path):
            success(f"Created template {env_path}")
        else:
            logger.warning("%s already exists; leaving it untouched", env_path)
        return 0

    settings = load_settings(env_path)
    return asyncio.run(_run(args, settings))


if __name__ == "__main__":
    sys.exit(main())
