"""Environment-driven configuration for SidewayQR.

Values come from the process environment, with defaults filled from a
``.env`` file (existing variables are never overridden).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_API_URL = "http://localhost:3000"
DEFAULT_DATA_DIR = Path(os.path.expanduser("~")) / ".sideway_qr"
DEFAULT_TIMEOUT_SECONDS = 15.0

ENV_TEMPLATE = """
# API base URL
SIDEWAY_API_URL="http://localhost:3000"

# Where the session cookie is persisted
# SIDEWAY_DATA_DIR=""

# Optional login defaults for the CLI
SIDEWAY_EMAIL=""
SIDEWAY_PASSWORD=""

# quiet | user | debug
LOG_PROFILE=user
""".lstrip()


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    data_dir: Path = DEFAULT_DATA_DIR
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    email: Optional[str] = None
    password: Optional[str] = None


def _env_float(name: str, default: float) -> float:
    try:
        value = float(os.getenv(name, str(default)))
    except ValueError:
        return default
    return value if value > 0 else default


def ensure_env_file(path: Path) -> bool:
    """Create a template ``.env`` at ``path`` if missing. Returns True when written."""
    if path.exists():
        return False
    path.write_text(ENV_TEMPLATE, encoding="utf-8")
    return True


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Load ``.env`` defaults and build a :class:`Settings` snapshot."""
    load_dotenv(dotenv_path=env_file or Path(".env"), override=False)

    api_url = (os.getenv("SIDEWAY_API_URL") or DEFAULT_API_URL).strip().rstrip("/")
    data_dir_raw = os.getenv("SIDEWAY_DATA_DIR")
    data_dir = Path(data_dir_raw).expanduser() if data_dir_raw else DEFAULT_DATA_DIR

    return Settings(
        api_url=api_url,
        data_dir=data_dir,
        timeout_seconds=_env_float("SIDEWAY_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        email=os.getenv("SIDEWAY_EMAIL") or None,
        password=os.getenv("SIDEWAY_PASSWORD") or None,
    )
