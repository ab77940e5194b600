from pathlib import Path

import pytest

from sideway_qr.config import ensure_env_file, load_settings

ENV_KEYS = ("SIDEWAY_API_URL", "SIDEWAY_DATA_DIR", "SIDEWAY_TIMEOUT_SECONDS", "SIDEWAY_EMAIL", "SIDEWAY_PASSWORD")


@pytest.fixture
def clean_env(monkeypatch):
    # setenv before delenv so monkeypatch also removes values load_dotenv adds
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return monkeypatch


def test_defaults_without_env_file(clean_env, tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "missing.env")

    assert settings.api_url == "http://localhost:3000"
    assert settings.data_dir.name == ".sideway_qr"
    assert settings.timeout_seconds == 15.0
    assert settings.email is None


def test_env_file_fills_missing_values_only(clean_env, tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        'SIDEWAY_API_URL="https://qr.example.com/api/"\n'
        f'SIDEWAY_DATA_DIR="{tmp_path / "data"}"\n'
        'SIDEWAY_EMAIL="from-file@example.com"\n',
        encoding="utf-8",
    )
    clean_env.setenv("SIDEWAY_EMAIL", "from-env@example.com")

    settings = load_settings(env_file)

    assert settings.api_url == "https://qr.example.com/api"
    assert settings.data_dir == tmp_path / "data"
    assert settings.email == "from-env@example.com"


@pytest.mark.parametrize("raw", ["abc", "0", "-3"])
def test_invalid_timeout_falls_back_to_default(clean_env, tmp_path: Path, raw) -> None:
    clean_env.setenv("SIDEWAY_TIMEOUT_SECONDS", raw)

    assert load_settings(tmp_path / "missing.env").timeout_seconds == 15.0


def test_ensure_env_file_never_overwrites(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"

    assert ensure_env_file(env_file) is True
    env_file.write_text("CUSTOM=1\n", encoding="utf-8")

    assert ensure_env_file(env_file) is False
    assert env_file.read_text(encoding="utf-8") == "CUSTOM=1\n"
