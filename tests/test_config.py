from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from backend.app.config import load_settings


@pytest.fixture(autouse=True)
def _clear_movie_service_env(monkeypatch: pytest.MonkeyPatch) -> None:  # pyright: ignore[reportUnusedFunction]
    for name in (
        "MOVIE_SERVICE_DATA_DIR",
        "MOVIE_SERVICE_LOG_DIR",
        "MOVIE_SERVICE_LOG_LEVEL",
        "MOVIE_SERVICE_TELEMETRY_ENABLED",
        "MOVIE_SERVICE_TELEMETRY_SINK",
        "MOVIE_SERVICE_SOAP_ENDPOINT_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


def test_load_settings_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    settings = load_settings()

    assert settings.data_dir == (tmp_path / ".movie-service").resolve()
    assert settings.log_dir == (tmp_path / ".movie-service" / "logs").resolve()
    assert settings.log_level == "INFO"
    assert settings.telemetry_enabled is True
    assert settings.telemetry_sink == "log"
    assert settings.soap_endpoint_path == "/ws"


def test_log_dir_follows_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MOVIE_SERVICE_DATA_DIR", str(tmp_path / "state"))

    settings = load_settings()

    assert settings.log_dir == (tmp_path / "state" / "logs").resolve()


def test_explicit_log_dir_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MOVIE_SERVICE_DATA_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("MOVIE_SERVICE_LOG_DIR", str(tmp_path / "elsewhere"))

    settings = load_settings()

    assert settings.log_dir == (tmp_path / "elsewhere").resolve()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("0", False), ("off", False), ("yes", True), ("garbage", True)],
)
def test_telemetry_enabled_coercion(
    monkeypatch: pytest.MonkeyPatch,
    raw: str,
    expected: bool,
) -> None:
    monkeypatch.setenv("MOVIE_SERVICE_TELEMETRY_ENABLED", raw)
    assert load_settings().telemetry_enabled is expected


def test_telemetry_sink_is_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MOVIE_SERVICE_TELEMETRY_SINK", " NONE ")
    assert load_settings().telemetry_sink == "none"


def test_unknown_telemetry_sink_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MOVIE_SERVICE_TELEMETRY_SINK", "otlp")
    with pytest.raises(ValidationError):
        load_settings()


def test_soap_endpoint_path_must_be_absolute(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MOVIE_SERVICE_SOAP_ENDPOINT_PATH", "ws")
    with pytest.raises(ValidationError):
        load_settings()
