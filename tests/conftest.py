from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from backend.app.dependencies import reset_cached_dependencies
from backend.app.main import create_app


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    data_dir = tmp_path / "runtime-data"
    data_dir.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("MOVIE_SERVICE_DATA_DIR", str(data_dir))
    monkeypatch.setenv("MOVIE_SERVICE_TELEMETRY_SINK", "log")
    monkeypatch.delenv("MOVIE_SERVICE_LOG_DIR", raising=False)
    monkeypatch.delenv("MOVIE_SERVICE_SOAP_ENDPOINT_PATH", raising=False)
    reset_cached_dependencies()

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client

    reset_cached_dependencies()
