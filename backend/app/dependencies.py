from __future__ import annotations

from functools import lru_cache

from backend.app.config import AppSettings, load_settings
from backend.app.repositories.movie_repository import MovieRepository
from backend.app.services.movie_endpoint import MovieEndpoint
from backend.app.services.payload_router import PayloadRouter
from backend.app.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_movie_repository() -> MovieRepository:
    repository = MovieRepository()
    repository.initialize()
    return repository


@lru_cache(maxsize=1)
def get_payload_router() -> PayloadRouter:
    router = PayloadRouter(telemetry=get_telemetry())
    MovieEndpoint(get_movie_repository()).register(router)
    return router


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


def reset_cached_dependencies() -> None:
    get_payload_router.cache_clear()
    get_movie_repository.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
