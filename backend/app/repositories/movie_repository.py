from __future__ import annotations

import logging

from backend.app.models.movie_contracts import Movie

LOGGER = logging.getLogger("movie_service.repository")

SEED_MOVIES: tuple[Movie, ...] = (
    Movie(
        name="Titanic",
        year=1997,
        country="USA",
        genre="epic romance-disaster",
        director="James Cameron",
    ),
    Movie(
        name="Pearl Harbor",
        year=2001,
        country="USA",
        genre="romantic period war drama",
        director="Michael Bay",
    ),
    Movie(
        name="Spectre",
        year=2015,
        country="USA",
        genre="spy",
        director="Sam Mendes",
    ),
)


class MovieRepository:
    """In-memory movie table keyed by exact movie name.

    The table is filled by `initialize()` and only read afterwards, so
    concurrent lookups need no locking.
    """

    def __init__(self, seed: tuple[Movie, ...] = SEED_MOVIES) -> None:
        self._seed = seed
        self._movies: dict[str, Movie] | None = None

    def initialize(self) -> None:
        movies: dict[str, Movie] = {}
        for movie in self._seed:
            movies[movie.name] = movie
        # Swap in a fully built table so readers never see a partial one.
        self._movies = movies
        LOGGER.info("movie table initialized count=%s", len(movies))

    @property
    def is_initialized(self) -> bool:
        return self._movies is not None

    def __len__(self) -> int:
        if self._movies is None:
            return 0
        return len(self._movies)

    def find_movie(self, name: str | None) -> Movie | None:
        if name is None:
            raise ValueError("The movie's name must not be null")
        if self._movies is None:
            raise RuntimeError("MovieRepository.initialize() must run before lookups.")
        return self._movies.get(name)
