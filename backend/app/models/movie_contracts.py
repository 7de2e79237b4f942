from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Movie(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    year: int
    country: str
    genre: str
    director: str


class GetMovieRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None


class GetMovieResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    movie: Movie | None = None
