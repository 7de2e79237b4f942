from __future__ import annotations

from backend.app.models.movie_contracts import GetMovieRequest, GetMovieResponse
from backend.app.repositories.movie_repository import MovieRepository
from backend.app.services.payload_router import PayloadRoot, PayloadRouter

NAMESPACE_URI = "http://pheely.io/get-movie-web-service"
GET_MOVIE_ROOT = PayloadRoot(namespace=NAMESPACE_URI, local_part="getMovieRequest")
GET_MOVIE_RESPONSE_NAME = "getMovieResponse"


class MovieEndpoint:
    def __init__(self, movie_repository: MovieRepository) -> None:
        self._movie_repository = movie_repository

    def register(self, router: PayloadRouter) -> None:
        router.register(
            GET_MOVIE_ROOT,
            self.get_movie,
            request_type=GetMovieRequest,
            response_name=GET_MOVIE_RESPONSE_NAME,
        )

    def get_movie(self, request: GetMovieRequest) -> GetMovieResponse:
        return GetMovieResponse(movie=self._movie_repository.find_movie(request.name))
