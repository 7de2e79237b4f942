from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest
from lxml import etree

from backend.app.models.movie_contracts import GetMovieRequest, GetMovieResponse
from backend.app.repositories.movie_repository import MovieRepository
from backend.app.services.movie_endpoint import GET_MOVIE_ROOT, NAMESPACE_URI, MovieEndpoint
from backend.app.services.payload_router import (
    NoEndpointFoundError,
    PayloadRoot,
    PayloadRouter,
)
from backend.app.telemetry import TelemetryClient


class _CaptureSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self.events.append((event_name, dict(attributes)))


def _request_payload(name: str | None) -> etree._Element:
    element = etree.Element(etree.QName(NAMESPACE_URI, "getMovieRequest"))
    if name is not None:
        etree.SubElement(element, etree.QName(NAMESPACE_URI, "name")).text = name
    return element


def _build_router(sink: _CaptureSink | None = None) -> PayloadRouter:
    repository = MovieRepository()
    repository.initialize()
    telemetry = (
        TelemetryClient(enabled=True, sink=sink)
        if sink is not None
        else TelemetryClient.disabled()
    )
    router = PayloadRouter(telemetry=telemetry)
    MovieEndpoint(repository).register(router)
    return router


def test_movie_endpoint_registers_get_movie_route() -> None:
    router = _build_router()

    assert router.roots() == [
        PayloadRoot(namespace="http://pheely.io/get-movie-web-service", local_part="getMovieRequest")
    ]
    route = router.resolve(GET_MOVIE_ROOT)
    assert route.request_type is GetMovieRequest
    assert route.response_name == "getMovieResponse"


def test_register_rejects_duplicate_roots() -> None:
    router = _build_router()

    with pytest.raises(ValueError, match="already registered"):
        router.register(
            GET_MOVIE_ROOT,
            lambda request: GetMovieResponse(),
            request_type=GetMovieRequest,
            response_name="getMovieResponse",
        )


def test_resolve_unknown_root_raises() -> None:
    router = _build_router()
    root = PayloadRoot(namespace=NAMESPACE_URI, local_part="deleteMovieRequest")

    with pytest.raises(NoEndpointFoundError) as exc_info:
        router.resolve(root)
    assert exc_info.value.root == root


def test_routing_key_includes_namespace() -> None:
    router = _build_router()
    payload = etree.Element(etree.QName("urn:other", "getMovieRequest"))

    with pytest.raises(NoEndpointFoundError):
        router.dispatch(payload)


def test_dispatch_encodes_found_movie() -> None:
    router = _build_router()

    response = router.dispatch(_request_payload("Titanic"))

    assert response.tag == f"{{{NAMESPACE_URI}}}getMovieResponse"
    assert response.findtext(f"{{{NAMESPACE_URI}}}movie/{{{NAMESPACE_URI}}}director") == (
        "James Cameron"
    )


def test_dispatch_encodes_missing_movie_as_empty_response() -> None:
    router = _build_router()

    response = router.dispatch(_request_payload("Inception"))

    assert response.tag == f"{{{NAMESPACE_URI}}}getMovieResponse"
    assert len(response) == 0


def test_dispatch_emits_telemetry() -> None:
    sink = _CaptureSink()
    router = _build_router(sink)

    router.dispatch(_request_payload("Spectre"))

    assert [name for name, _ in sink.events] == ["soap.dispatch.start", "soap.dispatch.finish"]
    _, attributes = sink.events[-1]
    assert attributes["operation"] == "getMovieRequest"
    assert attributes["namespace"] == NAMESPACE_URI
    assert isinstance(attributes["duration_ms"], int)


def test_dispatch_propagates_precondition_failure() -> None:
    sink = _CaptureSink()
    router = _build_router(sink)

    with pytest.raises(ValueError, match="must not be null"):
        router.dispatch(_request_payload(None))

    assert sink.events[-1][0] == "soap.dispatch.error"
    assert sink.events[-1][1]["error_type"] == "ValueError"
