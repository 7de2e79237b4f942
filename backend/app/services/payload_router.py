from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, NamedTuple

from lxml import etree
from pydantic import BaseModel

from backend.app.services.soap_envelope import model_to_payload, payload_to_model
from backend.app.telemetry import TelemetryClient

PayloadHandler = Callable[[Any], BaseModel]


class PayloadRoot(NamedTuple):
    namespace: str
    local_part: str

    @classmethod
    def of(cls, element: etree._Element) -> PayloadRoot:
        qname = etree.QName(element)
        return cls(namespace=qname.namespace or "", local_part=qname.localname)

    def __str__(self) -> str:
        return f"{{{self.namespace}}}{self.local_part}"


class NoEndpointFoundError(LookupError):
    def __init__(self, root: PayloadRoot) -> None:
        super().__init__(f"No endpoint mapping found for {root}")
        self.root = root


@dataclass(frozen=True)
class PayloadRoute:
    handler: PayloadHandler
    request_type: type[BaseModel]
    response_name: str


class PayloadRouter:
    """Routing table from payload root element names to endpoint handlers."""

    def __init__(self, *, telemetry: TelemetryClient | None = None) -> None:
        self._routes: dict[PayloadRoot, PayloadRoute] = {}
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()

    def register(
        self,
        root: PayloadRoot,
        handler: PayloadHandler,
        *,
        request_type: type[BaseModel],
        response_name: str,
    ) -> None:
        if root in self._routes:
            raise ValueError(f"An endpoint is already registered for {root}")
        self._routes[root] = PayloadRoute(
            handler=handler,
            request_type=request_type,
            response_name=response_name,
        )

    def roots(self) -> list[PayloadRoot]:
        return list(self._routes)

    def resolve(self, root: PayloadRoot) -> PayloadRoute:
        route = self._routes.get(root)
        if route is None:
            raise NoEndpointFoundError(root)
        return route

    def dispatch(self, payload: etree._Element) -> etree._Element:
        root = PayloadRoot.of(payload)
        route = self.resolve(root)
        with self._telemetry.span(
            "soap.dispatch",
            namespace=root.namespace,
            operation=root.local_part,
        ):
            request = payload_to_model(payload, route.request_type)
            response = route.handler(request)
            return model_to_payload(response, route.response_name, root.namespace)
