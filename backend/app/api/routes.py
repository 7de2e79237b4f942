from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.app.dependencies import get_payload_router
from backend.app.services.payload_router import (
    NoEndpointFoundError,
    PayloadRoot,
    PayloadRouter,
)
from backend.app.services.soap_envelope import (
    SoapFault,
    build_envelope,
    build_fault_envelope,
    parse_envelope,
)

LOGGER = logging.getLogger("movie_service.soap")

SOAP_MEDIA_TYPE = "text/xml; charset=utf-8"


def _soap_response(content: bytes, *, status_code: int = 200) -> Response:
    return Response(content=content, status_code=status_code, media_type=SOAP_MEDIA_TYPE)


def _fault_response(fault: SoapFault) -> Response:
    # SOAP 1.1 over HTTP reports every fault envelope with status 500 (WS-I BP R1126).
    return _soap_response(build_fault_envelope(fault), status_code=500)


async def handle_soap_request(
    request: Request,
    payload_router: Annotated[PayloadRouter, Depends(get_payload_router)],
) -> Response:
    body = await request.body()
    try:
        payload = parse_envelope(body)
    except SoapFault as fault:
        LOGGER.info("rejected soap envelope fault_code=%s reason=%s", fault.code, fault.message)
        return _fault_response(fault)

    root = PayloadRoot.of(payload)
    context_tokens = bind_contextvars(
        soap_namespace=root.namespace,
        soap_operation=root.local_part,
    )
    try:
        response_payload = payload_router.dispatch(payload)
    except NoEndpointFoundError as exc:
        LOGGER.warning("no endpoint mapping found root=%s", exc.root)
        return _fault_response(SoapFault("Client", str(exc)))
    except SoapFault as fault:
        LOGGER.info("rejected soap payload fault_code=%s reason=%s", fault.code, fault.message)
        return _fault_response(fault)
    except ValueError as exc:
        LOGGER.warning("soap endpoint precondition failed root=%s reason=%s", root, exc)
        return _fault_response(SoapFault("Server", str(exc)))
    finally:
        reset_contextvars(**context_tokens)

    return _soap_response(build_envelope(response_payload))


def build_router(soap_endpoint_path: str) -> APIRouter:
    router = APIRouter()
    router.add_api_route(
        soap_endpoint_path,
        handle_soap_request,
        methods=["POST"],
        tags=["soap"],
        operation_id="soap_dispatch",
        response_class=Response,
    )
    return router
