from __future__ import annotations

import types
from typing import Any, Literal, TypeVar, Union, get_args, get_origin

from lxml import etree
from pydantic import BaseModel, ValidationError

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
SOAP_ENV_PREFIX = "SOAP-ENV"
PAYLOAD_PREFIX = "ns2"

FaultCode = Literal["VersionMismatch", "MustUnderstand", "Client", "Server"]

ModelT = TypeVar("ModelT", bound=BaseModel)

_PARSER = etree.XMLParser(
    resolve_entities=False,
    no_network=True,
    remove_blank_text=True,
)


class SoapFault(Exception):
    def __init__(self, code: FaultCode, message: str) -> None:
        super().__init__(message)
        self.code: FaultCode = code
        self.message = message


def parse_envelope(body: bytes) -> etree._Element:
    """Return the single payload element carried in a SOAP 1.1 Body."""
    if not body.strip():
        raise SoapFault("Client", "Request body is empty.")
    try:
        root = etree.fromstring(body, _PARSER)
    except etree.XMLSyntaxError as exc:
        raise SoapFault("Client", f"Request body is not well-formed XML: {exc}") from exc

    root_name = etree.QName(root)
    if root_name.localname != "Envelope":
        raise SoapFault("Client", f"Expected a SOAP Envelope, got {root_name.localname}.")
    if root_name.namespace != SOAP_ENV_NS:
        raise SoapFault(
            "VersionMismatch",
            f"Unsupported SOAP envelope namespace: {root_name.namespace}",
        )

    body_element = root.find(f"{{{SOAP_ENV_NS}}}Body")
    if body_element is None:
        raise SoapFault("Client", "SOAP Envelope has no Body.")

    payloads = _element_children(body_element)
    if len(payloads) != 1:
        raise SoapFault(
            "Client",
            f"SOAP Body must carry exactly one payload element, found {len(payloads)}.",
        )
    return payloads[0]


def payload_to_model(element: etree._Element, model_type: type[ModelT]) -> ModelT:
    local_name = etree.QName(element).localname
    try:
        return model_type.model_validate(_element_to_fields(element, model_type))
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise SoapFault("Client", f"Invalid {local_name} payload: {details}") from exc


def model_to_payload(model: BaseModel, local_name: str, namespace: str) -> etree._Element:
    element = etree.Element(
        etree.QName(namespace, local_name),
        nsmap={PAYLOAD_PREFIX: namespace},
    )
    _append_fields(element, model, namespace)
    return element


def build_envelope(payload: etree._Element) -> bytes:
    envelope, body = _new_envelope()
    body.append(payload)
    return _serialize(envelope)


def build_fault_envelope(fault: SoapFault) -> bytes:
    envelope, body = _new_envelope()
    fault_element = etree.SubElement(body, etree.QName(SOAP_ENV_NS, "Fault"))
    etree.SubElement(fault_element, "faultcode").text = f"{SOAP_ENV_PREFIX}:{fault.code}"
    faultstring = etree.SubElement(fault_element, "faultstring")
    faultstring.set("{http://www.w3.org/XML/1998/namespace}lang", "en")
    faultstring.text = fault.message
    return _serialize(envelope)


def _new_envelope() -> tuple[etree._Element, etree._Element]:
    envelope = etree.Element(
        etree.QName(SOAP_ENV_NS, "Envelope"),
        nsmap={SOAP_ENV_PREFIX: SOAP_ENV_NS},
    )
    etree.SubElement(envelope, etree.QName(SOAP_ENV_NS, "Header"))
    body = etree.SubElement(envelope, etree.QName(SOAP_ENV_NS, "Body"))
    return envelope, body


def _serialize(envelope: etree._Element) -> bytes:
    return etree.tostring(envelope, xml_declaration=True, encoding="UTF-8")


def _element_children(element: etree._Element) -> list[etree._Element]:
    # Comments and processing instructions have non-string tags.
    return [child for child in element if isinstance(child.tag, str)]


def _element_to_fields(element: etree._Element, model_type: type[BaseModel]) -> dict[str, Any]:
    namespace = etree.QName(element).namespace
    parent_name = etree.QName(element).localname
    fields: dict[str, Any] = {}
    for child in _element_children(element):
        child_name = etree.QName(child)
        field = model_type.model_fields.get(child_name.localname)
        if field is None or child_name.namespace != namespace:
            raise SoapFault(
                "Client",
                f"Unexpected element {child_name.text} in {parent_name}.",
            )
        if child_name.localname in fields:
            raise SoapFault(
                "Client",
                f"Repeated element {child_name.text} in {parent_name}.",
            )
        if _is_nil(child):
            fields[child_name.localname] = None
            continue
        nested_type = _nested_model_type(field.annotation)
        if nested_type is not None:
            fields[child_name.localname] = _element_to_fields(child, nested_type)
        else:
            fields[child_name.localname] = _leaf_text(child)
    return fields


def _is_nil(element: etree._Element) -> bool:
    return element.get(f"{{{XSI_NS}}}nil", "").strip() in {"true", "1"}


def _leaf_text(element: etree._Element) -> str:
    nested = _element_children(element)
    if nested:
        raise SoapFault(
            "Client",
            f"Unexpected element {etree.QName(nested[0]).text} in {etree.QName(element).localname}.",
        )
    # XPath string value: text split by comments or processing instructions is rejoined.
    return str(element.xpath("string()"))


def _nested_model_type(annotation: Any) -> type[BaseModel] | None:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    if get_origin(annotation) in (Union, types.UnionType):
        for argument in get_args(annotation):
            if isinstance(argument, type) and issubclass(argument, BaseModel):
                return argument
    return None


def _append_fields(parent: etree._Element, model: BaseModel, namespace: str) -> None:
    for field_name in type(model).model_fields:
        value = getattr(model, field_name)
        if value is None:
            continue
        child = etree.SubElement(parent, etree.QName(namespace, field_name))
        if isinstance(value, BaseModel):
            _append_fields(child, value, namespace)
        else:
            child.text = str(value)
