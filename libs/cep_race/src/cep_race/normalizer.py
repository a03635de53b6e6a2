"""
Per-source payload normalization.

Each source has its own response schema and a field-renaming table into
NormalizedResult. No unit conversion and no validation beyond structural
decoding happens here.
"""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from .exceptions import ParseError, UnknownSourceError
from .models import BrasilAPIResponse, NormalizedResult, ViaCEPResponse

BRASIL_API = "BrasilAPI"
VIACEP = "ViaCEP"


def _from_brasil_api(payload: BrasilAPIResponse) -> NormalizedResult:
    return NormalizedResult(
        key=payload.cep or "",
        street_line=payload.street or "",
        district=payload.neighborhood or "",
        city=payload.city or "",
        region=payload.state or "",
    )


def _from_viacep(payload: ViaCEPResponse) -> NormalizedResult:
    if str(payload.erro).lower() == "true":
        raise ParseError("ViaCEP reported the CEP as not found")
    return NormalizedResult(
        key=payload.cep or "",
        street_line=payload.logradouro or "",
        district=payload.bairro or "",
        city=payload.localidade or "",
        region=payload.uf or "",
    )


_NORMALIZERS: dict[str, tuple[type[BaseModel], Callable[[Any], NormalizedResult]]] = {
    BRASIL_API: (BrasilAPIResponse, _from_brasil_api),
    VIACEP: (ViaCEPResponse, _from_viacep),
}


def registered_sources() -> list[str]:
    """Names of the sources that have a mapping table."""
    return list(_NORMALIZERS)


def is_registered(source_name: str) -> bool:
    return source_name in _NORMALIZERS


def normalize(source_name: str, raw_payload: Any) -> NormalizedResult:
    """
    Map one source's decoded JSON payload into a NormalizedResult.

    Parameters:
        source_name (str): Registered source name, e.g. "BrasilAPI" or "ViaCEP".
        raw_payload (Any): Decoded JSON body as returned by the source.

    Returns:
        NormalizedResult: The payload in the common shape; fields the source
        omitted are empty strings.

    Raises:
        UnknownSourceError: If no mapping table exists for `source_name`.
        ParseError: If the payload is not a JSON object of the source's shape.
    """
    try:
        schema, mapper = _NORMALIZERS[source_name]
    except KeyError:
        raise UnknownSourceError(source_name) from None

    if not isinstance(raw_payload, dict):
        raise ParseError(
            f"{source_name} payload must be a JSON object, got {type(raw_payload).__name__}"
        )
    try:
        decoded = schema.model_validate(raw_payload)
    except ValidationError as e:
        raise ParseError(
            f"{source_name} payload does not match its schema: {e.error_count()} error(s)"
        ) from e
    return mapper(decoded)
