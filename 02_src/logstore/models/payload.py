"""Approval event payloads.

A payload arrives either as JSON text or as an already parsed document.
It is resolved once at the storage boundary into one of two shapes, and
everything downstream works on that shape rather than re-inspecting types.
"""

import json
from dataclasses import dataclass
from typing import Any, Union

SIM_RUN_ID_FIELD = "sim_run_id"


@dataclass(frozen=True)
class RawPayload:
    """Payload received as text; stored verbatim."""

    text: str


@dataclass(frozen=True)
class ParsedPayload:
    """Payload received as a structured document; stored as JSON."""

    document: Any


Payload = Union[RawPayload, ParsedPayload]


def resolve_payload(value: Any) -> Payload:
    """Tag an incoming payload value."""
    if isinstance(value, RawPayload | ParsedPayload):
        return value
    if isinstance(value, bytes):
        return RawPayload(value.decode("utf-8"))
    if isinstance(value, str):
        return RawPayload(value)
    return ParsedPayload(value)


def payload_text(payload: Payload) -> str:
    """Text to persist for a payload."""
    if isinstance(payload, RawPayload):
        return payload.text
    return json.dumps(payload.document)


def parse_stored_payload(text: str | None) -> Any | None:
    """Parse persisted payload text; None if it is missing or malformed."""
    if text is None:
        return None
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def extract_sim_run_id(payload: Payload) -> str | None:
    """Pull ``sim_run_id`` out of a payload, if there is one.

    Never raises: unparseable text or a non-mapping document yield None.
    """
    if isinstance(payload, RawPayload):
        document = parse_stored_payload(payload.text)
    else:
        document = payload.document

    if not isinstance(document, dict):
        return None
    value = document.get(SIM_RUN_ID_FIELD)
    if not value:
        return None
    return str(value)
