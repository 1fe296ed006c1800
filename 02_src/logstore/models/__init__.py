"""Core data models for the agent log store."""

from .approval import (
    ApprovalEvent,
    ApprovalEventQuery,
    ApprovalEventRecord,
    ApprovalEventType,
)
from .log_entry import LogEntry
from .payload import (
    ParsedPayload,
    Payload,
    RawPayload,
    extract_sim_run_id,
    parse_stored_payload,
    payload_text,
    resolve_payload,
)

__all__ = [
    # Log entries
    "LogEntry",
    # Approval events
    "ApprovalEvent",
    "ApprovalEventQuery",
    "ApprovalEventRecord",
    "ApprovalEventType",
    # Payloads
    "Payload",
    "RawPayload",
    "ParsedPayload",
    "resolve_payload",
    "payload_text",
    "parse_stored_payload",
    "extract_sim_run_id",
]
