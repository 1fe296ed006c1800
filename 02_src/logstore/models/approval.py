"""Approval workflow event models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..time_utils import normalize_instant
from .payload import Payload, parse_stored_payload, resolve_payload


class ApprovalEventType(str, Enum):
    """Kinds of approval events."""

    APPROVAL_REQUEST = "approval_request"
    APPROVAL_OUTCOME = "approval_outcome"


@dataclass(frozen=True)
class ApprovalEvent:
    """One immutable fact in an approval workflow (write side).

    (org_id, agent_name, decision_point_id, event_type) is the idempotency key.
    """

    event_id: str
    org_id: str
    agent_name: str
    decision_point_id: str
    event_type: ApprovalEventType
    created_at: str  # ISO-8601
    payload: Any = None  # JSON text or document; None stores the envelope

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_type", ApprovalEventType(self.event_type))
        object.__setattr__(self, "created_at", normalize_instant(self.created_at))

    @property
    def idempotency_key(self) -> tuple[str, str, str, str]:
        return (
            self.org_id,
            self.agent_name,
            self.decision_point_id,
            self.event_type.value,
        )

    def envelope(self) -> dict:
        """The event's own fields as a plain document."""
        return {
            "event_id": self.event_id,
            "org_id": self.org_id,
            "agent_name": self.agent_name,
            "decision_point_id": self.decision_point_id,
            "event_type": self.event_type.value,
            "created_at": self.created_at,
        }

    def resolved_payload(self) -> Payload:
        source = self.payload if self.payload is not None else self.envelope()
        return resolve_payload(source)


@dataclass(frozen=True)
class ApprovalEventRecord:
    """A stored approval event (read side); payload text is verbatim."""

    event_id: str
    org_id: str
    agent_name: str
    decision_point_id: str
    event_type: ApprovalEventType
    created_at: str
    payload_json: str
    sim_run_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", normalize_instant(self.created_at))

    def document(self) -> Any | None:
        """Parsed payload, or None if the stored text is malformed."""
        return parse_stored_payload(self.payload_json)


@dataclass(frozen=True)
class ApprovalEventQuery:
    """Filter for query_approval_events; unset fields do not constrain."""

    org_id: str
    agent_name: str
    event_type: ApprovalEventType | None = None
    sim_run_id: str | None = None
    start: str | None = None  # inclusive, on created_at
    end: str | None = None  # inclusive, on created_at
    limit: int | None = None
    offset: int | None = None

    def __post_init__(self) -> None:
        if self.event_type is not None:
            object.__setattr__(self, "event_type", ApprovalEventType(self.event_type))
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be >= 0")
        if self.offset is not None and self.offset < 0:
            raise ValueError("offset must be >= 0")
        object.__setattr__(self, "start", normalize_instant(self.start))
        object.__setattr__(self, "end", normalize_instant(self.end))

    def matches(self, record: ApprovalEventRecord) -> bool:
        """Whether a record satisfies every supplied predicate."""
        if record.org_id != self.org_id or record.agent_name != self.agent_name:
            return False
        if self.event_type is not None and record.event_type != self.event_type:
            return False
        if self.sim_run_id and record.sim_run_id != self.sim_run_id:
            return False
        if self.start and record.created_at < self.start:
            return False
        if self.end and record.created_at > self.end:
            return False
        return True
