"""Log entry data model."""

import re
from dataclasses import dataclass
from datetime import datetime

from ..time_utils import normalize_instant, parse_instant, to_iso_z, utc_now

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")


def collapse_line_breaks(text: str) -> str:
    """Replace every line break with a single space."""
    return _LINE_BREAKS.sub(" ", text)


def clean_instance_id(value: str) -> str:
    """Strip surrounding whitespace and any embedded line breaks."""
    return _LINE_BREAKS.sub("", value).strip()


@dataclass(frozen=True)
class LogEntry:
    """One line of operational narration tied to an agent instance."""

    instance_id: str
    service: str
    level: str
    message: str  # single line
    username: str
    event_time: str  # ISO-8601
    created_at: str  # ISO-8601, server-assigned
    org_id: str = ""
    id: int | None = None  # insertion sequence, set once stored

    def __post_init__(self) -> None:
        instance_id = clean_instance_id(self.instance_id or "")
        if not instance_id:
            raise ValueError("instance_id must not be empty")
        object.__setattr__(self, "instance_id", instance_id)
        object.__setattr__(self, "message", collapse_line_breaks(self.message))
        if self.org_id is None:
            object.__setattr__(self, "org_id", "")
        object.__setattr__(self, "event_time", normalize_instant(self.event_time))
        object.__setattr__(self, "created_at", normalize_instant(self.created_at))

    @classmethod
    def create(
        cls,
        instance_id: str,
        service: str,
        message: str,
        username: str,
        level: str = "info",
        timestamp: str | datetime | None = None,
        org_id: str | None = None,
        now: datetime | None = None,
    ) -> "LogEntry":
        """Build an entry at ingestion time.

        ``timestamp`` becomes ``event_time`` when it parses as an ISO-8601
        instant; otherwise the ingestion time is used. Both timestamps are
        normalized to UTC ``...Z`` text so that text order is time order.
        """
        ingested = now or utc_now()
        event_time = parse_instant(timestamp) or ingested
        return cls(
            instance_id=instance_id,
            service=service,
            level=level,
            message=message,
            username=username,
            event_time=to_iso_z(event_time),
            created_at=to_iso_z(ingested),
            org_id=org_id or "",
        )
