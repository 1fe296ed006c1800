"""Time zone helpers: UTC storage, wall-clock months and display strings.

Instants are stored and compared in UTC. Partition files and display
timestamps use the wall clock of a named IANA zone so DST transitions and
month boundaries land where a reader in that zone expects them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

MONTH_ABBREVIATIONS = (
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
)
_WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True)
class MonthPartition:
    """A calendar month in some zone."""

    month: int  # 1-12
    year: int

    @property
    def label(self) -> str:
        """Lowercase label such as ``jan-2026``."""
        return f"{MONTH_ABBREVIATIONS[self.month - 1]}-{self.year}"


def get_zone(name: str) -> ZoneInfo:
    """Return the ZoneInfo for an IANA zone name."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Invalid timezone: {name}") from exc


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_instant(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 instant into an aware UTC datetime.

    Naive values are taken as UTC. Returns None for anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_iso_z(value: datetime) -> str:
    """Format an instant as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc_value = value.astimezone(timezone.utc)
    return utc_value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_instant(value: str | datetime | None) -> str | None:
    """Rewrite a parseable instant as ``...mmmZ`` text; keep anything else as is.

    Normalized values compare as text in time order.
    """
    parsed = parse_instant(value)
    if parsed is None:
        return value
    return to_iso_z(parsed)


def to_zone(value: datetime, tz: ZoneInfo) -> datetime:
    """Convert an instant to wall-clock time in ``tz``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)


def month_partition(value: datetime, tz: ZoneInfo) -> MonthPartition:
    """Wall-clock month of an instant in ``tz``."""
    local = to_zone(value, tz)
    return MonthPartition(month=local.month, year=local.year)


def partition_filename(prefix: str, value: datetime, tz: ZoneInfo) -> str:
    """File name of the monthly partition an instant belongs to."""
    return f"{prefix}-{month_partition(value, tz).label}.log"


def format_display_timestamp(value: datetime, tz: ZoneInfo) -> str:
    """Render e.g. ``Mon Jan 12 14:10:15 PST 2026``."""
    local = to_zone(value, tz)
    weekday = _WEEKDAY_NAMES[local.weekday()]
    month = MONTH_ABBREVIATIONS[local.month - 1].capitalize()
    return (
        f"{weekday} {month} {local.day:02d} "
        f"{local.hour:02d}:{local.minute:02d}:{local.second:02d} "
        f"{local.tzname()} {local.year}"
    )


def month_from_abbreviation(name: str) -> int | None:
    """Map ``jan``..``dec`` (any case) to 1..12."""
    try:
        return MONTH_ABBREVIATIONS.index(str(name).strip().lower()) + 1
    except ValueError:
        return None


def month_bounds_utc(month: int, year: int, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """UTC instants where ``month``/``year`` starts and the next month starts in ``tz``."""
    start_local = datetime(year, month, 1, tzinfo=tz)
    if month == 12:
        end_local = datetime(year + 1, 1, 1, tzinfo=tz)
    else:
        end_local = datetime(year, month + 1, 1, tzinfo=tz)
    return start_local.astimezone(timezone.utc), end_local.astimezone(timezone.utc)
