from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Optional

import arrow
from dateutil import tz as dateutil_tz
from tzlocal import get_localzone

logger = logging.getLogger(__name__)

_OFFSET_RE = re.compile(r"^(?:UTC|GMT)?([+-])(\d{1,2}):?(\d{2})?$", re.IGNORECASE)


def _get_system_tz() -> Optional[tzinfo]:
    try:
        return get_localzone()
    except Exception:
        logger.warning("Could not determine the local timezone, falling back to UTC", exc_info=True)
        return None


def _zone_key(tz: tzinfo) -> Optional[str]:
    # ZoneInfo exposes .key, older tzlocal/pytz objects .zone
    for attr in ("key", "zone"):
        value = getattr(tz, attr, None)
        if isinstance(value, str) and value:
            return value
    return None


def format_offset(offset: timedelta) -> str:
    """Render a UTC offset as "UTC+2", "UTC-4" or "UTC+5:30"."""
    # truncate toward zero so LMT offsets with seconds keep their minute
    total_minutes = int(offset.total_seconds() / 60)
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    if minutes:
        return f"UTC{sign}{hours}:{minutes:02d}"
    return f"UTC{sign}{hours}"


class ResolutionKind(enum.Enum):
    SINGLE = "single"
    AMBIGUOUS = "ambiguous"
    NONE = "none"


@dataclass(frozen=True)
class LocalResolution:
    """Outcome of mapping a local wall-clock reading back to an instant."""

    kind: ResolutionKind
    earliest: Optional[datetime] = None
    latest: Optional[datetime] = None

    def single(self) -> Optional[datetime]:
        if self.kind is ResolutionKind.SINGLE:
            return self.earliest
        return None


@dataclass(frozen=True)
class TimeZone:
    name: str
    tz: tzinfo

    @classmethod
    def from_tz(cls, tz: tzinfo, name: Optional[str] = None) -> "TimeZone":
        return cls(name=name or _zone_key(tz) or str(tz), tz=tz)

    @classmethod
    def from_name(cls, name: Optional[str]) -> "TimeZone":
        """Resolve "local", "UTC", fixed offsets ("+05:30") or IANA names.

        Raises ValueError for identifiers that do not resolve.
        """
        raw = (name or "").strip()
        lower = raw.lower()
        if lower in ("", "local", "system"):
            local = _get_system_tz()
            if local is None:
                return cls(name="UTC", tz=dateutil_tz.UTC)
            return cls.from_tz(local)
        if lower in ("utc", "z", "gmt"):
            return cls(name="UTC", tz=dateutil_tz.UTC)

        m = _OFFSET_RE.match(raw)
        if m:
            sign_s, hh_s, mm_s = m.groups()
            hh = int(hh_s)
            mm = int(mm_s or 0)
            if hh > 23 or mm > 59:
                raise ValueError(f"Invalid timezone offset: {raw!r}")
            sign = 1 if sign_s == "+" else -1
            offset = timedelta(minutes=sign * (hh * 60 + mm))
            label = format_offset(offset)
            return cls(name=label, tz=dateutil_tz.tzoffset(label, offset))

        zone = dateutil_tz.gettz(raw)
        if zone is None:
            raise ValueError(f"Invalid timezone identifier: {raw!r}")
        return cls(name=raw, tz=zone)

    # -------- Conversion --------
    def convert_time(self, utc_time: datetime) -> arrow.Arrow:
        return arrow.get(utc_time).to(self.tz)

    def utc_offset(self, utc_time: datetime) -> timedelta:
        return self.convert_time(utc_time).utcoffset() or timedelta(0)

    def from_local_datetime(self, local: datetime) -> LocalResolution:
        """Resolve a naive local wall-clock time in this zone."""
        wall = local.replace(tzinfo=None)
        if not dateutil_tz.datetime_exists(wall, tz=self.tz):
            return LocalResolution(ResolutionKind.NONE)
        aware = wall.replace(tzinfo=self.tz)
        earliest = dateutil_tz.enfold(aware, fold=0).astimezone(dateutil_tz.UTC)
        if dateutil_tz.datetime_ambiguous(wall, tz=self.tz):
            latest = dateutil_tz.enfold(aware, fold=1).astimezone(dateutil_tz.UTC)
            return LocalResolution(ResolutionKind.AMBIGUOUS, earliest, latest)
        return LocalResolution(ResolutionKind.SINGLE, earliest, earliest)

    # -------- Names --------
    def display_name(self) -> str:
        if "/" not in self.name:
            return self.name
        return self.name.rsplit("/", 1)[-1].replace("_", " ")

    def offset_string(self, at: Optional[datetime] = None) -> str:
        at = at or arrow.utcnow().datetime
        return format_offset(self.utc_offset(at))

    def abbreviation(self, at: Optional[datetime] = None) -> str:
        at = at or arrow.utcnow().datetime
        return self.convert_time(at).tzname() or ""

    def get_full_display_name(self, at: Optional[datetime] = None) -> str:
        offset = self.offset_string(at)
        abbr = self.abbreviation(at)
        if abbr and abbr != offset and abbr != self.name:
            return f"{self.name} ({abbr}, {offset})"
        return f"{self.name} ({offset})"
