"""
LawPilot Intake Model

The normalized record an enforcement scenario enters the pipeline as.

Key components:
- Jurisdiction, EventInfo, DriverContext: the who/where/what of the event
- StatuteRef: one cited statute, split into citation and title
- IntakeRecord: the complete, immutable intake
- parse_statutes() / build_intake(): normalization helpers for callers that
  hold raw form values rather than a prepared record
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from ..exceptions import IntakeValidationError


DEFAULT_COUNTRY = "United States"
DEFAULT_EVENT_TYPE = "traffic_stop"
DEFAULT_VEHICLE_USE = "personal"

# Hyphen, en dash, em dash
_STATUTE_SEPARATOR = re.compile(r"[-–—]")


def _text(value: Any) -> str:
    """Coerce an optional raw value to a stripped string."""
    if value is None:
        return ""
    return str(value).strip()


_TRUE_STRINGS = ("true", "yes", "y", "1")


def _flag(value: Any) -> bool:
    """Coerce a raw yes/no value; strings such as "false" read as False."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


@dataclass(frozen=True)
class Jurisdiction:
    """Where the enforcement event happened."""
    country: str = DEFAULT_COUNTRY
    state: str = ""
    county: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"country": self.country, "state": self.state, "county": self.county}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Jurisdiction:
        data = data or {}
        return cls(
            country=_text(data.get("country")) or DEFAULT_COUNTRY,
            state=_text(data.get("state")),
            county=_text(data.get("county")),
        )


@dataclass(frozen=True)
class EventInfo:
    """The enforcement event itself."""
    type: str = DEFAULT_EVENT_TYPE
    date: str = ""
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "date": self.date, "notes": self.notes}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> EventInfo:
        data = data or {}
        return cls(
            type=_text(data.get("type")) or DEFAULT_EVENT_TYPE,
            date=_text(data.get("date")),
            notes=str(data.get("notes") or ""),
        )


@dataclass(frozen=True)
class DriverContext:
    """How the driver was using the vehicle."""
    vehicle_use: str = DEFAULT_VEHICLE_USE
    has_cdl: bool = False
    officer_agency: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "vehicle_use": self.vehicle_use,
            "has_cdl": self.has_cdl,
            "officer_agency": self.officer_agency,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> DriverContext:
        data = data or {}
        return cls(
            vehicle_use=_text(data.get("vehicle_use")) or DEFAULT_VEHICLE_USE,
            has_cdl=_flag(data.get("has_cdl", False)),
            officer_agency=_text(data.get("officer_agency")),
        )


@dataclass(frozen=True)
class StatuteRef:
    """
    A cited statute.

    Attributes:
        raw: The line exactly as entered (trimmed)
        citation: Text before the first dash-like separator
        title: Text after it; empty when there is no separator
    """
    raw: str
    citation: str = ""
    title: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"raw": self.raw, "citation": self.citation, "title": self.title}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StatuteRef:
        return cls(
            raw=str(data.get("raw") or ""),
            citation=str(data.get("citation") or ""),
            title=str(data.get("title") or ""),
        )

    @classmethod
    def parse(cls, line: str) -> StatuteRef:
        """Parse a single "citation - title" line."""
        raw = line.strip()
        parts = _STATUTE_SEPARATOR.split(raw)
        citation = parts[0].strip() if parts else ""
        title = parts[1].strip() if len(parts) > 1 else ""
        return cls(raw=raw, citation=citation, title=title)


@dataclass(frozen=True)
class Attachment:
    """Descriptor of an uploaded file (the file itself never enters the pipeline)."""
    file_name: str
    file_type: str = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return {"file_name": self.file_name, "file_type": self.file_type}


@dataclass(frozen=True)
class IntakeRecord:
    """
    A normalized enforcement scenario.

    Statutes keep their input order; every stage that scans statute text
    joins them in that order.
    """
    jurisdiction: Jurisdiction
    event: EventInfo
    driver_context: DriverContext
    statutes: tuple[StatuteRef, ...] = ()
    attachment: Optional[Attachment] = None
    created_at: str = ""

    @property
    def statutes_text(self) -> str:
        """Lower-cased statute lines joined by spaces, for keyword scans."""
        return " ".join(s.raw.lower() for s in self.statutes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "jurisdiction": self.jurisdiction.to_dict(),
            "event": self.event.to_dict(),
            "driver_context": self.driver_context.to_dict(),
            "statutes": [s.to_dict() for s in self.statutes],
            "attachment": self.attachment.to_dict() if self.attachment else None,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> IntakeRecord:
        """
        Build an IntakeRecord from its dict form.

        Statutes may be given either as records or as plain strings; plain
        strings are parsed like form input.

        Raises:
            IntakeValidationError: If data is not a mapping
        """
        if not isinstance(data, Mapping):
            raise IntakeValidationError(
                message="Intake must be a JSON object",
                details={"type": type(data).__name__},
            )

        statutes: list[StatuteRef] = []
        for item in data.get("statutes") or []:
            if isinstance(item, Mapping):
                statutes.append(StatuteRef.from_dict(item))
            elif isinstance(item, str) and item.strip():
                statutes.append(StatuteRef.parse(item))

        attachment = None
        raw_attachment = data.get("attachment")
        if isinstance(raw_attachment, Mapping) and raw_attachment.get("file_name"):
            attachment = Attachment(
                file_name=str(raw_attachment["file_name"]),
                file_type=str(raw_attachment.get("file_type") or "unknown"),
            )

        return cls(
            jurisdiction=Jurisdiction.from_dict(data.get("jurisdiction")),
            event=EventInfo.from_dict(data.get("event")),
            driver_context=DriverContext.from_dict(data.get("driver_context")),
            statutes=tuple(statutes),
            attachment=attachment,
            created_at=_text(data.get("created_at")),
        )


# =============================================================================
# Normalization Helpers
# =============================================================================

def parse_statutes(raw_text: Optional[str]) -> tuple[StatuteRef, ...]:
    """
    Parse a multi-line statute block, one statute per line.

    Blank lines are dropped; order is preserved.

    Example:
        >>> parse_statutes("TC 521.021 - Driver's license required")[0].citation
        'TC 521.021'
    """
    if not raw_text:
        return ()
    return tuple(
        StatuteRef.parse(line)
        for line in raw_text.splitlines()
        if line.strip()
    )


def build_intake(
    *,
    state: str = "",
    county: str = "",
    event_type: str = "",
    event_date: str = "",
    notes: str = "",
    vehicle_use: str = "",
    has_cdl: bool = False,
    officer_agency: str = "",
    statutes: str = "",
    attachment_name: Optional[str] = None,
    attachment_type: Optional[str] = None,
    created_at: Optional[str] = None,
) -> IntakeRecord:
    """
    Build an IntakeRecord from raw form values, applying the intake defaults.

    Args:
        created_at: ISO-8601 timestamp; defaults to now (UTC). Pass a fixed
            value when byte-identical reruns matter.
    """
    attachment = None
    if attachment_name:
        attachment = Attachment(file_name=attachment_name, file_type=attachment_type or "unknown")

    return IntakeRecord(
        jurisdiction=Jurisdiction(country=DEFAULT_COUNTRY, state=state.strip(), county=county.strip()),
        event=EventInfo(type=event_type or DEFAULT_EVENT_TYPE, date=event_date, notes=notes),
        driver_context=DriverContext(
            vehicle_use=vehicle_use or DEFAULT_VEHICLE_USE,
            has_cdl=has_cdl,
            officer_agency=officer_agency.strip(),
        ),
        statutes=parse_statutes(statutes),
        attachment=attachment,
        created_at=created_at or datetime.now(timezone.utc).isoformat(),
    )
