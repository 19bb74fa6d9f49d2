"""
Data models for the push alert stream.

Hub payloads are duck-typed: fields come and go depending on which backend
path produced the alert. AlertEvent.from_payload() normalises them into an
explicit structure with optional fields and never raises on a missing one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional


class AlertStatus(str, Enum):
    """Alert lifecycle status as reported by the backend."""
    FIRING = "firing"
    RESOLVED = "resolved"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> Optional["AlertStatus"]:
        """
        Parse a raw status value case-insensitively.

        Returns None when the value is missing or blank, so callers can tell
        "no status" apart from an unrecognised one (which maps to UNKNOWN).
        """
        if value is None:
            return None
        text = str(value).strip().lower()
        if not text:
            return None
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN

    @property
    def level(self) -> str:
        """Notification level used when rendering this status."""
        if self is AlertStatus.FIRING:
            return "warning"
        if self is AlertStatus.RESOLVED:
            return "success"
        return "info"


def _text(value: Any) -> Optional[str]:
    """Coerce a payload value to a stripped string, or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class AlertEvent:
    """
    Alert transition received from the push channel.

    Immutable once received. Appended to the live history, never mutated.

    Attributes:
        alert_id: Backend alert identifier (used as notification tag)
        sensor_id: Sensor that raised the alert, if known
        digital_module_id: Module the sensor belongs to, if known
        status: Parsed status, or None when the payload carried none
        alert_type: Alert rule type (payload "alertType" or "type")
        description: Free-text description
        started_at: Backend start time, kept as the opaque string received
        received_at: When this client received the event (UTC)
    """
    alert_id: Optional[str]
    sensor_id: Optional[str] = None
    digital_module_id: Optional[str] = None
    status: Optional[AlertStatus] = None
    alert_type: Optional[str] = None
    description: Optional[str] = None
    started_at: Optional[str] = None
    received_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
        compare=False,
    )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AlertEvent":
        """
        Build an event from a hub payload.

        Raises:
            ValueError: If the payload is not a mapping
        """
        if not isinstance(payload, Mapping):
            raise ValueError(f"Alert payload must be an object, got {type(payload).__name__}")

        return cls(
            alert_id=_text(payload.get("alertId") or payload.get("id")),
            sensor_id=_text(payload.get("sensorId")),
            digital_module_id=_text(payload.get("digitalModuleId")),
            status=AlertStatus.parse(payload.get("status")),
            alert_type=_text(payload.get("alertType") or payload.get("type")),
            description=_text(payload.get("description")),
            started_at=_text(payload.get("startedAt")),
        )

    @property
    def is_firing(self) -> bool:
        return self.status is AlertStatus.FIRING

    @property
    def is_resolved(self) -> bool:
        return self.status is AlertStatus.RESOLVED

    @property
    def has_flag_keys(self) -> bool:
        """Whether this event can update the per-sensor/per-module flags."""
        return bool(self.sensor_id and self.digital_module_id)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "alertId": self.alert_id,
            "sensorId": self.sensor_id,
            "digitalModuleId": self.digital_module_id,
            "status": self.status.value if self.status else None,
            "alertType": self.alert_type,
            "description": self.description,
            "startedAt": self.started_at,
            "receivedAt": self.received_at.isoformat(),
        }
