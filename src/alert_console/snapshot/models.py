"""
Data models for the pull-based snapshot: sensor catalog, threshold drafts,
historical alert records and the alert log filter.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

from alert_console.stream.models import AlertStatus


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Sensor:
    """
    Sensor as reported by the catalog service.

    Replaced wholesale on every catalog fetch, never deleted client-side.
    """
    sensor_id: str
    name: str
    unit: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Sensor":
        """
        Parse a catalog record.

        Raises:
            ValueError: If sensorId is missing or a threshold is not numeric
        """
        sensor_id = _optional_text(data.get("sensorId"))
        if not sensor_id:
            raise ValueError("Sensor record missing sensorId")
        return cls(
            sensor_id=sensor_id,
            name=_optional_text(data.get("name")) or sensor_id,
            unit=_optional_text(data.get("unit")),
            min_value=_optional_float(data.get("minValue")),
            max_value=_optional_float(data.get("maxValue")),
        )

    @property
    def kind(self) -> str:
        """Rough sensor family, used to pick an icon."""
        name = self.name.lower()
        if "temp" in name:
            return "temperature"
        if "pressure" in name:
            return "pressure"
        return "generic"

    def to_dict(self) -> dict:
        return {
            "sensorId": self.sensor_id,
            "name": self.name,
            "unit": self.unit,
            "minValue": self.min_value,
            "maxValue": self.max_value,
            "kind": self.kind,
        }


def _draft_text(value: Optional[float]) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


@dataclass(frozen=True)
class ThresholdDraft:
    """Editable threshold text for one sensor, exactly as typed."""
    min_value: str = ""
    max_value: str = ""

    FIELDS = ("min_value", "max_value")
    ALIASES = {"minValue": "min_value", "maxValue": "max_value"}

    @classmethod
    def from_sensor(cls, sensor: Sensor) -> "ThresholdDraft":
        return cls(
            min_value=_draft_text(sensor.min_value),
            max_value=_draft_text(sensor.max_value),
        )

    @classmethod
    def resolve_field(cls, name: str) -> str:
        """
        Map a field name (snake_case or camelCase) to a draft attribute.

        Raises:
            ValueError: If the field is not a threshold field
        """
        resolved = cls.ALIASES.get(name, name)
        if resolved not in cls.FIELDS:
            raise ValueError(f"Unknown threshold field: {name}")
        return resolved

    def with_value(self, name: str, value: Any) -> "ThresholdDraft":
        text = "" if value is None else str(value)
        return replace(self, **{self.resolve_field(name): text})

    def to_dict(self) -> dict:
        return {"minValue": self.min_value, "maxValue": self.max_value}


@dataclass(frozen=True)
class AlertRecord:
    """
    Historical alert from the filtered alert store.

    Same shape as a live AlertEvent but a separate collection; records are
    never merged into the live history.
    """
    id: Optional[str]
    alert_id: Optional[str]
    alert_type: Optional[str] = None
    sensor_id: Optional[str] = None
    digital_module_id: Optional[str] = None
    status: Optional[AlertStatus] = None
    description: Optional[str] = None
    started_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AlertRecord":
        if not isinstance(data, Mapping):
            raise ValueError(f"Alert record must be an object, got {type(data).__name__}")
        return cls(
            id=_optional_text(data.get("id")),
            alert_id=_optional_text(data.get("alertId")),
            alert_type=_optional_text(data.get("alertType") or data.get("type")),
            sensor_id=_optional_text(data.get("sensorId")),
            digital_module_id=_optional_text(data.get("digitalModuleId")),
            status=AlertStatus.parse(data.get("status")),
            description=_optional_text(data.get("description")),
            started_at=_optional_text(data.get("startedAt") or data.get("createdAt")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "alertId": self.alert_id,
            "alertType": self.alert_type,
            "sensorId": self.sensor_id,
            "digitalModuleId": self.digital_module_id,
            "status": self.status.value if self.status else None,
            "description": self.description,
            "startedAt": self.started_at,
        }


# Filter attribute -> query parameter name
_FILTER_PARAMS = {
    "sensor_id": "sensorId",
    "digital_module_id": "digitalModuleId",
    "status": "status",
    "from_": "from",
    "to": "to",
}


@dataclass(frozen=True)
class AlertFilter:
    """
    Alert log query criteria. Every field is optional.

    from_/to are opaque local-time strings passed through untouched.
    """
    sensor_id: str = ""
    digital_module_id: str = ""
    status: str = ""
    from_: str = ""
    to: str = ""

    @classmethod
    def field_name(cls, name: str) -> str:
        """
        Accept attribute names or query parameter names.

        Raises:
            ValueError: If the name is not a filter field
        """
        if name in _FILTER_PARAMS:
            return name
        for attr, param in _FILTER_PARAMS.items():
            if param == name:
                return attr
        raise ValueError(f"Unknown filter field: {name}")

    def merge(self, **partial: Any) -> "AlertFilter":
        changes = {}
        for name, value in partial.items():
            changes[self.field_name(name)] = "" if value is None else str(value)
        return replace(self, **changes)

    def to_params(self) -> dict[str, str]:
        """Only non-empty fields, so the backend's match-all default applies."""
        params = {}
        for f in fields(self):
            value = getattr(self, f.name).strip()
            if value:
                params[_FILTER_PARAMS[f.name]] = value
        return params

    @property
    def is_empty(self) -> bool:
        return not self.to_params()

    def to_dict(self) -> dict:
        return {_FILTER_PARAMS[f.name]: getattr(self, f.name) for f in fields(self)}
