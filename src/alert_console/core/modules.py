"""
Digital module catalog and the module board view.

The fleet is fixed: four dashboard modules with sensor cards and two
modules that only ever show up in the alert log. Whether a module is
alerting is derived from the aggregator's module flags on every read.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .aggregator import AlertStateAggregator
from .pagination import Page, Paginator


class DigitalModule(str, Enum):
    """Known digital modules."""
    DRILL001 = "DRILL001"
    MILL001 = "MILL001"
    AIQS001 = "AIQS001"
    FTS001 = "FTS001"
    DPS001 = "DPS001"
    HBW001 = "HBW001"

    @property
    def description(self) -> str:
        return _MODULE_INFO[self][0]

    @property
    def sensor_count(self) -> int:
        return _MODULE_INFO[self][1]

    @property
    def on_dashboard(self) -> bool:
        return _MODULE_INFO[self][2]

    @classmethod
    def dashboard_modules(cls) -> list["DigitalModule"]:
        return [m for m in cls if m.on_dashboard]

    @classmethod
    def lookup(cls, module_id: Optional[str]) -> Optional["DigitalModule"]:
        if not module_id:
            return None
        try:
            return cls(module_id.strip().upper())
        except ValueError:
            return None


# description, sensor count, shown on the dashboard
_MODULE_INFO = {
    DigitalModule.DRILL001: ("Drill Module", 3, True),
    DigitalModule.MILL001: ("Mill Module", 3, True),
    DigitalModule.AIQS001: ("AIQS Module", 2, True),
    DigitalModule.FTS001: ("FTS Conveyor", 2, True),
    DigitalModule.DPS001: ("DPS Module", 0, False),
    DigitalModule.HBW001: ("High-Bay Warehouse", 0, False),
}


@dataclass(frozen=True)
class ModuleCard:
    module_id: str
    description: str
    sensor_count: int
    has_active_alert: bool

    def to_dict(self) -> dict:
        return {
            "digitalModuleId": self.module_id,
            "description": self.description,
            "sensors": self.sensor_count,
            "hasActiveAlert": self.has_active_alert,
        }


class ModuleBoard:
    """Paged module cards highlighted by live alert state."""

    PAGE_SIZE = 3

    def __init__(
        self,
        aggregator: AlertStateAggregator,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self._aggregator = aggregator
        self._paginator = Paginator(page_size)
        self._modules = DigitalModule.dashboard_modules()

    def cards(self) -> list[ModuleCard]:
        return [
            ModuleCard(
                module_id=m.value,
                description=m.description,
                sensor_count=m.sensor_count,
                has_active_alert=self._aggregator.module_has_active_alert(m.value),
            )
            for m in self._modules
        ]

    def page(self, number: int) -> Page:
        return self._paginator.slice(self.cards(), number)

    @property
    def total_pages(self) -> int:
        return self._paginator.total_pages(len(self._modules))
