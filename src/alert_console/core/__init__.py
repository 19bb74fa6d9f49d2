"""
Core Layer - live alert state and fleet views.

This module provides:
    - AlertState / reduce_alert_state: pure fold over received alerts
    - AlertStateAggregator: holder for the live state
    - DigitalModule / ModuleBoard: the fixed fleet and its highlighted cards
    - Paginator: local fixed-size paging with clamping
    - format_timestamp: display formatting for backend timestamps
"""

from .aggregator import (
    DEFAULT_HISTORY_CAPACITY,
    AlertDismissed,
    AlertIngested,
    AlertState,
    AlertStateAggregator,
    NotificationsOpened,
    reduce_alert_state,
)
from .formatting import format_timestamp
from .modules import DigitalModule, ModuleBoard, ModuleCard
from .pagination import Page, Paginator

__all__ = [
    # Aggregation
    "DEFAULT_HISTORY_CAPACITY",
    "AlertDismissed",
    "AlertIngested",
    "AlertState",
    "AlertStateAggregator",
    "NotificationsOpened",
    "reduce_alert_state",
    # Fleet
    "DigitalModule",
    "ModuleBoard",
    "ModuleCard",
    # Helpers
    "Page",
    "Paginator",
    "format_timestamp",
]
