"""
Alert state aggregation.

The live state is an immutable AlertState folded from actions by
reduce_alert_state(). Keeping the fold pure lets it be tested without a
channel or a UI:

    state = AlertState()
    for event in events:
        state = reduce_alert_state(state, AlertIngested(event))

Flags follow the ingestion stream only. Dismissing an entry from the visible
history never clears a flag, so a still-firing condition stays highlighted
on its module card.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional, Union

from alert_console.stream.models import AlertEvent, AlertStatus

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_CAPACITY = 50


@dataclass(frozen=True)
class AlertIngested:
    event: AlertEvent


@dataclass(frozen=True)
class AlertDismissed:
    alert_id: str


@dataclass(frozen=True)
class NotificationsOpened:
    pass


AlertAction = Union[AlertIngested, AlertDismissed, NotificationsOpened]


def _frozen(mapping: Optional[Mapping[str, bool]] = None) -> Mapping[str, bool]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class AlertState:
    """
    Snapshot of the live alert view.

    Attributes:
        history: Received events, most recent first
        sensor_flags: sensor_id -> whether its latest event is firing
        module_flags: digital_module_id -> whether its latest event is firing
        unread_alerts: Events received since notifications were last opened
    """
    history: tuple[AlertEvent, ...] = ()
    sensor_flags: Mapping[str, bool] = field(default_factory=_frozen)
    module_flags: Mapping[str, bool] = field(default_factory=_frozen)
    unread_alerts: int = 0


def reduce_alert_state(
    state: AlertState,
    action: AlertAction,
    capacity: int = DEFAULT_HISTORY_CAPACITY,
) -> AlertState:
    """Apply one action and return the new state."""
    if isinstance(action, AlertIngested):
        event = action.event
        history = (event,) + state.history
        if len(history) > capacity:
            history = history[:capacity]

        sensor_flags = state.sensor_flags
        module_flags = state.module_flags
        # Events without status or keys are kept but cannot move a flag
        if event.status is not None and event.has_flag_keys:
            firing = event.status is AlertStatus.FIRING
            sensor_flags = _frozen({**state.sensor_flags, event.sensor_id: firing})
            module_flags = _frozen({**state.module_flags, event.digital_module_id: firing})

        return AlertState(
            history=history,
            sensor_flags=sensor_flags,
            module_flags=module_flags,
            unread_alerts=state.unread_alerts + 1,
        )

    if isinstance(action, AlertDismissed):
        history = tuple(e for e in state.history if e.alert_id != action.alert_id)
        return replace(state, history=history)

    if isinstance(action, NotificationsOpened):
        return replace(state, unread_alerts=0)

    raise TypeError(f"Unknown alert action: {action!r}")


class AlertStateAggregator:
    """
    Holds the current AlertState and applies actions to it.

    Register ingest() as a push channel handler:

        aggregator = AlertStateAggregator(capacity=50)
        channel.on_event(aggregator.ingest)
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._state = AlertState()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def state(self) -> AlertState:
        return self._state

    @property
    def history(self) -> tuple[AlertEvent, ...]:
        return self._state.history

    @property
    def sensor_flags(self) -> Mapping[str, bool]:
        return self._state.sensor_flags

    @property
    def module_flags(self) -> Mapping[str, bool]:
        return self._state.module_flags

    @property
    def unread_alerts(self) -> int:
        return self._state.unread_alerts

    def dispatch(self, action: AlertAction) -> AlertState:
        self._state = reduce_alert_state(self._state, action, self._capacity)
        return self._state

    def ingest(self, event: AlertEvent) -> None:
        if event.status is None:
            logger.debug(f"Alert {event.alert_id} has no status, flags unchanged")
        self.dispatch(AlertIngested(event))

    def dismiss(self, alert_id: str) -> None:
        """Remove an alert from the visible history. Flags are untouched."""
        self.dispatch(AlertDismissed(alert_id))

    def acknowledge(self) -> None:
        """User opened the notification list."""
        self.dispatch(NotificationsOpened())

    def sensor_has_active_alert(self, sensor_id: str) -> bool:
        return self._state.sensor_flags.get(sensor_id, False)

    def module_has_active_alert(self, module_id: str) -> bool:
        return self._state.module_flags.get(module_id, False)

    def recent(self, limit: int) -> tuple[AlertEvent, ...]:
        return self._state.history[:max(0, limit)]
