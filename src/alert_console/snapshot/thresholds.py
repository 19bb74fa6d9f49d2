"""
Sensor catalog snapshot and threshold editing.

The backend is the single source of truth: every successful save is
followed by a full catalog reload, and every reload replaces all drafts.
Saves are single-flight. The only mutual exclusion is the saving token;
there are no locks, and a save that is refused is not queued.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Optional

from alert_console.core.pagination import Page, Paginator
from alert_console.errors import PersistenceError, ValidationError
from alert_console.monitoring.notifications import ToastQueue

from .client import ConsoleAPIError, ConsoleRestClient
from .models import Sensor, ThresholdDraft

logger = logging.getLogger(__name__)


class SavePolicy(str, Enum):
    """Scope of the single-flight save token."""
    PER_SENSOR = "per_sensor"
    GLOBAL = "global"


def parse_threshold(value: str, field: str) -> float:
    """
    Parse a draft value to a finite float.

    Raises:
        ValidationError: If the value is blank, non-numeric or not finite
    """
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}", field=field)
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be finite, got {value!r}", field=field)
    return number


class ThresholdEditor:
    """
    Holds the sensor catalog, per-sensor drafts and the save token.

    Usage:
        editor = ThresholdEditor(client, toasts)
        await editor.load()
        editor.set_draft("drill_temp1", "max_value", "85")
        saved = await editor.save("drill_temp1")
    """

    PAGE_SIZE = 5

    def __init__(
        self,
        client: ConsoleRestClient,
        toasts: ToastQueue,
        policy: SavePolicy = SavePolicy.PER_SENSOR,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self._client = client
        self._toasts = toasts
        self._policy = SavePolicy(policy)
        self._paginator = Paginator(page_size)

        self._sensors: list[Sensor] = []
        self._drafts: dict[str, ThresholdDraft] = {}
        self._saving: set[str] = set()
        self._loading = False
        self._current_page = 1
        self._load_token = 0

    # =========================================================================
    # State
    # =========================================================================

    @property
    def sensors(self) -> list[Sensor]:
        return list(self._sensors)

    @property
    def drafts(self) -> dict[str, ThresholdDraft]:
        return dict(self._drafts)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def policy(self) -> SavePolicy:
        return self._policy

    @property
    def saving_sensor_ids(self) -> frozenset[str]:
        return frozenset(self._saving)

    @property
    def saving_sensor_id(self) -> Optional[str]:
        """The sensor being saved, if any (a single one under the global policy)."""
        return next(iter(self._saving), None)

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def total_pages(self) -> int:
        return self._paginator.total_pages(len(self._sensors))

    def draft(self, sensor_id: str) -> ThresholdDraft:
        return self._drafts.get(sensor_id, ThresholdDraft())

    def get_sensor(self, sensor_id: str) -> Optional[Sensor]:
        for sensor in self._sensors:
            if sensor.sensor_id == sensor_id:
                return sensor
        return None

    def can_save(self, sensor_id: str) -> bool:
        """Whether the save affordance for this sensor is enabled."""
        if self._policy is SavePolicy.GLOBAL:
            return not self._saving
        return sensor_id not in self._saving

    # =========================================================================
    # Operations
    # =========================================================================

    async def load(self) -> bool:
        """
        Replace the catalog and reset every draft to the fetched values.

        On failure the previous catalog and drafts are kept. When loads
        overlap only the most recently started one is applied.

        Returns:
            True if the catalog was replaced
        """
        self._load_token += 1
        token = self._load_token
        self._loading = True
        try:
            sensors = await self._client.get_sensors()
        except ConsoleAPIError as e:
            if token != self._load_token:
                return False
            error = PersistenceError(str(e), status_code=e.status_code)
            logger.error(f"Failed to load sensor catalog: {error}")
            self._toasts.error("Failed to load sensors")
            return False
        finally:
            if token == self._load_token:
                self._loading = False

        if token != self._load_token:
            logger.debug(f"Dropping superseded sensor catalog response (token {token})")
            return False

        self._sensors = list(sensors)
        self._drafts = {s.sensor_id: ThresholdDraft.from_sensor(s) for s in self._sensors}
        self._current_page = self._paginator.clamp(self._current_page, len(self._sensors))
        logger.info(f"Loaded {len(self._sensors)} sensors")
        return True

    def set_draft(self, sensor_id: str, field: str, value: str) -> ThresholdDraft:
        """
        Local edit only, no network effect.

        Raises:
            ValueError: If field is not a threshold field
        """
        draft = self.draft(sensor_id).with_value(field, value)
        self._drafts[sensor_id] = draft
        return draft

    async def save(self, sensor_id: str) -> bool:
        """
        Persist the current draft for one sensor.

        Returns:
            True if saved, False if refused by the single-flight rule or
            rejected by the backend (draft left as typed)

        Raises:
            ValidationError: If a draft value is not a finite number; raised
                before any network call
        """
        if not self.can_save(sensor_id):
            logger.debug(f"Save for {sensor_id} refused: save already in flight")
            return False

        draft = self.draft(sensor_id)
        try:
            min_value = parse_threshold(draft.min_value, "minValue")
            max_value = parse_threshold(draft.max_value, "maxValue")
        except ValidationError as e:
            logger.warning(f"Invalid thresholds for {sensor_id}: {e}")
            self._toasts.error(f"Invalid threshold for {sensor_id}: {e}")
            raise

        self._saving.add(sensor_id)
        try:
            try:
                await self._client.update_thresholds(sensor_id, min_value, max_value)
            except ConsoleAPIError as e:
                error = PersistenceError(str(e), status_code=e.status_code)
                logger.error(f"Failed to update thresholds for {sensor_id}: {error}")
                self._toasts.error("❌ Failed to update threshold")
                return False

            logger.info(f"Thresholds updated for {sensor_id}: min={min_value} max={max_value}")
            await self.load()
            self._toasts.success(f"✅ Threshold updated for {sensor_id}")
            return True
        finally:
            self._saving.discard(sensor_id)

    # =========================================================================
    # Pagination
    # =========================================================================

    def page(self, number: int) -> Page:
        """Select and return a page of sensors, clamped into range."""
        self._current_page = self._paginator.clamp(number, len(self._sensors))
        return self.current()

    def current(self) -> Page:
        return self._paginator.slice(self._sensors, self._current_page)
